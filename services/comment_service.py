"""
Comment Service.

`CommentService` lists, creates, edits and deletes comments. Listings are
joined with a summary of the related author or prompt so the frontend can
render a comment thread without extra requests.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError, ValidationError
from core.logging_config import get_logger, log_function_call
from core.models import Comment, Prompt, User, utcnow
from core.schemas import CommentCreate, CommentRead, CommentUpdate, Pagination
from core.validation import InputValidator
from services.query_utils import DEFAULT_LIMIT, DEFAULT_PAGE, count_rows, page_window

logger = get_logger(__name__)

SORTABLE_FIELDS = {
    "createdAt": Comment.created_at,
    "updatedAt": Comment.updated_at,
    "editedAt": Comment.edited_at,
}


class CommentService:
    """Queries and mutations for comments"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _detail_query(self):
        return (
            select(Comment, User, Prompt)
            .outerjoin(User, Comment.user_id == User.id)
            .outerjoin(Prompt, Comment.prompt_id == Prompt.id)
        )

    async def _load(self, comment_id: str) -> Comment:
        comment_id = InputValidator.validate_identifier(comment_id, "comment")
        comment = await self.session.get(Comment, comment_id, populate_existing=True)
        if comment is None:
            raise NotFoundError("Comment")
        return comment

    @log_function_call(logger)
    async def list_comments(
        self, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT
    ) -> Tuple[List[CommentRead], Pagination]:
        stmt = self._detail_query().order_by(Comment.created_at.desc(), Comment.id)
        rows = (await self.session.execute(page_window(stmt, page, limit))).all()
        total = await count_rows(self.session, Comment)
        return [CommentRead.from_row(*row) for row in rows], Pagination.build(
            page, limit, total
        )

    @log_function_call(logger)
    async def list_by_prompt(
        self,
        prompt_id: str,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        sort: str = "createdAt",
    ) -> Tuple[List[CommentRead], Pagination]:
        prompt_id = InputValidator.validate_identifier(prompt_id, "prompt")
        column, _ = InputValidator.resolve_sort(sort, "desc", SORTABLE_FIELDS)
        condition = Comment.prompt_id == prompt_id

        stmt = (
            select(Comment, User)
            .outerjoin(User, Comment.user_id == User.id)
            .where(condition)
            .order_by(column.desc(), Comment.id)
        )
        rows = (await self.session.execute(page_window(stmt, page, limit))).all()
        total = await count_rows(self.session, Comment, condition)
        comments = [CommentRead.from_row(comment, author=user) for comment, user in rows]
        return comments, Pagination.build(page, limit, total)

    @log_function_call(logger)
    async def list_by_user(
        self, user_id: str, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT
    ) -> Tuple[List[CommentRead], Pagination]:
        user_id = InputValidator.validate_identifier(user_id, "user")
        condition = Comment.user_id == user_id

        stmt = (
            select(Comment, Prompt)
            .outerjoin(Prompt, Comment.prompt_id == Prompt.id)
            .where(condition)
            .order_by(Comment.created_at.desc(), Comment.id)
        )
        rows = (await self.session.execute(page_window(stmt, page, limit))).all()
        total = await count_rows(self.session, Comment, condition)
        comments = [
            CommentRead.from_row(comment, prompt=prompt) for comment, prompt in rows
        ]
        return comments, Pagination.build(page, limit, total)

    @log_function_call(logger)
    async def get_comment(self, comment_id: str) -> CommentRead:
        comment_id = InputValidator.validate_identifier(comment_id, "comment")
        row = (
            await self.session.execute(
                self._detail_query()
                .where(Comment.id == comment_id)
                .execution_options(populate_existing=True)
            )
        ).first()
        if row is None:
            raise NotFoundError("Comment")
        return CommentRead.from_row(*row)

    @log_function_call(logger)
    async def create_comment(self, data: CommentCreate) -> CommentRead:
        user_id = InputValidator.validate_identifier(data.user, "user")
        prompt_id = InputValidator.validate_identifier(data.prompt, "prompt")

        errors = []
        if await self.session.get(User, user_id) is None:
            errors.append({"field": "user", "message": "User does not exist"})
        if await self.session.get(Prompt, prompt_id) is None:
            errors.append({"field": "prompt", "message": "Prompt does not exist"})
        if errors:
            raise ValidationError(errors)

        comment = Comment(user_id=user_id, prompt_id=prompt_id, content=data.content)
        self.session.add(comment)
        await self.session.commit()
        logger.info(
            f"Comment created: {comment.id}",
            extra={"comment_id": comment.id, "prompt_id": prompt_id},
        )
        return await self.get_comment(comment.id)

    @log_function_call(logger)
    async def update_comment(self, comment_id: str, data: CommentUpdate) -> CommentRead:
        comment = await self._load(comment_id)
        comment.content = data.content
        comment.is_edited = True
        comment.edited_at = utcnow()
        await self.session.commit()
        return await self.get_comment(comment.id)

    @log_function_call(logger)
    async def delete_comment(self, comment_id: str) -> str:
        comment = await self._load(comment_id)
        await self.session.delete(comment)
        await self.session.commit()
        logger.info(f"Comment deleted: {comment.id}")
        return comment.id

    async def comment_stats(
        self, prompt_id: str, now: Optional[datetime] = None
    ) -> dict:
        """Total comments on a prompt and how many arrived in the last 24 hours"""
        prompt_id = InputValidator.validate_identifier(prompt_id, "prompt")
        since = (now or utcnow()) - timedelta(hours=24)
        total = await count_rows(self.session, Comment, Comment.prompt_id == prompt_id)
        recent = await count_rows(
            self.session,
            Comment,
            Comment.prompt_id == prompt_id,
            Comment.created_at >= since,
        )
        return {"total": total, "recent": recent}
