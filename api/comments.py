"""
Comment Endpoints.

Endpoints Provided:
- `GET /api/comments`: All comments, newest first.
- `GET /api/comments/prompt/{prompt_id}`: A prompt's comments with author summaries.
- `GET /api/comments/prompt/{prompt_id}/stats`: Total and last-24h counts.
- `GET /api/comments/user/{user_id}`: A user's comments with prompt summaries.
- `POST /api/comments`, `GET|PUT|DELETE /api/comments/{id}`.
"""

from fastapi import APIRouter, Depends, Query

from core.logging_config import get_logger
from core.schemas import CommentCreate, CommentUpdate
from services.comment_service import CommentService

from .dependencies import PageParams, get_comment_service
from .responses import created, envelope

logger = get_logger(__name__)

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.get("")
async def list_comments(
    pages: PageParams = Depends(),
    comments: CommentService = Depends(get_comment_service),
):
    items, pagination = await comments.list_comments(page=pages.page, limit=pages.limit)
    return envelope([c.to_json() for c in items], pagination=pagination)


@router.post("", status_code=201)
async def create_comment(
    data: CommentCreate, comments: CommentService = Depends(get_comment_service)
):
    comment = await comments.create_comment(data)
    return created(comment.to_json(), "Comment created successfully")


@router.get("/prompt/{prompt_id}")
async def comments_for_prompt(
    prompt_id: str,
    pages: PageParams = Depends(),
    sort: str = Query("createdAt"),
    comments: CommentService = Depends(get_comment_service),
):
    items, pagination = await comments.list_by_prompt(
        prompt_id, page=pages.page, limit=pages.limit, sort=sort
    )
    return envelope([c.to_json() for c in items], pagination=pagination)


@router.get("/prompt/{prompt_id}/stats")
async def comment_stats(
    prompt_id: str, comments: CommentService = Depends(get_comment_service)
):
    return envelope(await comments.comment_stats(prompt_id))


@router.get("/user/{user_id}")
async def comments_for_user(
    user_id: str,
    pages: PageParams = Depends(),
    comments: CommentService = Depends(get_comment_service),
):
    items, pagination = await comments.list_by_user(
        user_id, page=pages.page, limit=pages.limit
    )
    return envelope([c.to_json() for c in items], pagination=pagination)


@router.get("/{comment_id}")
async def get_comment(comment_id: str, comments: CommentService = Depends(get_comment_service)):
    return envelope((await comments.get_comment(comment_id)).to_json())


@router.put("/{comment_id}")
async def update_comment(
    comment_id: str,
    data: CommentUpdate,
    comments: CommentService = Depends(get_comment_service),
):
    comment = await comments.update_comment(comment_id, data)
    return envelope(comment.to_json(), message="Comment updated successfully")


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str, comments: CommentService = Depends(get_comment_service)
):
    deleted_id = await comments.delete_comment(comment_id)
    return envelope({"id": deleted_id}, message="Comment deleted successfully")
