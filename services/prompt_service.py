"""
Prompt Service.

This module provides `PromptService`, which owns every query against the
prompts table: filtered and paginated listing, relevance-ranked search, the
category/tag/popular views and all mutations including the atomic counter
increments.

Key Components:
- `PromptService`: One instance per request, bound to an `AsyncSession`.
- Filters: category (equality), tags and worksBestWith (membership of any),
  resultType, isActive and free-text search.
- Counters: likes, uses and views are incremented with a single
  `UPDATE ... SET x = x + 1` statement, so concurrent requests never lose an
  increment.
- Versioning: `version` starts at 1 and is bumped by exactly one whenever an
  update changes `content`.

Architectural Design:
- List-valued fields are JSON columns. Membership filters match the JSON
  encoding of the wanted value inside the column text, which works the same on
  SQLite and PostgreSQL.
- Search scores each term per field (title 3, tags 2, description 1) and orders
  by the summed score, newest first on ties.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import String, case, cast, distinct, false, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import json_serializer
from core.exceptions import NotFoundError
from core.logging_config import get_logger, log_function_call
from core.models import Prompt
from core.schemas import Pagination, PromptCreate, PromptPatch, PromptUpdate
from core.validation import InputValidator
from services.query_utils import DEFAULT_LIMIT, DEFAULT_PAGE, count_rows, page_window

logger = get_logger(__name__)

SORTABLE_FIELDS = {
    "createdAt": Prompt.created_at,
    "updatedAt": Prompt.updated_at,
    "title": Prompt.title,
    "category": Prompt.category,
    "resultType": Prompt.result_type,
    "version": Prompt.version,
    "views": Prompt.views,
    "likes": Prompt.likes,
    "uses": Prompt.uses,
}

# Relevance weight per matched field
SEARCH_WEIGHTS = {"title": 3, "tags": 2, "description": 1}


def _json_contains_any(column: Any, values: Sequence[str]):
    text = cast(column, String)
    return or_(*[text.contains(json_serializer(value), autoescape=True) for value in values])


# Characters of the JSON array encoding, never part of a tag match
JSON_SYNTAX = str.maketrans("", "", "\"\\[],")


def _tags_condition(term: str):
    bare = term.translate(JSON_SYNTAX)
    if not bare:
        return false()
    return cast(Prompt.tags, String).icontains(bare, autoescape=True)


def _term_conditions(term: str) -> Dict[str, Any]:
    return {
        "title": Prompt.title.icontains(term, autoescape=True),
        "tags": _tags_condition(term),
        "description": Prompt.description.icontains(term, autoescape=True),
    }


def _search_terms(query: str) -> List[str]:
    return [term for term in query.split() if term]


def _search_condition(terms: Sequence[str]):
    return or_(
        *[condition for term in terms for condition in _term_conditions(term).values()]
    )


def _search_score(terms: Sequence[str]):
    score = None
    for term in terms:
        for field, condition in _term_conditions(term).items():
            weighted = case((condition, SEARCH_WEIGHTS[field]), else_=0)
            score = weighted if score is None else score + weighted
    return score


class PromptService:
    """Queries and mutations for prompts"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _load(self, prompt_id: str) -> Prompt:
        prompt_id = InputValidator.validate_identifier(prompt_id, "prompt")
        prompt = await self.session.get(Prompt, prompt_id, populate_existing=True)
        if prompt is None:
            raise NotFoundError("Prompt")
        return prompt

    async def _increment(self, prompt_id: str, field: str) -> Prompt:
        prompt_id = InputValidator.validate_identifier(prompt_id, "prompt")
        column = getattr(Prompt, field)
        result = await self.session.execute(
            update(Prompt).where(Prompt.id == prompt_id).values({field: column + 1})
        )
        if result.rowcount == 0:
            await self.session.rollback()
            raise NotFoundError("Prompt")
        await self.session.commit()
        return await self._load(prompt_id)

    @log_function_call(logger)
    async def list_prompts(
        self,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        search: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[str] = None,
        result_type: Optional[str] = None,
        works_best_with: Optional[str] = None,
        is_active: Optional[bool] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[Prompt], Pagination]:
        column, descending = InputValidator.resolve_sort(
            sort_by, sort_order, SORTABLE_FIELDS
        )

        conditions = []
        if search and _search_terms(search):
            conditions.append(_search_condition(_search_terms(search)))
        if category:
            conditions.append(Prompt.category == category)
        if tags:
            wanted = InputValidator.split_list(tags, lowercase=True)
            if wanted:
                conditions.append(_json_contains_any(Prompt.tags, wanted))
        if result_type:
            conditions.append(Prompt.result_type == result_type)
        if works_best_with:
            models = InputValidator.split_list(works_best_with)
            if models:
                conditions.append(_json_contains_any(Prompt.works_best_with, models))
        if is_active is not None:
            conditions.append(Prompt.is_active == is_active)

        stmt = (
            select(Prompt)
            .where(*conditions)
            .order_by(column.desc() if descending else column.asc(), Prompt.id)
        )
        prompts = (await self.session.scalars(page_window(stmt, page, limit))).all()
        total = await count_rows(self.session, Prompt, *conditions)
        return list(prompts), Pagination.build(page, limit, total)

    async def require_prompt(self, prompt_id: str) -> Prompt:
        """Load a prompt without counting a view"""
        return await self._load(prompt_id)

    @log_function_call(logger)
    async def get_prompt(self, prompt_id: str) -> Prompt:
        """Fetch a prompt, counting the fetch as one view"""
        return await self._increment(prompt_id, "views")

    @log_function_call(logger)
    async def create_prompt(
        self, data: PromptCreate, cover_image: Optional[str] = None
    ) -> Prompt:
        prompt = Prompt(**data.model_dump(), cover_image=cover_image)
        self.session.add(prompt)
        await self.session.commit()
        await self.session.refresh(prompt)
        logger.info(
            f"Prompt created: {prompt.id}",
            extra={"prompt_id": prompt.id, "category": prompt.category},
        )
        return prompt

    @log_function_call(logger)
    async def update_prompt(
        self, prompt_id: str, data: PromptUpdate, cover_image: Optional[str] = None
    ) -> Prompt:
        prompt = await self._load(prompt_id)
        changes = data.model_dump(exclude_none=True)
        if cover_image:
            changes["cover_image"] = cover_image

        if "content" in changes and changes["content"] != prompt.content:
            prompt.version += 1

        for field, value in changes.items():
            setattr(prompt, field, value)

        await self.session.commit()
        await self.session.refresh(prompt)
        logger.info(
            f"Prompt updated: {prompt.id}",
            extra={"prompt_id": prompt.id, "version": prompt.version},
        )
        return prompt

    @log_function_call(logger)
    async def partial_update(self, prompt_id: str, data: PromptPatch) -> Prompt:
        prompt = await self._load(prompt_id)
        for field, value in data.model_dump(exclude_none=True).items():
            setattr(prompt, field, value)
        await self.session.commit()
        await self.session.refresh(prompt)
        return prompt

    @log_function_call(logger)
    async def increment_likes(self, prompt_id: str) -> Prompt:
        return await self._increment(prompt_id, "likes")

    @log_function_call(logger)
    async def increment_uses(self, prompt_id: str) -> Prompt:
        return await self._increment(prompt_id, "uses")

    @log_function_call(logger)
    async def delete_prompt(self, prompt_id: str, permanent: bool = False) -> Optional[Prompt]:
        """
        Soft delete (isActive=false) by default; remove the row when permanent.

        Returns the deactivated prompt, or None after a permanent delete.
        """
        prompt = await self._load(prompt_id)
        if permanent:
            await self.session.delete(prompt)
            await self.session.commit()
            logger.info(f"Prompt permanently deleted: {prompt_id}")
            return None

        prompt.is_active = False
        await self.session.commit()
        await self.session.refresh(prompt)
        logger.info(f"Prompt deactivated: {prompt_id}")
        return prompt

    async def list_by_category(self, category: str, limit: int = 50) -> List[Prompt]:
        stmt = (
            select(Prompt)
            .where(Prompt.category == category, Prompt.is_active.is_(True))
            .order_by(Prompt.created_at.desc())
            .limit(limit)
        )
        return list((await self.session.scalars(stmt)).all())

    async def list_by_tag(self, tag: str) -> List[Prompt]:
        stmt = (
            select(Prompt)
            .where(
                _json_contains_any(Prompt.tags, [tag.strip().lower()]),
                Prompt.is_active.is_(True),
            )
            .order_by(Prompt.created_at.desc())
        )
        return list((await self.session.scalars(stmt)).all())

    async def list_popular(self, limit: int = 20) -> List[Prompt]:
        stmt = (
            select(Prompt)
            .where(Prompt.is_active.is_(True))
            .order_by(Prompt.likes.desc(), Prompt.views.desc())
            .limit(limit)
        )
        return list((await self.session.scalars(stmt)).all())

    async def list_categories(self) -> List[str]:
        stmt = select(distinct(Prompt.category)).order_by(Prompt.category)
        return list((await self.session.scalars(stmt)).all())

    async def list_tags(self) -> List[str]:
        tags = set()
        for prompt_tags in (await self.session.scalars(select(Prompt.tags))).all():
            tags.update(prompt_tags or [])
        return sorted(tags)

    async def list_recent(
        self, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT
    ) -> Tuple[List[Prompt], Pagination]:
        return await self.list_prompts(page=page, limit=limit, is_active=True)

    @log_function_call(logger)
    async def search_prompts(
        self, query: str, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT
    ) -> Tuple[List[Prompt], Pagination]:
        query = InputValidator.validate_search_query(query)
        terms = _search_terms(query)
        conditions = [_search_condition(terms), Prompt.is_active.is_(True)]

        stmt = (
            select(Prompt)
            .where(*conditions)
            .order_by(_search_score(terms).desc(), Prompt.created_at.desc())
        )
        prompts = (await self.session.scalars(page_window(stmt, page, limit))).all()
        total = await count_rows(self.session, Prompt, *conditions)
        return list(prompts), Pagination.build(page, limit, total)
