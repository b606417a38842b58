"""
Prompt Endpoints.

REST surface for publishing, browsing and interacting with prompts.

Endpoints Provided:
- `GET /api/prompts`: Filtered, sorted, paginated listing.
- `POST /api/prompts`: Publish a prompt (JSON or multipart with `coverImage`).
- `GET /api/prompts/search`: Relevance-ranked text search over active prompts.
- `GET /api/prompts/popular`, `/recent`, `/categories`, `/tags`,
  `/category/{category}`, `/tag/{tag}`: Browse views.
- `GET|PUT|PATCH|DELETE /api/prompts/{id}`: Read (counts a view), full update,
  allow-listed partial update, soft or permanent delete.
- `PATCH /api/prompts/{id}/like`, `/use`: Atomic counter increments.

Architectural Design:
- Create and full update accept either a JSON body or a multipart form, since
  the publish dialog sends the cover image alongside the fields. Both shapes
  are parsed into the same typed schema before reaching the service.
- Static routes are declared before `/{prompt_id}` so they are not captured
  as identifiers.
"""

from typing import Any, Dict, Optional, Tuple, Type

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from core.exceptions import ValidationError
from core.logging_config import get_logger
from core.schemas import PromptCreate, PromptPatch, PromptRead, PromptUpdate
from core.validation import field_errors
from services.prompt_service import PromptService
from services.query_utils import MAX_LIMIT
from services.upload_service import UploadService

from .dependencies import (
    PageParams,
    get_prompt_service,
    get_upload_service,
)
from .responses import created, envelope

logger = get_logger(__name__)

router = APIRouter(prefix="/prompts", tags=["Prompts"])

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _prompt(prompt) -> Dict[str, Any]:
    return PromptRead.from_model(prompt).to_json()


async def read_prompt_payload(
    request: Request,
) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """Return the submitted fields and the optional cover image upload"""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        payload: Dict[str, Any] = {}
        upload = None
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key == "coverImage":
                    upload = value
                continue
            if key in payload:
                previous = payload[key]
                payload[key] = (previous if isinstance(previous, list) else [previous]) + [value]
            else:
                payload[key] = value
        return payload, upload

    try:
        body = await request.json()
    except ValueError:
        raise ValidationError.for_field("body", "Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError.for_field("body", "Request body must be a JSON object")
    return body, None


def parse_payload(model: Type[BaseModel], payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(field_errors(e.errors()))


@router.get("")
async def list_prompts(
    pages: PageParams = Depends(),
    search: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[str] = None,
    result_type: Optional[str] = Query(None, alias="resultType"),
    works_best_with: Optional[str] = Query(None, alias="worksBestWith"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    prompts: PromptService = Depends(get_prompt_service),
):
    items, pagination = await prompts.list_prompts(
        page=pages.page,
        limit=pages.limit,
        search=search,
        category=category,
        tags=tags,
        result_type=result_type,
        works_best_with=works_best_with,
        is_active=is_active,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return envelope([_prompt(p) for p in items], pagination=pagination)


@router.post("", status_code=201)
async def create_prompt(
    request: Request,
    prompts: PromptService = Depends(get_prompt_service),
    uploads: UploadService = Depends(get_upload_service),
):
    payload, upload = await read_prompt_payload(request)
    data = parse_payload(PromptCreate, payload)
    cover_image = await uploads.save_cover_image(upload)
    prompt = await prompts.create_prompt(data, cover_image=cover_image)
    return created(_prompt(prompt), "Prompt created successfully")


@router.get("/search")
async def search_prompts(
    q: Optional[str] = None,
    pages: PageParams = Depends(),
    prompts: PromptService = Depends(get_prompt_service),
):
    items, pagination = await prompts.search_prompts(q, page=pages.page, limit=pages.limit)
    return envelope([_prompt(p) for p in items], pagination=pagination)


@router.get("/popular")
async def popular_prompts(
    limit: int = Query(20, ge=1, le=MAX_LIMIT),
    prompts: PromptService = Depends(get_prompt_service),
):
    return envelope([_prompt(p) for p in await prompts.list_popular(limit)])


@router.get("/recent")
async def recent_prompts(
    pages: PageParams = Depends(),
    prompts: PromptService = Depends(get_prompt_service),
):
    items, pagination = await prompts.list_recent(page=pages.page, limit=pages.limit)
    return envelope([_prompt(p) for p in items], pagination=pagination)


@router.get("/categories")
async def list_categories(prompts: PromptService = Depends(get_prompt_service)):
    return envelope(await prompts.list_categories())


@router.get("/tags")
async def list_tags(prompts: PromptService = Depends(get_prompt_service)):
    return envelope(await prompts.list_tags())


@router.get("/category/{category}")
async def prompts_by_category(
    category: str,
    limit: int = Query(50, ge=1, le=MAX_LIMIT),
    prompts: PromptService = Depends(get_prompt_service),
):
    items = await prompts.list_by_category(category, limit)
    return envelope([_prompt(p) for p in items], count=len(items))


@router.get("/tag/{tag}")
async def prompts_by_tag(tag: str, prompts: PromptService = Depends(get_prompt_service)):
    items = await prompts.list_by_tag(tag)
    return envelope([_prompt(p) for p in items], count=len(items))


@router.get("/{prompt_id}")
async def get_prompt(prompt_id: str, prompts: PromptService = Depends(get_prompt_service)):
    return envelope(_prompt(await prompts.get_prompt(prompt_id)))


@router.put("/{prompt_id}")
async def update_prompt(
    prompt_id: str,
    request: Request,
    prompts: PromptService = Depends(get_prompt_service),
    uploads: UploadService = Depends(get_upload_service),
):
    payload, upload = await read_prompt_payload(request)
    data = parse_payload(PromptUpdate, payload)
    await prompts.require_prompt(prompt_id)
    cover_image = await uploads.save_cover_image(upload)
    prompt = await prompts.update_prompt(prompt_id, data, cover_image=cover_image)
    return envelope(_prompt(prompt), message="Prompt updated successfully")


@router.patch("/{prompt_id}")
async def partial_update_prompt(
    prompt_id: str,
    data: Optional[PromptPatch] = None,
    prompts: PromptService = Depends(get_prompt_service),
):
    prompt = await prompts.partial_update(prompt_id, data or PromptPatch())
    return envelope(_prompt(prompt), message="Prompt updated successfully")


@router.patch("/{prompt_id}/like")
async def like_prompt(prompt_id: str, prompts: PromptService = Depends(get_prompt_service)):
    prompt = await prompts.increment_likes(prompt_id)
    return envelope({"likes": prompt.likes})


@router.patch("/{prompt_id}/use")
async def use_prompt(prompt_id: str, prompts: PromptService = Depends(get_prompt_service)):
    prompt = await prompts.increment_uses(prompt_id)
    return envelope({"uses": prompt.uses})


@router.delete("/{prompt_id}")
async def delete_prompt(
    prompt_id: str,
    permanent: bool = False,
    prompts: PromptService = Depends(get_prompt_service),
):
    result = await prompts.delete_prompt(prompt_id, permanent=permanent)
    if permanent:
        return envelope(None, message="Prompt permanently deleted")
    return envelope(_prompt(result), message="Prompt deactivated successfully")
