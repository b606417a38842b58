"""
Response envelope helpers.

Every successful response has the shape
``{"success": true, "data": ..., "message"?, "pagination"?, "count"?}``.
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from core.schemas import Pagination


def envelope(
    data: Any = None,
    message: Optional[str] = None,
    pagination: Optional[Pagination] = None,
    **extra: Any,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination.model_dump()
    body.update(extra)
    return body


def created(data: Any, message: str) -> JSONResponse:
    return JSONResponse(status_code=201, content=envelope(data, message=message))
