"""
Input Validation Utilities.

Small, reusable validation helpers shared by the request schemas and the
services: identifier parsing, comma-separated list normalization, sort
resolution and conversion of pydantic error lists into the field-level format
returned by the API.

Key Components:
- `InputValidator`: Static helpers for identifiers, list-valued fields, search
  queries and sort parameters.
- `field_errors`: Turns pydantic/FastAPI error entries into
  `[{"field": ..., "message": ...}]`.
"""

import math
import re
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from core.exceptions import InvalidIdentifierError, ValidationError
from core.logging_config import get_logger

logger = get_logger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header", "form"}


class InputValidator:
    """Validation and normalization helpers"""

    USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
    URL_PATTERN = re.compile(r"^(http|https)://[^ \"]+$")

    @staticmethod
    def is_identifier(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        try:
            uuid.UUID(value)
        except ValueError:
            return False
        return True

    @staticmethod
    def validate_identifier(value: Any, entity: str) -> str:
        """Return the canonical identifier or raise InvalidIdentifierError"""
        if not InputValidator.is_identifier(value):
            logger.debug(f"Rejected malformed {entity} identifier: {value!r}")
            raise InvalidIdentifierError(entity.lower(), value)
        return str(uuid.UUID(value))

    @staticmethod
    def split_list(value: Any, lowercase: bool = False) -> List[str]:
        """
        Normalize a list-valued field.

        Accepts a list of strings or a single comma-separated string. Entries
        are trimmed, optionally lowercased, empty entries are dropped and
        duplicates removed while keeping the first occurrence.
        """
        if value is None:
            return []
        if isinstance(value, str):
            items: Iterable[Any] = value.split(",")
        elif isinstance(value, (list, tuple)):
            items = value
        else:
            raise ValueError("must be a string or an array of strings")

        result: List[str] = []
        for item in items:
            if not isinstance(item, str):
                raise ValueError("must be a string or an array of strings")
            item = item.strip()
            if lowercase:
                item = item.lower()
            if item and item not in result:
                result.append(item)
        return result

    @staticmethod
    def validate_search_query(query: Optional[str]) -> str:
        if query is None or not query.strip():
            raise ValidationError.for_field("q", "Search query is required")
        return query.strip()

    @staticmethod
    def resolve_sort(
        sort_by: str, sort_order: str, allowed: Dict[str, Any]
    ) -> Tuple[Any, bool]:
        """
        Map an API sort field onto a column.

        Returns ``(column, descending)``. Unknown fields or orders raise a
        ValidationError naming the offending parameter.
        """
        errors = []
        if sort_by not in allowed:
            errors.append(
                {
                    "field": "sortBy",
                    "message": f"Cannot sort by '{sort_by}'. Allowed: {', '.join(sorted(allowed))}",
                }
            )
        if sort_order not in ("asc", "desc"):
            errors.append({"field": "sortOrder", "message": "Must be 'asc' or 'desc'"})
        if errors:
            raise ValidationError(errors)
        return allowed[sort_by], sort_order == "desc"


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def field_errors(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Convert pydantic error dicts into API field errors"""
    result = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if not isinstance(part, int)]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        message = error.get("msg", "Invalid value")
        # pydantic prefixes messages raised from validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        result.append({"field": ".".join(loc) or "body", "message": message})
    return result
