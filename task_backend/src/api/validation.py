"""
Input validation for task requests.

Path identifiers and request bodies are validated fail-closed: anything
malformed raises ValidationError with every violation collected. List query
parameters are validated fail-open: a bad value silently becomes its default.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError, error_detail
from .repositories import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    MAX_LIMIT,
    MAX_OFFSET,
    SORT_FIELDS,
    SORT_ORDERS,
    ListQuery,
)
from .schemas import TaskCreate, TaskPatch, TaskReplace

_ModelT = TypeVar("_ModelT", bound=BaseModel)

# Version nibble 4 or 5, RFC 4122 variant.
_UUID_V4_V5 = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[45][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE,
)

# FastAPI prefixes request error locations with where the value came from.
_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def _message(err: Mapping[str, Any]) -> str:
    if err.get("type") == "value_error" and "error" in err.get("ctx", {}):
        return str(err["ctx"]["error"])
    loc = [str(part) for part in err.get("loc", ())]
    if loc:
        return f"{'.'.join(loc)}: {err.get('msg', 'invalid value')}"
    return str(err.get("msg", "invalid value"))


# PUBLIC_INTERFACE
def details_from_errors(errors: Iterable[Mapping[str, Any]], from_request: bool = False) -> List[Dict[str, Any]]:
    """
    Convert pydantic/FastAPI error dicts into ``[{"message", "path"}]`` entries.

    Args:
        errors: The ``errors()`` list of a pydantic or FastAPI validation error.
        from_request: Strip the leading request location (``body``, ``query``...)
            that FastAPI adds to each ``loc``.
    """
    details = []
    for err in errors:
        loc = list(err.get("loc", ()))
        if from_request and loc and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        details.append(error_detail(_message({**err, "loc": tuple(loc)}), loc))
    return details


def _validate_body(model: Type[_ModelT], payload: Any) -> _ModelT:
    if not isinstance(payload, dict):
        raise ValidationError.single("request body must be a JSON object", [])
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(details_from_errors(exc.errors())) from exc


# PUBLIC_INTERFACE
def validate_id(raw: Any) -> UUID:
    """
    Accept only UUID v4/v5 strings in the canonical 8-4-4-4-12 textual form.

    Raises:
        ValidationError: with a single detail at path ``["id"]``.
    """
    if not isinstance(raw, str) or not _UUID_V4_V5.fullmatch(raw):
        raise ValidationError.single("id must be a valid UUID (v4 or v5)", ["id"])
    return UUID(raw)


# PUBLIC_INTERFACE
def validate_create(payload: Any) -> TaskCreate:
    """Validate a create body: ``title`` required, trimmed, 1..255 characters."""
    return _validate_body(TaskCreate, payload)


# PUBLIC_INTERFACE
def validate_replace(payload: Any) -> TaskReplace:
    """Validate a full-update body: ``title`` and boolean ``completed`` both required."""
    return _validate_body(TaskReplace, payload)


# PUBLIC_INTERFACE
def validate_patch(payload: Any) -> TaskPatch:
    """
    Validate a completed-patch body. A missing body is the same as ``{}``,
    which asks for a toggle.
    """
    if payload is None:
        payload = {}
    return _validate_body(TaskPatch, payload)


def _positive_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    return value if value >= 1 else default


def _optional_bool(raw: Optional[str]) -> Optional[bool]:
    if raw is None:
        return None
    v = raw.strip().lower()
    if v == "true":
        return True
    if v == "false":
        return False
    return None


# PUBLIC_INTERFACE
def parse_list_query(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    completed: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> ListQuery:
    """
    Build a ListQuery from raw query-string values, never failing.

    - page: integer >= 1, default 1 (also when its offset would not fit a 64-bit SQL integer)
    - limit: integer >= 1, default 10, capped at 100
    - completed: 'true' / 'false' (case-insensitive); anything else means no filter
    - sort_by: created_at | updated_at | title, default created_at
    - sort_order: asc | desc (case-insensitive), default desc
    """
    field = (sort_by or "").strip()
    order = (sort_order or "").strip().lower()
    page_number = _positive_int(page, DEFAULT_PAGE)
    page_size = min(_positive_int(limit, DEFAULT_LIMIT), MAX_LIMIT)
    if (page_number - 1) * page_size > MAX_OFFSET:
        page_number = DEFAULT_PAGE
    return ListQuery(
        page=page_number,
        limit=page_size,
        completed=_optional_bool(completed),
        sort_by=field if field in SORT_FIELDS else DEFAULT_SORT_BY,
        sort_order=order if order in SORT_ORDERS else DEFAULT_SORT_ORDER,
    )
