from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

TITLE_MAX_LENGTH = 255


def _clean_title(value: str) -> str:
    """
    Strip surrounding whitespace and enforce 1..255 characters.
    """
    s = value.strip()
    if not s:
        raise ValueError("title must not be empty")
    if len(s) > TITLE_MAX_LENGTH:
        raise ValueError(f"title must be at most {TITLE_MAX_LENGTH} characters long")
    return s


def _coerce_bool(value: Any) -> bool:
    """
    Accept JSON booleans and the strings "true" / "false" in any case.
    null, numbers and every other string are rejected.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValueError("completed must be a boolean")


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new Task. Unknown fields are dropped.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"example": {"title": "Buy groceries"}},
    )

    title: str = Field(..., description="Short title for the task (1..255 characters after trimming)")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)


# PUBLIC_INTERFACE
class TaskReplace(BaseModel):
    """
    Schema for a full update of an existing Task. Both fields are required.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"example": {"title": "Buy groceries and milk", "completed": True}},
    )

    title: str = Field(..., description="Short title for the task (1..255 characters after trimming)")
    completed: bool = Field(..., description="Completion status flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("completed", mode="before")
    @classmethod
    def validate_completed(cls, v: Any) -> bool:
        return _coerce_bool(v)


# PUBLIC_INTERFACE
class TaskPatch(BaseModel):
    """
    Schema for PATCH /tasks/{id}/completed.

    ``completed`` is optional: when omitted the stored flag is flipped.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"example": {"completed": True}},
    )

    completed: Optional[bool] = Field(
        default=None,
        description="Target completion status; omit to toggle the current value",
    )

    @field_validator("completed", mode="before")
    @classmethod
    def validate_completed(cls, v: Any) -> bool:
        # Defaults are not validated, so an explicit null lands here and is rejected.
        return _coerce_bool(v)


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a Task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "3f0c1d2e-8a4b-4c5d-9e6f-7a8b9c0d1e2f",
                "title": "Buy groceries",
                "completed": False,
                "created_at": "2025-01-25T10:15:30.123456Z",
                "updated_at": "2025-01-25T10:15:30.123456Z",
            }
        }
    )

    id: UUID = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    updated_at: datetime = Field(..., description="Last update timestamp (UTC)")


class ErrorDetail(BaseModel):
    message: str
    path: List[Union[str, int]]


class ErrorResponse(BaseModel):
    """Uniform error payload returned for every failed request."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(..., description="Human-readable error message")
    status_code: int = Field(..., alias="statusCode", description="HTTP status code")
    details: Optional[List[ErrorDetail]] = Field(default=None, description="Per-field validation failures")


class HealthResponse(BaseModel):
    status: str = Field(default="ok")
    uptime: float = Field(..., description="Seconds since the application started")
