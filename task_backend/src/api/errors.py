"""
Error taxonomy for the task service.

The validator and the storage engine raise these; only the exception
handlers in error_handlers.py turn them into HTTP responses.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

PathItem = Union[str, int]


# PUBLIC_INTERFACE
class TaskAPIError(Exception):
    """
    Base class for failures that map onto the uniform error payload
    ``{"error": str, "statusCode": int, "details"?: [{"message", "path"}]}``.
    """

    status_code: int = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "statusCode": self.status_code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


# PUBLIC_INTERFACE
class ValidationError(TaskAPIError):
    """Client input was malformed. Always carries per-field details."""

    status_code = 400

    def __init__(self, details: List[Dict[str, Any]], message: str = "Validation error") -> None:
        super().__init__(message, details)

    @classmethod
    def single(cls, message: str, path: Sequence[PathItem]) -> "ValidationError":
        return cls([error_detail(message, path)])


# PUBLIC_INTERFACE
class NotFoundError(TaskAPIError):
    """The referenced resource has no matching row."""

    status_code = 404

    def __init__(self, resource: str = "Task") -> None:
        super().__init__(f"{resource} not found")


# PUBLIC_INTERFACE
class StoreError(TaskAPIError):
    """
    The relational store failed (connectivity, pool exhaustion, query error).

    The client only ever sees the generic message; the original exception is
    chained as ``__cause__`` for server-side logs.
    """

    status_code = 500

    def __init__(self, operation: str) -> None:
        super().__init__("Internal Server Error")
        self.operation = operation

    def __str__(self) -> str:
        return f"store operation '{self.operation}' failed"


def error_detail(message: str, path: Sequence[PathItem]) -> Dict[str, Any]:
    """Build one ``{"message", "path"}`` entry of a validation error."""
    return {"message": message, "path": list(path)}
