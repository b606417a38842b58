"""
Custom Exception Classes for the Sapien API.

This module defines the exceptions raised by services and validators. Each one
carries an error code, an HTTP status and a details payload so that the error
handlers can render a consistent JSON envelope without inspecting messages.

Key Components:
- `SapienAPIException`: The base class. Carries `message`, `error_code`,
  `status_code` and `details`.
- Specific Exception Classes: `ValidationError` (400, per-field messages),
  `InvalidIdentifierError` (400), `NotFoundError` (404), `ConflictError` (409),
  `AuthenticationError` (401), `UploadError` (400) and
  `DatabaseConnectionError` (500).
- `error_body`: Renders an exception as the JSON error envelope returned by
  the HTTP layer.

Architectural Design:
- Hierarchy of Exceptions: Services raise the most specific class; handlers
  catch the base class and rely on the attributes, never on the message text.
- Field-Level Details: `ValidationError` always carries a list of
  `{"field", "message"}` entries, one per violated field, so a single request
  can report every problem at once.
"""

from typing import Optional, Dict, Any, List


class SapienAPIException(Exception):
    """Base exception class for Sapien API"""

    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str = "SAPIEN_API_ERROR",
        details: Optional[Any] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ValidationError(SapienAPIException):
    """Raised when input validation fails"""

    status_code = 400

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation error"):
        super().__init__(message, "VALIDATION_ERROR", errors)
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, reason: str) -> "ValidationError":
        return cls([{"field": field, "message": reason}])

    @property
    def fields(self) -> List[str]:
        return [error["field"] for error in self.errors]


class InvalidIdentifierError(SapienAPIException):
    """Raised when an identifier is not well formed"""

    status_code = 400

    def __init__(self, entity: str, value: Any):
        super().__init__(
            f"Invalid {entity} ID",
            "INVALID_IDENTIFIER",
            {"entity": entity, "value": str(value)},
        )


class NotFoundError(SapienAPIException):
    """Raised when a record does not exist"""

    status_code = 404

    def __init__(self, entity: str, message: Optional[str] = None):
        super().__init__(
            message or f"{entity} not found",
            f"{entity.upper()}_NOT_FOUND",
            {"entity": entity},
        )


class ConflictError(SapienAPIException):
    """Raised when a unique field is already taken"""

    status_code = 409

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message, "CONFLICT", {"fields": fields or []})


class AuthenticationError(SapienAPIException):
    """Raised when login credentials are rejected"""

    status_code = 401

    def __init__(self, reason: str):
        super().__init__(reason, "AUTHENTICATION_ERROR", {"reason": reason})


class UploadError(ValidationError):
    """Raised when an uploaded file is rejected"""

    def __init__(self, field: str, reason: str):
        super().__init__([{"field": field, "message": reason}], message=reason)
        self.error_code = "UPLOAD_ERROR"


class DatabaseConnectionError(SapienAPIException):
    """Raised when database operations fail"""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Database operation '{operation}' failed: {reason}",
            "DATABASE_ERROR",
            {"operation": operation, "reason": reason},
        )


def error_body(exc: SapienAPIException) -> Dict[str, Any]:
    """Response envelope for a SapienAPIException"""
    body: Dict[str, Any] = {"success": False, "error": exc.message}
    if isinstance(exc, ValidationError):
        body["details"] = exc.errors
    return body
