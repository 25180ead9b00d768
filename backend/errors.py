# errors.py — Application exception hierarchy
"""
Typed errors raised by services and repositories.

Routers never translate these by hand: main.py registers a single handler for
AppError that renders the failure envelope with the error's status code.

    raise NotFoundError("Card not found")
    raise ValidationError("Invalid column order", details={"missing": [...]})
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for expected, client-visible failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class BadRequestError(AppError):
    """Semantically invalid request (self-transfer, same container, no insertion point)."""

    status_code = 400
    default_message = "Bad request"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    """Referenced entity does not exist.

    Also used for entities that exist in another company, so a caller cannot
    probe for ids outside its tenant.
    """

    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """Concurrent modification or duplicate detected before commit.

    Callers are expected to re-fetch and retry; the engine never retries.
    """

    status_code = 409
    default_message = "Resource conflict"


class ValidationError(AppError):
    """Well-formed payload that violates a business rule.

    `details` carries field-level information for the response body.
    """

    status_code = 422
    default_message = "Validation failed"
