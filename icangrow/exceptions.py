"""
iCanGrow API — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for every failure the API reports.
Why:   Services raise domain errors; the handlers registered in main.py turn
       them into the `{success: false, error, details}` envelope with the
       right status code. Routes never build error responses by hand.
How:   Each exception carries a user-facing message and an optional context
       dict (logged server-side, returned as `details` only where safe).

Exception Hierarchy:
    ICanGrowError (base)
    ├── ValidationError              → 400 Bad Request
    ├── AuthenticationError          → 401 Unauthorized
    ├── AuthorizationError           → 403 Forbidden
    ├── NotFoundError                → 404 Not Found
    ├── ConflictError                → 409 Conflict
    │   └── InvalidTransitionError   → 409 Conflict
    ├── RateLimitExceededError       → 429 Too Many Requests
    ├── DatabaseError                → 500 Internal Server Error
    └── GatewayNotInitializedError   → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class ICanGrowError(Exception):
    """
    Base exception for all iCanGrow application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ICanGrowError):
    """Client input failed a business rule the request schema cannot express."""

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(ICanGrowError):
    """Missing, invalid or expired credentials, or an inactive profile."""

    status_code = 401
    error_code = "authentication_error"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(ICanGrowError):
    """Authenticated, but the caller's role is not in the route's allow-list."""

    status_code = 403
    error_code = "authorization_error"

    def __init__(
        self,
        message: str = "Insufficient permissions",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ICanGrowError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into this
    error so the message is keyed by the domain ("Batch not found",
    "eBR record not found") rather than by table name.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message or f"{resource} not found", context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(ICanGrowError):
    """The write collides with existing state (unique constraint, duplicate eBR)."""

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "The request conflicts with an existing record",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTransitionError(ConflictError):
    """A lifecycle status change that the entity's transition table forbids."""

    error_code = "invalid_transition"

    def __init__(
        self,
        entity: str,
        current: Optional[str],
        target: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"entity": entity, "current_status": current, "target_status": target})
        super().__init__(
            message=f"Cannot move {entity} from '{current}' to '{target}'",
            context=ctx,
        )
        self.entity = entity
        self.current = current
        self.target = target


class RateLimitExceededError(ICanGrowError):
    """Client exceeded the per-IP request budget for the current window."""

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(ICanGrowError):
    """
    Raised when a store operation fails unexpectedly.

    The message carries the domain action ("Failed to fetch batches"); the
    driver error itself only goes to the server log.
    """

    status_code = 500
    error_code = "database_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class GatewayNotInitializedError(ICanGrowError):
    """A gateway handle was requested before Gateway.initialize() ran."""

    status_code = 500
    error_code = "gateway_not_initialized"

    def __init__(self, tier: str = "restricted"):
        super().__init__(
            message=f"Database gateway ({tier} tier) not initialized",
            context={"tier": tier},
        )
        self.tier = tier
