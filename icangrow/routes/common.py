"""Helpers shared by the route modules: role groups, pagination, envelopes."""

from typing import Any, Dict, Optional

from fastapi import Query

from icangrow.lifecycle import Role
from icangrow.schemas.common import ErrorResponse
from icangrow.services.base import PageResult

API_PREFIX = "/api/v1"

# Allow-lists reused across modules
QA_ROLES = (Role.ADMIN, Role.QA_MANAGER)
QUALITY_ROLES = (Role.ADMIN, Role.QA_MANAGER, Role.CULTIVATION_LEAD)
CULTIVATION_ROLES = (Role.ADMIN, Role.CULTIVATION_LEAD)

ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"description": "Invalid request", "model": ErrorResponse},
    401: {"description": "Missing or invalid credentials", "model": ErrorResponse},
    403: {"description": "Role not allowed", "model": ErrorResponse},
    404: {"description": "Not found", "model": ErrorResponse},
    409: {"description": "Conflicting state", "model": ErrorResponse},
}


class Pagination:
    """`page` (1-based) and `limit` (1-100) query parameters."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="1-based page number"),
        limit: int = Query(default=20, ge=1, le=100, description="Items per page (max 100)"),
    ):
        self.page = page
        self.limit = limit


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Success envelope; FastAPI validates it against the route's response_model."""
    return {"success": True, "data": data, "message": message}


def paged(result: PageResult, message: Optional[str] = None) -> Dict[str, Any]:
    return ok(
        {
            "records": result.records,
            "total": result.total,
            "page": result.page,
            "limit": result.limit,
            "totalPages": result.total_pages,
        },
        message,
    )
