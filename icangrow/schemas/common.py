"""
iCanGrow API — Shared Response Schemas
========================================

What:  The response envelope, the paginated page wrapper, and the error and
       health bodies shared by every route module.
Why:   Clients parse one shape everywhere:
           success → {"success": true, "data": ..., "message": ...}
           failure → {"success": false, "error": ..., "details": ..., "request_id": ...}
How:   Routes declare `response_model=Envelope[...]`; FastAPI serializes by
       alias, so Page.total_pages goes out as "totalPages".
"""

import uuid
from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Success envelope wrapped around every 2xx body."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class Page(BaseModel, Generic[T]):
    """
    One page of a filtered listing.

    Built straight from services.base.PageResult (from_attributes), whose
    `total_pages` property is ceil(total / limit).
    """

    records: List[T] = Field(description="Items on this page")
    total: int = Field(description="Rows matching the filters, across all pages")
    page: int = Field(description="1-based page number")
    limit: int = Field(description="Page size")
    total_pages: int = Field(alias="totalPages", description="ceil(total / limit)")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ErrorResponse(BaseModel):
    """
    Body returned by every exception handler.

    Example:
        {
            "success": false,
            "error": "eBR record not found",
            "details": {"resource": "eBR record"},
            "request_id": "550e8400"
        }
    """

    success: bool = False
    error: str = Field(description="Human-readable error description")
    details: Optional[Any] = Field(default=None, description="Field errors or extra context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="'OK' while the process is serving")
    timestamp: datetime
    environment: str
    version: str
    database: str = Field(description="connected | disconnected")


class ProfileSummary(BaseModel):
    """Display fields joined onto records that reference a profile."""

    id: uuid.UUID
    full_name: Optional[str] = None
    role: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RequestModel(BaseModel):
    """
    Base for request bodies.

    use_enum_values stores the plain string of each status enum, which is
    what the String columns hold.
    """

    model_config = ConfigDict(use_enum_values=True, str_strip_whitespace=True)
