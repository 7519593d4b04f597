"""
Common Pydantic schemas shared across the application.

Contains health check, error, pagination, and plain success schemas.
"""

import math
from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


# =============================================================================
# Health Check Schemas
# =============================================================================

class HealthResponse(BaseModel):
    """Basic health probe used by load balancers."""

    status: str = Field(..., description="healthy or unhealthy")
    version: str
    timestamp: datetime
    database: str = Field(..., description="connected or disconnected")
    cache: str = Field(default="disabled", description="connected, disconnected or disabled")
    environment: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "timestamp": "2024-01-15T10:30:00Z",
                "database": "connected",
                "cache": "disabled",
                "environment": "development"
            }
        }
    }


# =============================================================================
# Error Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """
    Body returned by the global exception handlers.

    Never carries tracebacks or database messages.
    """

    success: bool = False
    error: str = Field(..., description="Machine-readable error category")
    message: str = Field(..., description="Human-readable error message")

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error": "store_unavailable",
                "message": "The data store is unavailable. Please try again shortly."
            }
        }
    }


# =============================================================================
# Pagination Schemas
# =============================================================================

class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a list screen with its paging metadata."""

    items: List[T]
    total: int = Field(..., ge=0, description="Rows matching the filters across all pages")
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, items: List[T], total: int, page: int, page_size: int) -> "PaginatedResponse[T]":
        """Assemble a page with its metadata."""
        total_pages = math.ceil(total / page_size) if total > 0 else 0
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


# =============================================================================
# Success Response Schema
# =============================================================================

class SuccessResponse(BaseModel):
    """Acknowledgement for operations without a specific return body."""

    success: bool = True
    message: str
    data: Optional[Any] = None
