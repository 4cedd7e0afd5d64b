"""
Standard API response models and helpers for consistent response formatting.

Envelopes:
- Success: { "success": true, "data": <payload>, "meta": {...} }
- Error: { "success": false, "error": { "code": "...", "message": "...", "details": {...} } }

Public read endpoints (posts, slides, services) return bare JSON for the
site frontend; mutations and admin listings use the envelope.
"""
from typing import Any
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standard error detail structure."""
    code: str = Field(..., description="Error code (e.g., 'notfound', 'validation')")
    message: str = Field(..., description="Human-readable error message")
    details: Any = Field(default=None, description="Additional error context")


class StandardErrorResponse(BaseModel):
    """Standard error response envelope."""
    success: bool = Field(False, description="Always false for errors")
    error: ErrorDetail = Field(..., description="Error details")


def error_response(code: str, message: str, details: Any = None) -> dict[str, Any]:
    """Build the error envelope used by the global exception handlers."""
    return StandardErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details),
    ).model_dump()


def success_response(data: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create a standardized success response.

    Args:
        data: The response payload
        meta: Optional metadata (pagination, timestamps, etc.)

    Returns:
        dict: { "success": true, "data": <data>, "meta": <meta> }
    """
    response = {"success": True, "data": data}
    if meta:
        response["meta"] = meta
    return response


def paginated_response(
    items: list[Any],
    limit: int,
    offset: int = 0,
    total: int | None = None,
) -> dict[str, Any]:
    """
    Create a standardized paginated response.

    Returns:
        dict: { "success": true, "data": <items>, "meta": { "limit", "offset", "total", "hasMore" } }
    """
    if total is None:
        total = len(items)

    meta = {
        "limit": limit,
        "offset": offset,
        "total": total,
        "hasMore": (offset + limit) < total,
    }

    return success_response(data=items, meta=meta)
