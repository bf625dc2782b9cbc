"""
SpendTrack Backend — Shared Response Schemas
==============================================

What:  Error and health response formats used by every router.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "invalid_price",
            "message": "Item price must be a number greater than zero (item 1)",
            "details": {"item_index": 1, "field": "price"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error kind")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class RootResponse(BaseModel):
    message: str
