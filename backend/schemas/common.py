"""Common schemas used across the API.

This module contains reusable schema components for consistent API responses.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error response format.

    Attributes:
        detail: Human-readable error message
        retryable: True when repeating the same request is safe and may succeed
    """
    detail: str = Field(..., description="Human-readable error description")
    retryable: bool = Field(False, description="Whether the request can simply be retried")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"detail": "Asset not found", "retryable": False},
                {"detail": "Failed to generate zip file. Please try again.", "retryable": True},
            ]
        }
    }


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    version: str = "1.0.0"
    ai_configured: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    run_state: Optional[str] = None
