"""
Shared response schemas.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str = Field(..., description="Human readable result")


class ErrorDetail(BaseModel):
    message: str = Field(..., description="Error message")
    type: str = Field(..., description="Error type")
    details: Optional[Any] = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Envelope produced by the API error handlers."""

    error: ErrorDetail
