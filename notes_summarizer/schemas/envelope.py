"""
Response envelope models.

Used for OpenAPI documentation; the envelopes themselves are built by
notes_summarizer.responses.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    code: str = Field(description="Machine-readable error code, e.g. validation_error")
    message: str = Field(description="Human-readable description for display to users")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error context")


class ErrorEnvelope(BaseModel):
    """
    Example:
        {
            "success": false,
            "error": {"code": "not_found", "message": "summary with ID '...' was not found"},
            "metadata": {"timestamp": "2024-01-15T12:00:00Z", "request_id": "a1b2c3d4",
                         "status_code": 404}
        }
    """

    success: bool = False
    error: ErrorBody
    metadata: Dict[str, Any]


class SuccessEnvelope(BaseModel):
    success: bool = True
    data: Any = None
    metadata: Dict[str, Any]
