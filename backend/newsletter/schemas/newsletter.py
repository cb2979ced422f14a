"""
Newsletter Backend: Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the JSON contract of the API.
How:   FastAPI validates request bodies against these models (failures
       become 400 responses, see main.py) and serializes responses from them.
"""

from typing import Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class IssueContent(BaseModel):
    html: str = Field(description="HTML body of the issue")
    text: str = Field(description="Plain-text body of the issue")


class PublishRequest(BaseModel):
    """
    What:  A newsletter issue to deliver to every confirmed subscriber.
    Who:   Body of POST /newsletters.

    Example:
        {
            "title": "Issue #1",
            "content": {"html": "<p>Hello</p>", "text": "Hello"}
        }
    """
    title: str = Field(description="Email subject line")
    content: IssueContent


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable outcome")


class PublishResponse(BaseModel):
    delivered: int = Field(description="Confirmed subscribers the issue was sent to")
    skipped: int = Field(description="Confirmed subscribers skipped due to an invalid stored email")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "'not-an-email' is not a valid email address.",
            "details": {"field": "email"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
