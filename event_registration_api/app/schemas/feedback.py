"""
Pydantic schemas for event feedback.

Visitors rate events they are registered for.  Administrators review
and flag feedback; the flags are part of the read model.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5", example=5)
    comment: Optional[str] = Field(None, description="Optional textual comment", example="Great talks")

    @field_validator("comment")
    @classmethod
    def sanitize_comment(cls, v: Optional[str]) -> Optional[str]:
        """Trim whitespace from the comment and enforce a maximum length."""
        if v is None:
            return None
        v = v.strip()
        if len(v) > 2000:
            raise ValueError("Comment must be 2000 characters or fewer")
        return v or None


class FeedbackRead(BaseModel):
    id: int
    event_id: int
    event_title: Optional[str] = None
    user_id: int
    user_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    is_reviewed: bool = False
    is_flagged: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }
