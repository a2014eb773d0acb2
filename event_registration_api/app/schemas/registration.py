"""
Pydantic models for event registrations.

A registration joins a visitor and an event.  Request bodies accept
both ``camelCase`` (``eventId``, ``privateCode``) and ``snake_case``
field names; responses use ``snake_case``.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class RegistrationStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class EventRegistrationCreate(BaseModel):
    """Body of ``POST /events/{event_id}/register``.

    ``visitor_id`` is only honoured for administrators; visitors always
    register themselves.
    """

    visitor_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("visitorId", "visitor_id")
    )
    private_code: Optional[str] = Field(
        None, max_length=100, validation_alias=AliasChoices("privateCode", "private_code")
    )
    phone: Optional[str] = Field(None, max_length=20, example="+15550100")
    notes: Optional[str] = Field(None, max_length=1000)


class RegistrationCreate(EventRegistrationCreate):
    """Body of ``POST /registrations``."""

    event_id: int = Field(..., validation_alias=AliasChoices("eventId", "event_id"), example=1)


class RegistrationRead(BaseModel):
    id: int
    event_id: int
    event_title: Optional[str] = None
    visitor_id: int
    visitor_name: Optional[str] = None
    visitor_email: Optional[str] = None
    status: RegistrationStatus
    registered_at: datetime
    phone: Optional[str] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }
