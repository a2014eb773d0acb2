"""
Pydantic models for event data.

These schemas define the structure of event data exchanged via the
API.  The ``EventBase`` class contains shared fields; ``EventCreate``
extends it for requests, and ``EventRead`` adds the identifier,
ownership and attendance bookkeeping for responses.  Business rules
(dates in the future, private code presence) are enforced by
``EventService`` so that they surface as domain errors.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, example="Python Meetup")
    description: Optional[str] = Field(None, example="Monthly community meetup")
    start_time: datetime = Field(..., example="2030-09-01T18:00:00Z")
    end_time: datetime = Field(..., example="2030-09-01T21:00:00Z")
    address: Optional[str] = Field(None, example="1 Main Street")
    city: Optional[str] = Field(None, example="Springfield")
    state: Optional[str] = Field(None, example="IL")
    category: Optional[str] = Field(None, max_length=100, example="Technology")
    image_url: Optional[str] = Field(None, max_length=512)
    # ``None`` means unlimited capacity.
    max_attendees: Optional[int] = Field(None, ge=1, example=50)
    event_type: EventType = Field(EventType.PUBLIC, example="PUBLIC")
    private_code: Optional[str] = Field(None, max_length=100, example=None)
    venue_id: Optional[int] = Field(None, example=None)


class EventCreate(EventBase):
    """Schema for creating an event."""
    pass


class EventUpdate(BaseModel):
    """Schema for updating an event.

    All fields are optional; only provided fields will be updated.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = Field(None, max_length=512)
    max_attendees: Optional[int] = Field(None, ge=1)
    event_type: Optional[EventType] = None
    private_code: Optional[str] = Field(None, max_length=100)
    venue_id: Optional[int] = None
    is_active: Optional[bool] = None


class EventRead(EventBase):
    """Schema for reading an event from the API.

    ``private_code`` is only populated for the owning organizer and
    administrators.
    """

    id: int
    organizer_id: int
    organizer_name: Optional[str] = None
    venue_name: Optional[str] = None
    current_attendees: int = 0
    available_spots: Optional[int] = None
    is_active: bool = True
    location: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }
