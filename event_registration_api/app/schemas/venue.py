"""
Pydantic models for venues.

A venue is a bookable place managed by administrators.  Events may
reference one venue; two active events cannot overlap at the same
venue.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class VenueBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, example="Town Hall")
    address: Optional[str] = Field(None, example="2 Market Square")
    city: Optional[str] = Field(None, example="Springfield")
    state: Optional[str] = Field(None, example="IL")
    # ``None`` means the venue does not limit event capacity.
    capacity: Optional[int] = Field(None, ge=1, example=300)
    map_data: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=512)
    unavailable_dates: List[date] = Field(default_factory=list, example=["2030-12-25"])


class VenueCreate(VenueBase):
    pass


class VenueUpdate(BaseModel):
    """Partial venue update; only provided fields change."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    map_data: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=512)
    unavailable_dates: Optional[List[date]] = None
    is_active: Optional[bool] = None


class VenueRead(VenueBase):
    id: int
    is_active: bool = True
    total_events: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class VenueAvailability(BaseModel):
    venue_id: int
    available: bool
    conflicting_event_ids: List[int] = []


class VenueConflict(BaseModel):
    """Two active events at the same venue whose schedules overlap."""

    venue_id: int
    venue_name: str
    event_id_1: int
    event_title_1: str
    start_time_1: datetime
    end_time_1: datetime
    event_id_2: int
    event_title_2: str
    start_time_2: datetime
    end_time_2: datetime
