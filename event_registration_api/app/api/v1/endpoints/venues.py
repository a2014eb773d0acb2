"""
Venue endpoints for API v1.

Administrators manage venues.  Organizers browse active venues and
check whether a venue is free before booking an event into it.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from event_registration_api.app.core.security import Identity, require_roles
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.schemas.venue import (
    VenueAvailability,
    VenueConflict,
    VenueCreate,
    VenueRead,
    VenueUpdate,
)
from event_registration_api.app.services.venue_service import VenueService


router = APIRouter()


@router.post("", response_model=VenueRead, status_code=status.HTTP_201_CREATED)
async def create_venue(
    venue: VenueCreate,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> VenueRead:
    return await VenueService.create_venue(venue, current_user)


@router.get("", response_model=List[VenueRead])
async def list_venues(
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> List[VenueRead]:
    """All venues, including inactive ones."""
    return await VenueService.list_venues()


@router.get("/active", response_model=List[VenueRead])
async def list_active_venues(
    current_user: Identity = Depends(require_roles(Role.ORGANIZER, Role.ADMIN)),
) -> List[VenueRead]:
    return await VenueService.list_venues(active_only=True)


@router.get("/{venue_id}", response_model=VenueRead)
async def get_venue(
    venue_id: int,
    current_user: Identity = Depends(require_roles(Role.ORGANIZER, Role.ADMIN)),
) -> VenueRead:
    return await VenueService.get_venue(venue_id)


@router.put("/{venue_id}", response_model=VenueRead)
async def update_venue(
    venue_id: int,
    updates: VenueUpdate,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> VenueRead:
    return await VenueService.update_venue(venue_id, updates, current_user)


@router.delete("/{venue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_venue(
    venue_id: int,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> None:
    """Delete a venue.  Refused while events still reference it."""
    await VenueService.delete_venue(venue_id, current_user)
    return None


@router.get("/{venue_id}/availability", response_model=VenueAvailability)
async def check_venue_availability(
    venue_id: int,
    start_time: datetime = Query(..., description="Start of the window (ISO 8601)"),
    end_time: datetime = Query(..., description="End of the window (ISO 8601)"),
    exclude_event_id: Optional[int] = Query(None, description="Event to ignore, e.g. the one being edited"),
    current_user: Identity = Depends(require_roles(Role.ORGANIZER, Role.ADMIN)),
) -> VenueAvailability:
    return await VenueService.check_availability(venue_id, start_time, end_time, exclude_event_id)


@router.get("/{venue_id}/conflicts", response_model=List[VenueConflict])
async def list_venue_conflicts(
    venue_id: int,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> List[VenueConflict]:
    """Pairs of active events at the venue with overlapping schedules."""
    return await VenueService.list_conflicts(venue_id)
