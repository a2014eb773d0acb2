"""
Event endpoints for API v1.

Organizers create events and manage their own; administrators may
manage any event.  Anyone can browse public events.  The register
route is a shortcut to the registration workflow with the event taken
from the URL.  Organizers export the attendee list as CSV and
registered visitors leave feedback.
"""

import io
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse

from event_registration_api.app.core.security import (
    Identity,
    get_optional_user,
    require_roles,
)
from event_registration_api.app.schemas.event import EventCreate, EventRead, EventType, EventUpdate
from event_registration_api.app.schemas.feedback import FeedbackCreate, FeedbackRead
from event_registration_api.app.schemas.registration import (
    EventRegistrationCreate,
    RegistrationRead,
    RegistrationStatus,
)
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.services.event_service import EventService
from event_registration_api.app.services.export_service import ExportService
from event_registration_api.app.services.feedback_service import FeedbackService
from event_registration_api.app.services.registration_service import RegistrationService


router = APIRouter()


@router.post("/", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    event: EventCreate,
    current_user: Identity = Depends(require_roles(Role.ORGANIZER)),
) -> EventRead:
    """Create a new event owned by the calling organizer.

    The start must be in the future and the end after the start.
    Private events need a ``private_code``.
    """
    return await EventService.create_event(event, current_user)


@router.get("/", response_model=List[EventRead])
async def list_events(
    organizer_id: Optional[int] = Query(None),
    category: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    event_type: Optional[EventType] = Query(None),
    date_from: Optional[datetime] = Query(None, description="Earliest start time (ISO 8601)"),
    date_to: Optional[datetime] = Query(None, description="Latest start time (ISO 8601)"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: Optional[Identity] = Depends(get_optional_user),
) -> List[EventRead]:
    """List active events.

    - **organizer_id** restricts the list to one organizer.
    - **category**, **city** filter case-insensitively.
    - **date_from**, **date_to** bound the start time.
    - Private events are only listed for their organizer and admins.
    """
    return await EventService.list_events(
        viewer=current_user,
        organizer_id=organizer_id,
        category=category,
        city=city,
        event_type=event_type,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )


@router.get("/my-events", response_model=List[EventRead])
async def list_my_events(
    when: Optional[str] = Query(None, pattern="^(upcoming|past)$"),
    current_user: Identity = Depends(require_roles(Role.ORGANIZER)),
) -> List[EventRead]:
    """Events organized by the caller, optionally only upcoming or past ones."""
    return await EventService.list_organizer_events(current_user, when=when)


@router.get("/{event_id}", response_model=EventRead)
async def get_event(
    event_id: int,
    current_user: Optional[Identity] = Depends(get_optional_user),
) -> EventRead:
    return await EventService.get_event(event_id, current_user)


@router.put("/{event_id}", response_model=EventRead)
async def update_event(
    event_id: int,
    updates: EventUpdate,
    current_user: Identity = Depends(require_roles(Role.ORGANIZER, Role.ADMIN)),
) -> EventRead:
    """Update an event.

    Only the owning organizer or an administrator may modify it.
    Partial updates are supported; unspecified fields stay unchanged.
    """
    return await EventService.update_event(event_id, updates, current_user)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: int,
    current_user: Identity = Depends(require_roles(Role.ORGANIZER, Role.ADMIN)),
) -> None:
    """Delete an event together with its registrations, tickets and feedback."""
    await EventService.delete_event(event_id, current_user)
    return None


@router.get("/{event_id}/registrations", response_model=List[RegistrationRead])
async def list_event_registrations(
    event_id: int,
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    current_user: Identity = Depends(require_roles(Role.ORGANIZER, Role.ADMIN)),
) -> List[RegistrationRead]:
    """Registrations of an event, for its organizer or an administrator."""
    return await RegistrationService.list_for_event(event_id, current_user, status=status_filter)


@router.post("/{event_id}/register", response_model=RegistrationRead)
async def register_for_event(
    event_id: int,
    payload: Optional[EventRegistrationCreate] = None,
    current_user: Identity = Depends(require_roles(Role.VISITOR, Role.ADMIN)),
) -> RegistrationRead:
    """Register the caller (or, for admins, ``visitorId``) for an event."""
    payload = payload or EventRegistrationCreate()
    visitor_id = payload.visitor_id if payload.visitor_id is not None else current_user.user_id
    return await RegistrationService.register_for_event(
        visitor_id=visitor_id,
        event_id=event_id,
        private_code=payload.private_code,
        phone=payload.phone,
        notes=payload.notes,
        actor=current_user,
    )


@router.get("/{event_id}/export")
async def export_event_registrations(
    event_id: int,
    current_user: Identity = Depends(require_roles(Role.ORGANIZER, Role.ADMIN)),
) -> StreamingResponse:
    """Download the event's registrations as CSV (owning organizer or admin)."""
    content = await ExportService.event_registrations_csv(event_id, current_user)
    return StreamingResponse(
        io.BytesIO(content.encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="event_{event_id}_registrations.csv"'},
    )


@router.post("/{event_id}/feedback", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    event_id: int,
    feedback: FeedbackCreate,
    current_user: Identity = Depends(require_roles(Role.VISITOR)),
) -> FeedbackRead:
    """Rate an event you are registered for (1 to 5, once per event)."""
    return await FeedbackService.submit_feedback(event_id, feedback, current_user)
