"""
Registration endpoints for API v1.

``POST /registrations`` and ``PUT /registrations/cancel/{id}`` drive
the registration workflow.  The read routes let visitors see their own
registrations, organizers those of their events and administrators
everything.  Visitors download their ticket as a PDF.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from event_registration_api.app.core.security import Identity, get_current_user, require_roles
from event_registration_api.app.schemas.registration import (
    RegistrationCreate,
    RegistrationRead,
    RegistrationStatus,
)
from event_registration_api.app.schemas.ticket import TicketRead
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.services.registration_service import RegistrationService
from event_registration_api.app.services.ticket_service import TicketService


router = APIRouter()


@router.post("", response_model=RegistrationRead)
@router.post("/", response_model=RegistrationRead, include_in_schema=False)
async def create_registration(
    payload: RegistrationCreate,
    current_user: Identity = Depends(require_roles(Role.VISITOR, Role.ADMIN)),
) -> RegistrationRead:
    """Register a visitor for an event.

    ``visitorId`` defaults to the caller.  Only administrators may
    register somebody else, and only ``VISITOR`` accounts can be
    registered.  Private events require ``privateCode``.
    """
    visitor_id = payload.visitor_id if payload.visitor_id is not None else current_user.user_id
    return await RegistrationService.register_for_event(
        visitor_id=visitor_id,
        event_id=payload.event_id,
        private_code=payload.private_code,
        phone=payload.phone,
        notes=payload.notes,
        actor=current_user,
    )


@router.put("/cancel/{registration_id}")
async def cancel_registration(
    registration_id: int,
    current_user: Identity = Depends(get_current_user),
) -> Response:
    """Cancel a registration and free its seat.  Responds with an empty body."""
    await RegistrationService.cancel_registration(registration_id, current_user)
    return Response(status_code=status.HTTP_200_OK)


@router.get("", response_model=List[RegistrationRead])
@router.get("/", response_model=List[RegistrationRead], include_in_schema=False)
async def list_registrations(
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> List[RegistrationRead]:
    return await RegistrationService.list_all(status=status_filter, limit=limit, offset=offset)


@router.get("/me", response_model=List[RegistrationRead])
async def list_my_registrations(
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    current_user: Identity = Depends(get_current_user),
) -> List[RegistrationRead]:
    return await RegistrationService.list_for_visitor(current_user.user_id, status=status_filter)


@router.get("/visitor/{visitor_id}", response_model=List[RegistrationRead])
async def list_visitor_registrations(
    visitor_id: int,
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    current_user: Identity = Depends(get_current_user),
) -> List[RegistrationRead]:
    """Registrations of a visitor; visitors may only look up their own."""
    if not current_user.is_admin and current_user.user_id != visitor_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return await RegistrationService.list_for_visitor(visitor_id, status=status_filter)


@router.get("/event/{event_id}", response_model=List[RegistrationRead])
async def list_event_registrations(
    event_id: int,
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    current_user: Identity = Depends(require_roles(Role.ORGANIZER, Role.ADMIN)),
) -> List[RegistrationRead]:
    return await RegistrationService.list_for_event(event_id, current_user, status=status_filter)


@router.get("/{registration_id}", response_model=RegistrationRead)
async def get_registration(
    registration_id: int,
    current_user: Identity = Depends(get_current_user),
) -> RegistrationRead:
    return await RegistrationService.get_registration(registration_id, current_user)


@router.get("/{registration_id}/ticket", response_model=TicketRead)
async def get_registration_ticket(
    registration_id: int,
    current_user: Identity = Depends(get_current_user),
) -> TicketRead:
    return await TicketService.get_ticket_for_registration(registration_id, current_user)


@router.get("/{registration_id}/ticket/download")
async def download_registration_ticket(
    registration_id: int,
    current_user: Identity = Depends(require_roles(Role.VISITOR)),
) -> Response:
    """Download the caller's ticket as a PDF, issuing it first if needed."""
    filename, content = await TicketService.download_ticket(registration_id, current_user)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
