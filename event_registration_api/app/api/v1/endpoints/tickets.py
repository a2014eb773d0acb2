"""
Ticket endpoints for API v1.

Door check-in for organizers.  Tickets themselves are read through
``GET /registrations/{id}/ticket``.
"""

from fastapi import APIRouter, Depends

from event_registration_api.app.core.security import Identity, require_roles
from event_registration_api.app.schemas.ticket import TicketRead
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.services.ticket_service import TicketService


router = APIRouter()


@router.post("/{ticket_code}/check-in", response_model=TicketRead)
async def check_in(
    ticket_code: str,
    current_user: Identity = Depends(require_roles(Role.ORGANIZER, Role.ADMIN)),
) -> TicketRead:
    """Mark a ticket as used.  A ticket can be checked in only once."""
    return await TicketService.check_in(ticket_code, current_user)
