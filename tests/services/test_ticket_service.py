# tests/services/test_ticket_service.py

import asyncio

import pytest

from event_registration_api.app.core.errors import ConflictError, ForbiddenError, NotFoundError
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.services.registration_service import RegistrationService
from event_registration_api.app.services.ticket_service import TicketService, make_ticket_code
from tests.utils.event import count_rows, create_random_event
from tests.utils.users import create_random_user, identity_for


def _registered(organizer):
    visitor = create_random_user()
    event = create_random_event(organizer)
    registration = asyncio.run(RegistrationService.register_for_event(visitor.id, event.id))
    return visitor, event, registration


def test_ticket_code_format():
    code = make_ticket_code(7, 42)
    prefix, event_id, registration_id, suffix = code.split("-")
    assert (prefix, event_id, registration_id) == ("TKT", "7", "42")
    assert len(suffix) == 8
    assert suffix == suffix.upper()
    int(suffix, 16)


def test_generate_ticket_is_idempotent():
    organizer = create_random_user(Role.ORGANIZER)
    _, _, registration = _registered(organizer)

    first = asyncio.run(TicketService.generate_ticket(registration.id))
    second = asyncio.run(TicketService.generate_ticket(registration.id))

    assert first.ticket_code == second.ticket_code
    assert count_rows("tickets", "registration_id = ?", (registration.id,)) == 1


def test_check_in_by_organizer():
    organizer = create_random_user(Role.ORGANIZER)
    visitor, _, registration = _registered(organizer)
    ticket = asyncio.run(TicketService.get_ticket_for_registration(registration.id, identity_for(visitor)))

    checked = asyncio.run(TicketService.check_in(ticket.ticket_code, identity_for(organizer)))

    assert checked.is_checked_in is True
    assert checked.checked_in_at is not None
    with pytest.raises(ConflictError):
        asyncio.run(TicketService.check_in(ticket.ticket_code, identity_for(organizer)))


def test_check_in_rejects_other_organizers_and_cancelled_registrations():
    organizer = create_random_user(Role.ORGANIZER)
    other = create_random_user(Role.ORGANIZER)
    _, _, registration = _registered(organizer)
    ticket = asyncio.run(TicketService.get_ticket_for_registration(registration.id))

    with pytest.raises(ForbiddenError):
        asyncio.run(TicketService.check_in(ticket.ticket_code, identity_for(other)))

    asyncio.run(RegistrationService.cancel_registration(registration.id))
    with pytest.raises(ConflictError):
        asyncio.run(TicketService.check_in(ticket.ticket_code, identity_for(organizer)))


def test_ticket_visibility():
    organizer = create_random_user(Role.ORGANIZER)
    stranger = create_random_user()
    _, _, registration = _registered(organizer)

    with pytest.raises(ForbiddenError):
        asyncio.run(TicketService.get_ticket_for_registration(registration.id, identity_for(stranger)))
    with pytest.raises(NotFoundError):
        asyncio.run(TicketService.get_ticket_for_registration(999999))
    with pytest.raises(NotFoundError):
        asyncio.run(TicketService.check_in("TKT-0-0-DEADBEEF", identity_for(organizer)))
