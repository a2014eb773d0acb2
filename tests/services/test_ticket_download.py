# tests/services/test_ticket_download.py

import asyncio

from event_registration_api.app.core.config import settings
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.services.registration_service import RegistrationService
from event_registration_api.app.services.ticket_service import TicketService
from tests.utils.event import count_rows, create_random_event
from tests.utils.users import create_random_user, identity_for


def test_download_issues_missing_ticket(monkeypatch):
    monkeypatch.setattr(settings, "tickets_enabled", False)
    visitor = create_random_user()
    event = create_random_event(create_random_user(Role.ORGANIZER))
    registration = asyncio.run(RegistrationService.register_for_event(visitor.id, event.id))
    assert count_rows("tickets") == 0

    filename, content = asyncio.run(TicketService.download_ticket(registration.id, identity_for(visitor)))

    assert count_rows("tickets", "registration_id = ?", (registration.id,)) == 1
    assert filename.startswith(f"ticket-TKT-{event.id}-{registration.id}-")
    assert content[:4] == b"%PDF"
