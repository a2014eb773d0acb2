"""
CSV export of an event's registrations.

Organizers download the attendee list of their own events;
administrators may export any event.  Cancelled registrations are
included so the file reflects the full history.
"""

import csv
import io
import logging
from typing import Optional

from event_registration_api.app.core.security import Identity
from event_registration_api.app.services.audit_service import AuditService
from event_registration_api.app.services.registration_service import RegistrationService


logger = logging.getLogger(__name__)

REGISTRATION_HEADERS = [
    "Registration ID",
    "Event ID",
    "Event Title",
    "User ID",
    "User Name",
    "User Email",
    "Status",
    "Registered At",
]


class ExportService:
    """Service producing CSV exports."""

    @classmethod
    async def event_registrations_csv(cls, event_id: int, actor: Optional[Identity] = None) -> str:
        """Return the registrations of ``event_id`` as CSV text, oldest first."""
        registrations = await RegistrationService.list_for_event(event_id, actor)
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(REGISTRATION_HEADERS)
        for registration in sorted(registrations, key=lambda r: (r.registered_at, r.id)):
            writer.writerow([
                registration.id,
                registration.event_id,
                registration.event_title or "",
                registration.visitor_id,
                registration.visitor_name or "",
                registration.visitor_email or "",
                registration.status.value,
                registration.registered_at.isoformat(),
            ])
        logger.info("Exported %s registrations of event %s", len(registrations), event_id)
        await AuditService.log(
            user_id=actor.user_id if actor else None,
            action="export",
            object_type="event",
            object_id=event_id,
            details={"rows": len(registrations)},
        )
        return output.getvalue()
