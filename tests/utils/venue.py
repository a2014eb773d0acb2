import asyncio
import uuid

from event_registration_api.app.schemas.user import UserRead
from event_registration_api.app.schemas.venue import VenueCreate, VenueRead
from event_registration_api.app.services.venue_service import VenueService
from tests.utils.users import identity_for


def create_random_venue(admin: UserRead, **overrides) -> VenueRead:
    """
    Creates an active venue with a unique name for testing purposes.
    """
    fields = {
        "name": f"Hall {uuid.uuid4().hex[:6]}",
        "address": "2 Market Square",
        "city": "Springfield",
        "state": "IL",
        "capacity": 100,
    }
    fields.update(overrides)
    return asyncio.run(VenueService.create_venue(VenueCreate(**fields), identity_for(admin)))
