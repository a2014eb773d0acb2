# tests/services/test_user_service.py

import asyncio

import pytest

from event_registration_api.app.core.errors import ConflictError, ForbiddenError, ValidationError
from event_registration_api.app.schemas.user import Role, UserCreate, UserUpdate
from event_registration_api.app.services.registration_service import RegistrationService
from event_registration_api.app.services.user_service import UserService
from tests.conftest import ADMIN_EMAIL
from tests.utils.event import count_rows, create_random_event, get_attendee_count
from tests.utils.users import create_random_user


def test_email_is_unique_case_insensitively():
    asyncio.run(UserService.create_user(UserCreate(name="A", email="Dup@Example.com", password="secret123")))

    with pytest.raises(ConflictError):
        asyncio.run(UserService.create_user(UserCreate(name="B", email="dup@example.com", password="secret123")))


def test_admin_cannot_self_register():
    with pytest.raises(ForbiddenError):
        asyncio.run(
            UserService.create_user(
                UserCreate(name="Root", email="root@example.com", password="secret123", role=Role.ADMIN)
            )
        )


def test_authenticate():
    user = create_random_user()

    assert asyncio.run(UserService.authenticate(user.email, "secret123")).id == user.id
    assert asyncio.run(UserService.authenticate(user.email, "wrong")) is None
    assert asyncio.run(UserService.authenticate("nobody@example.com", "secret123")) is None


def test_deactivated_user_cannot_authenticate(admin):
    user = create_random_user()

    asyncio.run(UserService.set_active(user.id, False, admin.id))

    assert asyncio.run(UserService.authenticate(user.email, "secret123")) is None
    with pytest.raises(ValidationError):
        asyncio.run(UserService.set_active(admin.id, False, admin.id))


def test_update_profile_changes_password():
    user = create_random_user()

    updated = asyncio.run(UserService.update_profile(user.id, UserUpdate(name="New Name", password="another1")))

    assert updated.name == "New Name"
    assert asyncio.run(UserService.authenticate(user.email, "another1")) is not None


def test_ensure_admin_is_idempotent():
    asyncio.run(UserService.ensure_admin())
    asyncio.run(UserService.ensure_admin())

    assert count_rows("users", "email = ?", (ADMIN_EMAIL,)) == 1


def test_delete_visitor_releases_seats(admin):
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer, max_attendees=2)
    asyncio.run(RegistrationService.register_for_event(visitor.id, event.id))
    assert get_attendee_count(event.id) == 1

    asyncio.run(UserService.delete_user(visitor.id, admin.id))

    assert get_attendee_count(event.id) == 0
    assert count_rows("registrations", "visitor_id = ?", (visitor.id,)) == 0
    assert count_rows("tickets") == 0


def test_delete_organizer_removes_their_events(admin):
    organizer = create_random_user(Role.ORGANIZER)
    visitor = create_random_user()
    event = create_random_event(organizer)
    asyncio.run(RegistrationService.register_for_event(visitor.id, event.id))

    asyncio.run(UserService.delete_user(organizer.id, admin.id))

    assert count_rows("events", "organizer_id = ?", (organizer.id,)) == 0
    assert count_rows("registrations", "event_id = ?", (event.id,)) == 0
    assert count_rows("users", "id = ?", (visitor.id,)) == 1


def test_admin_cannot_delete_self(admin):
    with pytest.raises(ValidationError):
        asyncio.run(UserService.delete_user(admin.id, admin.id))
