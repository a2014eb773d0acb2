# tests/conftest.py

import asyncio

import pytest
from fastapi.testclient import TestClient

from event_registration_api.app.core.config import settings
from event_registration_api.app.core.db import init_db
from event_registration_api.app.main import app
from event_registration_api.app.services.user_service import UserService

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass"


@pytest.fixture(autouse=True)
def test_database(tmp_path, monkeypatch):
    """Point every test at a fresh SQLite file with the schema applied."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "test.db"))
    monkeypatch.setattr(settings, "admin_email", ADMIN_EMAIL)
    monkeypatch.setattr(settings, "admin_password", ADMIN_PASSWORD)
    monkeypatch.setattr(settings, "tickets_enabled", True)
    init_db()
    asyncio.run(UserService.ensure_admin())
    yield


@pytest.fixture(scope="function")
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin():
    from tests.utils.users import get_user_by_email

    return get_user_by_email(ADMIN_EMAIL)
