# tests/services/test_audit_service.py

import asyncio
from datetime import datetime, timedelta, timezone

from event_registration_api.app.services.audit_service import AuditService


def list_logs(**filters):
    return asyncio.run(AuditService.list_logs(**filters))


def test_date_filters_include_the_whole_day():
    asyncio.run(AuditService.log(user_id=None, action="create", object_type="event", object_id=1))
    today = datetime.now(timezone.utc).date()
    tomorrow = (today + timedelta(days=1)).isoformat()
    yesterday = (today - timedelta(days=1)).isoformat()

    same_day = list_logs(object_type="event", start_date=today.isoformat(), end_date=today.isoformat())
    up_to_today = list_logs(object_type="event", end_date=today.isoformat())

    assert [log["object_id"] for log in same_day] == [1]
    assert len(up_to_today) == 1
    assert list_logs(object_type="event", start_date=tomorrow) == []
    assert list_logs(object_type="event", end_date=yesterday) == []


def test_details_are_decoded():
    asyncio.run(
        AuditService.log(
            user_id=7, action="register", object_type="registration", object_id=3, details={"event_id": 5}
        )
    )

    logs = list_logs(user_id=7)

    assert logs[0]["action"] == "register"
    assert logs[0]["details"] == {"event_id": 5}
