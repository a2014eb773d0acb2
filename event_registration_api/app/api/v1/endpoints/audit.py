"""
Audit log endpoints for API v1.

Provides access to the audit trail for administrators.  Logs capture
account changes, event changes, registrations and cancellations, and
support filtering by user, object type, action and date range.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from event_registration_api.app.core.security import Identity, require_roles
from event_registration_api.app.schemas.audit import AuditLogRead
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs", response_model=List[AuditLogRead])
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by acting user ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (user, event, registration)"),
    action: Optional[str] = Query(None, description="Filter by action (create, register, cancel, ...)"),
    start_date: Optional[str] = Query(None, description="Start date (ISO format) for filtering"),
    end_date: Optional[str] = Query(None, description="End date (ISO format) for filtering"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> List[AuditLogRead]:
    """Retrieve audit logs with optional filters, newest first."""
    return await AuditService.list_logs(
        user_id=user_id,
        object_type=object_type,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
