"""
Feedback moderation endpoints for API v1.

Visitors submit feedback through ``POST /events/{event_id}/feedback``.
The routes here are for administrators working the review queue.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from event_registration_api.app.core.security import Identity, require_roles
from event_registration_api.app.schemas.feedback import FeedbackRead
from event_registration_api.app.schemas.user import Role
from event_registration_api.app.services.feedback_service import FeedbackService


router = APIRouter()


@router.get("", response_model=List[FeedbackRead])
async def list_feedback(
    event_id: Optional[int] = Query(None),
    reviewed: Optional[bool] = Query(None),
    flagged: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> List[FeedbackRead]:
    """List feedback.

    - **reviewed=false** returns the unreviewed queue.
    - **flagged=true** returns flagged entries.
    """
    return await FeedbackService.list_feedback(
        event_id=event_id, reviewed=reviewed, flagged=flagged, limit=limit, offset=offset
    )


@router.put("/{feedback_id}/review", response_model=FeedbackRead)
async def mark_feedback_reviewed(
    feedback_id: int,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> FeedbackRead:
    return await FeedbackService.mark_reviewed(feedback_id, current_user)


@router.put("/{feedback_id}/flag", response_model=FeedbackRead)
async def flag_feedback(
    feedback_id: int,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> FeedbackRead:
    return await FeedbackService.flag(feedback_id, current_user)


@router.delete("/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_feedback(
    feedback_id: int,
    current_user: Identity = Depends(require_roles(Role.ADMIN)),
) -> None:
    await FeedbackService.delete_feedback(feedback_id, current_user)
    return None
