"""
Top‑level router for version 1 of the API.

This router aggregates domain‑specific routers (auth, users, events,
registrations, etc.) under a unified prefix.  When new endpoints are
added or when new domains are introduced, update this file to include
their routers.
"""

from fastapi import APIRouter

from .endpoints import (
    auth,
    users,
    events,
    registrations,
    tickets,
    audit,
    venues,
    feedback,
)

# Create a router for version 1 and include sub‑routers for each domain.
router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(events.router, prefix="/events", tags=["events"])
router.include_router(registrations.router, prefix="/registrations", tags=["registrations"])
router.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
router.include_router(venues.router, prefix="/venues", tags=["venues"])
router.include_router(feedback.router, prefix="/feedback", tags=["feedback"])
