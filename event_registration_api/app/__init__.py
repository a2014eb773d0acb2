"""
Application package initializer.

This package contains the main entrypoint for the API and all of its
submodules.  ``core`` holds configuration, persistence, security and
error handling; ``schemas`` the request and response models;
``services`` the business logic; and ``api/v1/endpoints`` one router
per domain (auth, users, events, registrations, tickets, audit).
"""

from .main import app  # noqa: F401
