"""
Main entrypoint for the Event Registration API.

This module assembles the FastAPI application, sets up logging,
installs the domain error handler and includes versioned routers.  The
``create_app`` function builds and configures the app, which is then
instantiated at module import time as ``app``.  Run it with uvicorn or
another ASGI server, e.g.::

    uvicorn event_registration_api.app.main:app --reload

The application title and version are provided via ``Settings`` from
``core.config``.
"""

import logging

from fastapi import FastAPI

from .core.config import settings
from .core.errors import register_exception_handlers
from .core.logging_config import setup_logging
from .api.v1.router import router as v1_router
from .core.db import init_db
from .services.user_service import UserService


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    This function performs one‑time setup tasks such as configuring
    logging, mapping domain errors to HTTP responses and including
    versioned API routers.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    # Initialise logging before anything else so that startup can log.
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    register_exception_handlers(app)

    # Mount versioned routes under /api/v1.
    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Creates the database file if needed and applies pending migrations.
        init_db()
        admin = await UserService.ensure_admin()
        if admin is None:
            logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set; no bootstrap administrator")

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
