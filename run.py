"""Entry point for the Event Registration API.

Starts the FastAPI application with Uvicorn.  Intended to be executed
from the project root, for example under Docker, where you only
specify a single Python file to run.

Configuration such as SECRET_KEY, DATABASE_URL and the bootstrap
administrator credentials is read from environment variables (see
``event_registration_api/app/core/config.py``).

Usage:
    python run.py
"""
import asyncio
import logging
import os
from uvicorn import Config, Server

from event_registration_api.app.main import app


async def run_api() -> None:
    """Serve the API using Uvicorn.

    Host and port are read from environment variables `API_HOST` and
    `API_PORT`. Defaults are `0.0.0.0` and `8000`.
    """
    api_host = os.getenv("API_HOST", "0.0.0.0")
    api_port = int(os.getenv("API_PORT", "8000"))
    config = Config(app=app, host=api_host, port=api_port, reload=False, log_level="info")
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(run_api())
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("API server stopped")
