"""
Application factory for the Cynos Nexus backend.

`create_app()` builds the FastAPI application that the bootstrap in
`app.server.main` decorates with CORS and request middleware before
handing it to uvicorn. Domain routers register themselves here; the
factory itself only mounts the operational endpoints and records the
startup configuration on `app.state` for handlers that need it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI

from app.server.api import router as operational_router
from cynos import __version__
from cynos.config import ServerConfig
from cynos.web.transport import HttpConfig, Transport

SERVICE_NAME = "Cynos Nexus API"


def create_app(
    config: Optional[ServerConfig] = None,
    transport: Optional[Transport] = None,
) -> FastAPI:
    """
    Return a FastAPI application with the operational routes mounted.

    Args:
        config: Resolved server configuration (defaults to built-in values)
        transport: Transport selected at startup (defaults to plain HTTP)
    """

    config = config or ServerConfig()
    app = FastAPI(
        title=SERVICE_NAME,
        version=__version__,
        docs_url=None if config.is_production else "/docs",
        redoc_url=None,
        openapi_url=None if config.is_production else "/openapi.json",
    )
    app.state.config = config
    app.state.transport = transport or HttpConfig()
    app.state.started_at = datetime.now(timezone.utc)
    app.include_router(operational_router)
    return app


__all__ = ["SERVICE_NAME", "create_app"]
