"""
Entrypoint for the Cynos Nexus backend.

`main()` resolves configuration, configures logging and then calls
`bootstrap()`, which assembles the served application in a fixed order:

1. select the transport (HTTP, or HTTPS with local certificates)
2. build the application through the factory
3. attach the cookie parser and request logger
4. install the CORS origin policy as the outermost layer
5. prepare a uvicorn server on all interfaces, port 8000 by default

Any failure while doing so, or while binding the listener, is logged
once at error level and turns into exit code 1.

Run with:
    python -m app.server.main
"""

from __future__ import annotations

import sys
from typing import Any, Callable, List, Optional

import uvicorn
from fastapi import FastAPI

from app.server import create_app
from cynos.config import ServerConfig, load_config
from cynos.observability.logging import configure_logging, get_logger
from cynos.web.cors import build_cors_policy, install_cors
from cynos.web.middleware import install_middleware
from cynos.web.transport import Transport, select_transport

AppFactory = Callable[..., FastAPI]


def startup_url(transport: Transport, port: int) -> str:
    """URL reported once the listener is up; the scheme follows the transport in effect."""

    return f"{transport.scheme}://localhost:{port}"


class ReportingServer(uvicorn.Server):
    """uvicorn server that reports the reachable URL once the socket is bound."""

    def __init__(self, config: uvicorn.Config, transport: Transport, logger: Any) -> None:
        super().__init__(config)
        self.transport = transport
        self.logger = logger

    async def startup(self, sockets: Optional[List[Any]] = None) -> None:
        await super().startup(sockets=sockets)
        if self.started and not self.should_exit:
            self.logger.info(
                "application_running",
                url=startup_url(self.transport, self.config.port),
                host=self.config.host,
            )


def build_server(
    app: FastAPI, config: ServerConfig, transport: Transport, logger: Any
) -> ReportingServer:
    """Create the uvicorn server for the selected transport."""

    options: dict[str, Any] = {
        "host": config.host,
        "port": config.port,
        # Route uvicorn's records through the root handlers set up by configure_logging
        "log_config": None,
        "access_log": False,
    }
    if transport.is_tls:
        options["ssl_certfile"] = str(transport.cert_path)
        options["ssl_keyfile"] = str(transport.key_path)

    return ReportingServer(uvicorn.Config(app, **options), transport=transport, logger=logger)


def bootstrap(config: ServerConfig, app_factory: AppFactory = create_app) -> ReportingServer:
    """
    Assemble the served application and return a server ready to run.

    Args:
        config: Resolved server configuration
        app_factory: Callable building the FastAPI application from
            `config` and `transport` keyword arguments

    Returns:
        ReportingServer bound to `config.host:config.port` once run
    """

    logger = get_logger(__name__, context="Bootstrap")

    transport = select_transport(config, logger)
    app = app_factory(config=config, transport=transport)
    logger.info(
        "application_created",
        environment=config.environment.value,
        scheme=transport.scheme,
    )

    # Starlette wraps in reverse registration order: CORS goes last so it runs first
    install_middleware(app, logger=get_logger("cynos.http", context="HTTP"))
    install_cors(app, build_cors_policy(config), logger)

    return build_server(app, config, transport, logger)


def main(app_factory: AppFactory = create_app) -> int:
    """Run the backend until shutdown. Returns the process exit code."""

    logger = get_logger(__name__, context="Bootstrap")
    try:
        config = load_config()
        configure_logging(
            level=config.log_level,
            format=config.log_format,
            log_file=config.log_file,
        )
        logger = get_logger(__name__, context="Bootstrap")
        server = bootstrap(config, app_factory=app_factory)
        server.run()
    except SystemExit as exc:
        # uvicorn exits on bind failures after logging the OSError
        if exc.code in (None, 0):
            return 0
        logger.error("application_failed_to_start", exit_code=exc.code)
        return 1
    except Exception as exc:
        logger.error("application_failed_to_start", error=str(exc), exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
