"""
Operational HTTP endpoints for the Cynos Nexus backend.

Business routers are mounted by their own packages; this router only
exposes what operators and load balancers need:

- `GET /`        service information
- `GET /healthz` plain-text liveness for Docker/Kubernetes probes
- `GET /info`    environment, transport and uptime details
- `GET /metrics` Prometheus exposition
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from cynos import __version__
from cynos.observability.logging import get_logger
from cynos.observability.metrics import get_metrics_content_type, get_metrics_output

router = APIRouter()


@router.get("/", response_class=JSONResponse)
async def root(request: Request) -> Dict[str, Any]:
    """Root endpoint with service information."""
    return {
        "service": request.app.title,
        "version": __version__,
        "status": "running",
        "endpoints": {
            "health": "/healthz",
            "info": "/info",
            "metrics": "/metrics",
        },
    }


@router.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> str:
    """Simple health check for Docker HEALTHCHECK."""
    return "OK"


@router.get("/info", response_class=JSONResponse)
async def info(request: Request) -> Dict[str, Any]:
    """System information endpoint.

    Returns:
        Environment, transport scheme and uptime of this process
    """
    state = request.app.state
    uptime = (datetime.now(timezone.utc) - state.started_at).total_seconds()
    return {
        "service": request.app.title,
        "version": __version__,
        "environment": state.config.environment.value,
        "transport": state.transport.scheme,
        "uptime_seconds": uptime,
        "startup_time": state.started_at.isoformat(),
    }


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Metrics include:
    - cynos_http_requests_total: Completed requests by method and status
    - cynos_http_request_duration_seconds: Request handling duration
    """
    try:
        return Response(
            content=get_metrics_output(),
            media_type=get_metrics_content_type(),
        )
    except Exception as e:
        get_logger(__name__).error("metrics_export_error", error=str(e), exc_info=True)
        return Response(
            content="# Error exporting metrics\n",
            media_type="text/plain",
            status_code=503,
        )


__all__ = ["router"]
