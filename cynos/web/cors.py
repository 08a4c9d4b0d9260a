"""CORS origin policy for the Cynos Nexus backend.

Origin decisions are made by :func:`validate_origin`, a pure function of
the request's ``Origin`` header and a :class:`CorsPolicy`. The
:class:`OriginPolicyMiddleware` consults it for every HTTP request before
any other middleware or handler runs, rejects disallowed origins with a
403, and otherwise defers to Starlette's CORS handling for preflight and
response headers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Optional, Tuple

from fastapi import FastAPI
from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from cynos.config import Environment, ServerConfig

__all__ = [
    "ALLOWED_HEADERS",
    "ALLOWED_METHODS",
    "EXPOSED_HEADERS",
    "PRODUCTION_ORIGINS",
    "CorsPolicy",
    "OriginDecision",
    "OriginPolicyMiddleware",
    "build_cors_policy",
    "install_cors",
    "origin_pattern",
    "validate_origin",
]


PRODUCTION_ORIGINS: Tuple[str, ...] = (
    "https://cynosnexus.com",
    "https://app.cynosnexus.com",
    "https://foundermail.cynosnexus.com",
)

ALLOWED_METHODS: Tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH")

ALLOWED_HEADERS: Tuple[str, ...] = (
    "Origin",
    "X-Requested-With",
    "Content-Type",
    "Accept",
    "Authorization",
    "apollo-require-preflight",
    "x-apollo-operation-name",
    "apollo-operation-name",
    "Access-Control-Allow-Origin",
    "Access-Control-Allow-Credentials",
    "Cookie",
)

EXPOSED_HEADERS: Tuple[str, ...] = ("Set-Cookie",)

REJECTION_DETAIL = "Not allowed by CORS"


class OriginDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class CorsPolicy:
    """Static CORS settings resolved once at startup.

    Attributes:
        environment: Deployment mode selecting the origin rules
        root_domain: Registered domain whose https subdomains are trusted in production
        allowed_origins: Exact origins trusted in production
        frontend_url: The single origin trusted outside production
        allow_methods: Methods advertised to preflight requests
        allow_headers: Request headers advertised to preflight requests
        expose_headers: Response headers readable by browser scripts
        allow_credentials: Whether cookies and auth headers may be sent
        max_age: Preflight cache lifetime in seconds
    """

    environment: Environment
    root_domain: str = "cynosnexus.com"
    allowed_origins: Tuple[str, ...] = PRODUCTION_ORIGINS
    frontend_url: Optional[str] = None
    allow_methods: Tuple[str, ...] = ALLOWED_METHODS
    allow_headers: Tuple[str, ...] = ALLOWED_HEADERS
    expose_headers: Tuple[str, ...] = EXPOSED_HEADERS
    allow_credentials: bool = True
    max_age: int = 600

    @property
    def is_production(self) -> bool:
        return self.environment is Environment.PRODUCTION


@lru_cache(maxsize=8)
def origin_pattern(root_domain: str) -> re.Pattern[str]:
    """Match ``https://<root>`` and ``https://<label>.<root>``."""
    return re.compile(rf"^https://([A-Za-z0-9-]+\.)?{re.escape(root_domain)}$")


def validate_origin(origin: Optional[str], policy: CorsPolicy) -> OriginDecision:
    """Decide whether a request's origin may reach the application.

    Requests without an origin (same-origin, curl, server-to-server) are
    always allowed.
    """
    if not origin:
        return OriginDecision.ALLOW

    if policy.is_production:
        if origin in policy.allowed_origins:
            return OriginDecision.ALLOW
        if origin_pattern(policy.root_domain).fullmatch(origin):
            return OriginDecision.ALLOW
        return OriginDecision.DENY

    if policy.frontend_url is not None and origin == policy.frontend_url:
        return OriginDecision.ALLOW
    return OriginDecision.DENY


def build_cors_policy(config: ServerConfig) -> CorsPolicy:
    """Derive the CORS policy from the resolved server configuration."""
    return CorsPolicy(
        environment=config.environment,
        root_domain=config.root_domain,
        frontend_url=config.frontend_url,
    )


class OriginPolicyMiddleware(CORSMiddleware):
    """Starlette CORS middleware driven by :func:`validate_origin`.

    Disallowed origins are rejected outright instead of merely receiving
    a response without CORS headers.
    """

    def __init__(self, app: ASGIApp, policy: CorsPolicy, logger: Any) -> None:
        super().__init__(
            app,
            allow_origins=(),
            allow_methods=policy.allow_methods,
            allow_headers=policy.allow_headers,
            allow_credentials=policy.allow_credentials,
            expose_headers=policy.expose_headers,
            max_age=policy.max_age,
        )
        self.policy = policy
        self.logger = logger

    def is_allowed_origin(self, origin: str) -> bool:
        return validate_origin(origin, self.policy) is OriginDecision.ALLOW

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            origin = Headers(scope=scope).get("origin")
            if validate_origin(origin, self.policy) is OriginDecision.DENY:
                self.logger.warning(
                    "cors_origin_blocked",
                    origin=origin,
                    environment=self.policy.environment.value,
                    method=scope["method"],
                    path=scope["path"],
                )
                response = JSONResponse({"detail": REJECTION_DETAIL}, status_code=403)
                await response(scope, receive, send)
                return
        await super().__call__(scope, receive, send)


def install_cors(app: FastAPI, policy: CorsPolicy, logger: Any) -> None:
    """Register the origin policy on the application.

    Must be called after the other middleware so that it wraps them and
    gates every request first.
    """
    app.add_middleware(OriginPolicyMiddleware, policy=policy, logger=logger)
    logger.info(
        "cors_installed",
        environment=policy.environment.value,
        frontend_url=policy.frontend_url,
        root_domain=policy.root_domain if policy.is_production else None,
    )
