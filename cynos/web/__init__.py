"""Web-layer building blocks used by the server bootstrap.

Components:
    - transport: HTTP/HTTPS selection
    - cors: origin policy and its Starlette middleware
    - middleware: cookie parsing and request/response logging
"""

from cynos.web.cors import CorsPolicy, OriginDecision, build_cors_policy, install_cors, validate_origin
from cynos.web.middleware import install_middleware, parse_cookie_header
from cynos.web.transport import HttpConfig, HttpsConfig, Transport, select_transport

__all__ = [
    "CorsPolicy",
    "OriginDecision",
    "build_cors_policy",
    "install_cors",
    "validate_origin",
    "install_middleware",
    "parse_cookie_header",
    "HttpConfig",
    "HttpsConfig",
    "Transport",
    "select_transport",
]
