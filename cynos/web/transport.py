"""Transport selection: plain HTTP or HTTPS with development certificates.

The choice is made once at startup and never re-evaluated. Production
always serves plain HTTP (TLS is terminated upstream). Other modes serve
HTTPS when a locally-trusted certificate pair (as produced by mkcert) is
present, readable and loads as a matching TLS identity, and fall back to
HTTP otherwise.
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Union

from cynos.config import ServerConfig

__all__ = ["HttpConfig", "HttpsConfig", "Transport", "select_transport"]


MKCERT_HINT = "mkcert -install && mkcert localhost"


@dataclass(frozen=True)
class HttpConfig:
    """Plain HTTP transport."""

    scheme: ClassVar[str] = "http"

    @property
    def is_tls(self) -> bool:
        return False


@dataclass(frozen=True)
class HttpsConfig:
    """HTTPS transport with the certificate material loaded into memory.

    Attributes:
        cert_path: Location of the PEM certificate (handed to the server)
        key_path: Location of the PEM private key (handed to the server)
        cert: Certificate bytes as read at selection time
        key: Private key bytes as read at selection time
    """

    scheme: ClassVar[str] = "https"

    cert_path: Path
    key_path: Path
    cert: bytes = field(repr=False)
    key: bytes = field(repr=False)

    @property
    def is_tls(self) -> bool:
        return True


Transport = Union[HttpConfig, HttpsConfig]


def select_transport(config: ServerConfig, logger: Any) -> Transport:
    """Decide between HTTP and HTTPS for this process.

    Certificate problems never raise: a missing pair or a read error is
    reported as a warning and the server falls back to HTTP.

    Args:
        config: Resolved server configuration
        logger: Bound structlog logger for the bootstrap context

    Returns:
        HttpConfig or HttpsConfig
    """
    if config.is_production:
        logger.info("transport_selected", scheme=HttpConfig.scheme, mode="production")
        return HttpConfig()

    cert_path, key_path = config.cert_path, config.key_path
    missing = [str(path) for path in (cert_path, key_path) if not path.is_file()]
    if missing:
        logger.warning(
            "ssl_certificates_not_found",
            missing=missing,
            fallback=HttpConfig.scheme,
        )
        logger.warning("ssl_certificates_hint", command=MKCERT_HINT)
        return HttpConfig()

    try:
        cert = cert_path.read_bytes()
        key = key_path.read_bytes()
        if not cert or not key:
            raise OSError("certificate or key file is empty")
        # Corrupt PEM or a key that does not match the certificate
        ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER).load_cert_chain(cert_path, key_path)
    except (ssl.SSLError, OSError) as exc:
        logger.warning(
            "ssl_certificates_unreadable",
            cert_path=str(cert_path),
            key_path=str(key_path),
            error=str(exc),
            fallback=HttpConfig.scheme,
        )
        logger.warning("ssl_certificates_hint", command=MKCERT_HINT)
        return HttpConfig()

    logger.info(
        "transport_selected",
        scheme=HttpsConfig.scheme,
        mode=config.environment.value,
        cert_path=str(cert_path),
    )
    return HttpsConfig(cert_path=cert_path, key_path=key_path, cert=cert, key=key)
