"""
Configuration loading for the Cynos Nexus backend.

Configuration values are resolved using the following precedence:

1. Environment variables (e.g., APP_ENV, FRONTEND_URL, CYNOS_PORT)
2. `cynos.toml` if present in the project root (or CYNOS_CONFIG_FILE)
3. Built-in defaults

A `.env` file in the working directory is loaded before resolution; it
never overrides variables already set in the process environment.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import tomllib
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cynos.observability.logging import LOG_FORMATS

__all__ = [
    "ConfigError",
    "Environment",
    "ServerConfig",
    "load_config",
]


DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
DEFAULT_ROOT_DOMAIN = "cynosnexus.com"
DEFAULT_CERT_PATH = Path("./localhost-cert.pem")
DEFAULT_KEY_PATH = Path("./localhost-key.pem")


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or validated."""


class Environment(str, Enum):
    """Deployment mode. Anything other than production behaves as development."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"
    TEST = "test"


class ServerConfig(BaseModel):
    """Resolved startup configuration, immutable for the process lifetime."""

    environment: Environment = Field(
        Environment.DEVELOPMENT, description="Deployment mode"
    )
    host: str = Field(DEFAULT_HOST, description="Interface to bind", min_length=1)
    port: int = Field(DEFAULT_PORT, description="TCP port to bind", ge=1, le=65535)
    frontend_url: Optional[str] = Field(
        None, description="Allowed browser origin outside production"
    )
    root_domain: str = Field(
        DEFAULT_ROOT_DOMAIN, description="Registered production domain", min_length=1
    )
    cert_path: Path = Field(DEFAULT_CERT_PATH, description="Development TLS certificate")
    key_path: Path = Field(DEFAULT_KEY_PATH, description="Development TLS private key")
    log_level: str = Field("DEBUG", description="Root log level")
    log_format: str = Field("console", description="Log renderer (json or console)")
    log_file: Optional[Path] = Field(None, description="Optional rotating log file")

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("cert_path", "key_path", "log_file", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Any:
        if value is None or isinstance(value, Path):
            return value
        return Path(value)

    @field_validator("frontend_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
        return normalized

    @property
    def is_production(self) -> bool:
        """True when running with the production CORS and transport rules."""

        return self.environment is Environment.PRODUCTION

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a setting by field name or by its environment variable name."""

        field_name = _ENV_TO_FIELD.get(key, key)
        if field_name in type(self).model_fields:
            return getattr(self, field_name)
        return default


_ENV_TO_FIELD: Dict[str, str] = {
    "APP_ENV": "environment",
    "NODE_ENV": "environment",
    "CYNOS_HOST": "host",
    "CYNOS_PORT": "port",
    "FRONTEND_URL": "frontend_url",
    "CYNOS_ROOT_DOMAIN": "root_domain",
    "CYNOS_TLS_CERT": "cert_path",
    "CYNOS_TLS_KEY": "key_path",
    "CYNOS_LOG_LEVEL": "log_level",
    "CYNOS_LOG_FORMAT": "log_format",
    "CYNOS_LOG_FILE": "log_file",
}


def load_config(
    config_path: Optional[Path | str] = None,
    env_file: Optional[Path | str] = ".env",
) -> ServerConfig:
    """
    Load server configuration from environment/file/defaults.

    Args:
        config_path: Optional explicit path to a `cynos.toml` file.
        env_file: Optional dotenv file to load first; ignored when absent.

    Returns:
        ServerConfig populated with the resolved values.

    Raises:
        ConfigError: if the provided config path does not exist, parsing
            fails, or a value is invalid.
    """

    if env_file is not None and Path(env_file).is_file():
        load_dotenv(Path(env_file), override=False)

    raw_data = _load_toml_data(config_path)
    server = raw_data.get("server", {})
    cors = raw_data.get("cors", {})
    tls = raw_data.get("tls", {})
    log = raw_data.get("logging", {})

    environment = _parse_environment(
        os.getenv("APP_ENV") or _env_or_value(
            "NODE_ENV", server.get("environment"), Environment.DEVELOPMENT.value
        )
    )
    production = environment is Environment.PRODUCTION

    port_raw = _env_or_value("CYNOS_PORT", server.get("port"), str(DEFAULT_PORT))
    try:
        port = int(port_raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid port: {port_raw}") from exc

    log_file = _env_or_value("CYNOS_LOG_FILE", log.get("file"), "")

    try:
        return ServerConfig(
            environment=environment,
            host=_env_or_value("CYNOS_HOST", server.get("host"), DEFAULT_HOST),
            port=port,
            frontend_url=os.getenv("FRONTEND_URL", cors.get("frontend_url")),
            root_domain=_env_or_value(
                "CYNOS_ROOT_DOMAIN", cors.get("root_domain"), DEFAULT_ROOT_DOMAIN
            ),
            cert_path=_env_or_value("CYNOS_TLS_CERT", tls.get("cert"), str(DEFAULT_CERT_PATH)),
            key_path=_env_or_value("CYNOS_TLS_KEY", tls.get("key"), str(DEFAULT_KEY_PATH)),
            log_level=_env_or_value(
                "CYNOS_LOG_LEVEL", log.get("level"), "INFO" if production else "DEBUG"
            ),
            log_format=_env_or_value(
                "CYNOS_LOG_FORMAT", log.get("format"), "json" if production else "console"
            ),
            log_file=log_file or None,
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _load_toml_data(config_path: Optional[Path | str]) -> Dict[str, Any]:
    """Load data from a TOML file if one can be resolved."""

    resolved = _resolve_config_path(config_path)
    if resolved is None:
        return {}

    if not resolved.exists():
        raise ConfigError(f"Configuration file not found: {resolved}")

    try:
        with resolved.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Cannot parse {resolved}: {exc}") from exc


def _resolve_config_path(config_path: Optional[Path | str]) -> Optional[Path]:
    """Resolve configuration path with environment fallback."""

    if config_path:
        return Path(config_path)

    env_path = os.getenv("CYNOS_CONFIG_FILE")
    if env_path:
        return Path(env_path)

    default_path = Path("cynos.toml")
    return default_path if default_path.exists() else None


def _parse_environment(raw_value: str) -> Environment:
    """Map a mode string onto Environment; unknown modes run as development."""

    normalized = raw_value.strip().lower()
    for environment in Environment:
        if environment.value == normalized:
            return environment
    return Environment.DEVELOPMENT


def _env_or_value(env_var: str, value: Any, default: Any) -> str:
    """Return environment variable value if set, otherwise fallback to provided/default values."""

    env_value = os.getenv(env_var)
    if env_value is not None:
        return env_value
    if value is not None:
        return str(value)
    return str(default)
