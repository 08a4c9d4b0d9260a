"""
Global pytest configuration for the Cynos Nexus backend

This file provides shared fixtures and enforces Python version requirements.
"""

from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from cynos.config import Environment, ServerConfig

# Add tests directory to sys.path to support imports from test helpers
_tests_dir = Path(__file__).parent
if str(_tests_dir) not in sys.path:
    sys.path.insert(0, str(_tests_dir))

_MIN_PY_VERSION = (3, 11)

CONFIG_ENV_VARS = (
    "APP_ENV",
    "NODE_ENV",
    "CYNOS_HOST",
    "CYNOS_PORT",
    "FRONTEND_URL",
    "CYNOS_ROOT_DOMAIN",
    "CYNOS_TLS_CERT",
    "CYNOS_TLS_KEY",
    "CYNOS_LOG_LEVEL",
    "CYNOS_LOG_FORMAT",
    "CYNOS_LOG_FILE",
    "CYNOS_CONFIG_FILE",
)

FRONTEND_URL = "https://localhost:3000"

# Self-signed localhost pair plus an unrelated key for mismatch cases
DATA_DIR = _tests_dir / "data"


def _verify_python_version() -> str:
    """Return the interpreter version string or exit if <3.11."""
    version_info = sys.version_info
    version_str = ".".join(map(str, version_info[:3]))
    if version_info < _MIN_PY_VERSION:
        pytest.exit(
            f"ERROR: pytest must run on Python 3.11+ (detected {version_str}).",
            returncode=1,
        )
    return version_str


def pytest_report_header(config: pytest.Config) -> str:
    version_str = _verify_python_version()
    return f"Python interpreter verified for pytest: {version_str}"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Run from an empty directory with no configuration variables set.

    Every variable is set then removed so monkeypatch restores the
    original value even if a dotenv file writes it during the test.
    """
    for name in CONFIG_ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def captured_logs():
    """Collect structlog entries emitted by loggers created inside the test."""
    with capture_logs() as logs:
        yield logs


@pytest.fixture
def dev_config(tmp_path: Path) -> ServerConfig:
    """Development config pointing at certificate paths that do not exist yet."""
    return ServerConfig(
        environment=Environment.DEVELOPMENT,
        frontend_url=FRONTEND_URL,
        cert_path=tmp_path / "localhost-cert.pem",
        key_path=tmp_path / "localhost-key.pem",
    )


@pytest.fixture
def prod_config(tmp_path: Path) -> ServerConfig:
    return ServerConfig(
        environment=Environment.PRODUCTION,
        cert_path=tmp_path / "localhost-cert.pem",
        key_path=tmp_path / "localhost-key.pem",
        log_level="INFO",
        log_format="json",
    )


@pytest.fixture
def cert_files(dev_config: ServerConfig) -> ServerConfig:
    """Install a valid self-signed localhost pair at the dev config's paths."""
    shutil.copyfile(DATA_DIR / "localhost-cert.pem", dev_config.cert_path)
    shutil.copyfile(DATA_DIR / "localhost-key.pem", dev_config.key_path)
    return dev_config



@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR
