"""Tests for HTTP/HTTPS transport selection."""

import shutil
from pathlib import Path

import pytest
import structlog

from cynos.config import ServerConfig
from cynos.web.transport import MKCERT_HINT, HttpConfig, HttpsConfig, select_transport
from log_helpers import events, levels


pytestmark = pytest.mark.unit


def test_production_selects_http_without_touching_files(
    prod_config: ServerConfig, monkeypatch: pytest.MonkeyPatch, captured_logs
) -> None:
    def forbidden(*args, **kwargs):
        raise AssertionError("production must not access certificate files")

    monkeypatch.setattr(Path, "is_file", forbidden)
    monkeypatch.setattr(Path, "read_bytes", forbidden)

    transport = select_transport(prod_config, structlog.get_logger())

    assert transport == HttpConfig()
    assert transport.scheme == "http"
    assert not levels(captured_logs, "warning")


def test_development_with_certificates_selects_https(
    cert_files: ServerConfig, captured_logs
) -> None:
    transport = select_transport(cert_files, structlog.get_logger())

    assert isinstance(transport, HttpsConfig)
    assert transport.scheme == "https"
    assert transport.is_tls
    assert transport.cert == cert_files.cert_path.read_bytes()
    assert transport.key == cert_files.key_path.read_bytes()
    assert events(captured_logs, "transport_selected")[0]["scheme"] == "https"
    assert not levels(captured_logs, "warning")


def test_key_material_is_not_in_repr(cert_files: ServerConfig) -> None:
    transport = select_transport(cert_files, structlog.get_logger())

    assert "PRIVATE KEY" not in repr(transport)


def test_missing_certificates_fall_back_to_http(
    dev_config: ServerConfig, captured_logs
) -> None:
    transport = select_transport(dev_config, structlog.get_logger())

    assert transport == HttpConfig()
    [not_found] = events(captured_logs, "ssl_certificates_not_found")
    assert not_found["log_level"] == "warning"
    assert len(not_found["missing"]) == 2
    assert events(captured_logs, "ssl_certificates_hint")[0]["command"] == MKCERT_HINT


def test_missing_key_alone_falls_back(dev_config: ServerConfig, captured_logs) -> None:
    dev_config.cert_path.write_bytes(b"cert")

    transport = select_transport(dev_config, structlog.get_logger())

    assert transport == HttpConfig()
    [not_found] = events(captured_logs, "ssl_certificates_not_found")
    assert not_found["missing"] == [str(dev_config.key_path)]


def test_read_error_falls_back_to_http(
    cert_files: ServerConfig, monkeypatch: pytest.MonkeyPatch, captured_logs
) -> None:
    def unreadable(self):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "read_bytes", unreadable)

    transport = select_transport(cert_files, structlog.get_logger())

    assert transport == HttpConfig()
    [warning] = events(captured_logs, "ssl_certificates_unreadable")
    assert warning["log_level"] == "warning"
    assert "Permission denied" in warning["error"]
    assert not events(captured_logs, "ssl_certificates_not_found")


def test_empty_certificate_counts_as_unreadable(
    dev_config: ServerConfig, captured_logs
) -> None:
    dev_config.cert_path.write_bytes(b"")
    dev_config.key_path.write_bytes(b"key")

    transport = select_transport(dev_config, structlog.get_logger())

    assert transport == HttpConfig()
    assert events(captured_logs, "ssl_certificates_unreadable")


def test_corrupt_certificate_pair_falls_back_to_http(
    dev_config: ServerConfig, captured_logs
) -> None:
    dev_config.cert_path.write_bytes(b"not a certificate")
    dev_config.key_path.write_bytes(b"not a key")

    transport = select_transport(dev_config, structlog.get_logger())

    assert transport == HttpConfig()
    [warning] = events(captured_logs, "ssl_certificates_unreadable")
    assert warning["log_level"] == "warning"
    assert warning["fallback"] == "http"
    assert not events(captured_logs, "transport_selected")


def test_mismatched_key_falls_back_to_http(
    cert_files: ServerConfig, data_dir: Path, captured_logs
) -> None:
    shutil.copyfile(data_dir / "other-key.pem", cert_files.key_path)

    transport = select_transport(cert_files, structlog.get_logger())

    assert transport == HttpConfig()
    assert len(events(captured_logs, "ssl_certificates_unreadable")) == 1
