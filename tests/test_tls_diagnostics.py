"""Tests for TLS diagnostics."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from config.controller import ConfigSnapshot
from diagnostics.models import DiagnosticStatus
from tls.diagnostics import check_file_readable, probe_tls_files, probe_tls_mode

FIXTURES = Path(__file__).parent / "fixtures"
CERT = FIXTURES / "server.crt"
KEY = FIXTURES / "server.key"
OTHER_KEY = FIXTURES / "other.key"


def _config(data: dict) -> ConfigSnapshot:
    return ConfigSnapshot(data=data, source_path=Path("config.yaml"))


@pytest.mark.parametrize(
    ("has_tls", "has_acme", "expected"),
    [
        (True, True, DiagnosticStatus.FAIL),
        (False, False, DiagnosticStatus.FAIL),
        (True, False, DiagnosticStatus.OK),
        (False, True, DiagnosticStatus.OK),
    ],
)
def test_tls_mode_exclusivity(has_tls: bool, has_acme: bool, expected: DiagnosticStatus) -> None:
    """Exactly one of tls/acme should be configured."""

    data: dict = {}
    if has_tls:
        data["tls"] = {"cert": "a.crt", "key": "a.key"}
    if has_acme:
        data["acme"] = {"domains": ["example.com"]}

    results = probe_tls_mode(_config(data))
    assert len(results) == 1
    assert results[0].status is expected


def test_tls_mode_names_active_mode() -> None:
    tls_only = probe_tls_mode(_config({"tls": {"cert": "a"}}))
    acme_only = probe_tls_mode(_config({"acme": {"email": "ops@example.com"}}))
    assert "TLS mode" in tls_only[0].message
    assert "ACME mode" in acme_only[0].message


def test_tls_mode_skips_without_config() -> None:
    """No result should be produced when nothing was loaded."""

    assert probe_tls_mode(ConfigSnapshot(load_error="not found")) == []


def test_tls_files_skipped_in_acme_mode() -> None:
    assert probe_tls_files(_config({"acme": {"domains": ["example.com"]}})) == []


def test_tls_files_valid_pair() -> None:
    """Readable matching files should yield two file results and a pair OK."""

    results = probe_tls_files(_config({"tls": {"cert": str(CERT), "key": str(KEY)}}))

    assert [result.name for result in results] == ["TLS Cert", "TLS Key", "TLS Pair"]
    assert all(result.status is DiagnosticStatus.OK for result in results)


def test_tls_files_mismatched_pair() -> None:
    """A key that does not match the certificate should fail the pair."""

    results = probe_tls_files(_config({"tls": {"cert": str(CERT), "key": str(OTHER_KEY)}}))

    assert results[0].status is DiagnosticStatus.OK
    assert results[1].status is DiagnosticStatus.OK
    assert results[2].name == "TLS Pair"
    assert results[2].status is DiagnosticStatus.FAIL


def test_tls_files_empty_paths() -> None:
    """Empty paths should each fail and skip the pair check."""

    results = probe_tls_files(_config({"tls": {"cert": "", "key": ""}}))

    assert [result.status for result in results] == [DiagnosticStatus.FAIL, DiagnosticStatus.FAIL]
    assert "tls.cert" in results[0].message
    assert "tls.key" in results[1].message


def test_tls_files_missing_cert(tmp_path: Path) -> None:
    """A missing cert should be reported on its own, without a pair result."""

    missing = tmp_path / "missing.crt"
    results = probe_tls_files(_config({"tls": {"cert": str(missing), "key": str(KEY)}}))

    assert len(results) == 2
    assert results[0].status is DiagnosticStatus.FAIL
    assert "File not found" in results[0].message
    assert results[1].status is DiagnosticStatus.OK


def test_check_file_readable_empty_file(tmp_path: Path) -> None:
    empty = tmp_path / "empty.pem"
    empty.write_bytes(b"")

    result = check_file_readable("TLS Cert", str(empty))
    assert result.status is DiagnosticStatus.FAIL
    assert "empty" in result.message


def test_check_file_readable_directory(tmp_path: Path) -> None:
    result = check_file_readable("TLS Key", str(tmp_path))
    assert result.status is DiagnosticStatus.FAIL


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="permission bits are not enforced for root",
)
def test_check_file_readable_permission_denied(tmp_path: Path) -> None:
    locked = tmp_path / "locked.key"
    locked.write_text("secret", encoding="utf-8")
    locked.chmod(0)
    try:
        result = check_file_readable("TLS Key", str(locked))
    finally:
        locked.chmod(0o600)

    assert result.status is DiagnosticStatus.FAIL
    assert "Permission denied" in result.message


def test_tls_files_garbage_pair(tmp_path: Path) -> None:
    """Non-PEM content should fail the pair check with the parse error."""

    cert = tmp_path / "bad.crt"
    key = tmp_path / "bad.key"
    cert.write_text("not a certificate", encoding="utf-8")
    key.write_text("not a key", encoding="utf-8")

    results = probe_tls_files(_config({"tls": {"cert": str(cert), "key": str(key)}}))
    assert results[-1].name == "TLS Pair"
    assert results[-1].status is DiagnosticStatus.FAIL


def test_tls_files_encrypted_key_fails_without_prompting() -> None:
    """A passphrase-protected key should fail the pair instead of blocking."""

    results = probe_tls_files(
        _config(
            {
                "tls": {
                    "cert": str(FIXTURES / "encrypted.crt"),
                    "key": str(FIXTURES / "encrypted.key"),
                }
            }
        )
    )

    assert [result.status for result in results[:2]] == [DiagnosticStatus.OK, DiagnosticStatus.OK]
    assert results[2].name == "TLS Pair"
    assert results[2].status is DiagnosticStatus.FAIL
    assert "invalid" in results[2].message
