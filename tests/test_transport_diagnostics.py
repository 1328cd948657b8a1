"""Tests for UDP transport diagnostics."""

from __future__ import annotations

import errno
from pathlib import Path
import socket

import pytest

from config.controller import ConfigSnapshot
from diagnostics.models import DiagnosticStatus
from transport.buffers import RECOMMENDED_BUFFER_BYTES
from transport.diagnostics import (
    classify_bind_error,
    probe_listen_port,
    probe_udp_buffers,
    split_listen_address,
)


def _config(data: dict) -> ConfigSnapshot:
    return ConfigSnapshot(data=data, source_path=Path("config.yaml"))


def _free_udp_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class _FailingSocket:
    """Socket stand-in whose bind raises a fixed OSError."""

    instances: list["_FailingSocket"] = []

    def __init__(self, error: OSError) -> None:
        self.error = error
        self.closed = False
        _FailingSocket.instances.append(self)

    def __enter__(self) -> "_FailingSocket":
        return self

    def __exit__(self, *exc_info) -> None:
        self.closed = True

    def bind(self, address) -> None:
        raise self.error


def _factory_raising(error: OSError):
    def factory(family: int, kind: int) -> _FailingSocket:
        return _FailingSocket(error)

    return factory


def test_split_listen_address() -> None:
    assert split_listen_address(":443") == (None, "443")
    assert split_listen_address("0.0.0.0:8443") == ("0.0.0.0", "8443")
    assert split_listen_address("[::1]:443") == ("::1", "443")
    with pytest.raises(ValueError):
        split_listen_address("443")


def test_listen_port_available_is_idempotent() -> None:
    """Two runs in a row should both pass, so the port is released."""

    config = _config({"listen": f"127.0.0.1:{_free_udp_port()}"})

    first = probe_listen_port(config)
    second = probe_listen_port(config)

    assert first[0].status is DiagnosticStatus.OK
    assert second[0].status is DiagnosticStatus.OK


def test_listen_port_in_use() -> None:
    """A port held by another socket should fail with the in-use hint."""

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as holder:
        holder.bind(("127.0.0.1", 0))
        port = holder.getsockname()[1]
        results = probe_listen_port(_config({"listen": f"127.0.0.1:{port}"}))

    assert results[0].status is DiagnosticStatus.FAIL
    assert "already in use" in results[0].message


def test_listen_port_permission_denied_is_classified() -> None:
    """EACCES should map to the privileged-port hint and release the socket."""

    _FailingSocket.instances.clear()
    results = probe_listen_port(
        _config({"listen": "127.0.0.1:80"}),
        socket_factory=_factory_raising(OSError(errno.EACCES, "Permission denied")),
    )

    assert results[0].status is DiagnosticStatus.FAIL
    assert "port > 1024" in results[0].message
    assert _FailingSocket.instances[0].closed


def test_listen_port_other_bind_error() -> None:
    results = probe_listen_port(
        _config({"listen": "127.0.0.1:9443"}),
        socket_factory=_factory_raising(OSError(errno.EADDRNOTAVAIL, "Cannot assign requested address")),
    )

    assert results[0].status is DiagnosticStatus.FAIL
    assert "Cannot bind UDP 127.0.0.1:9443" in results[0].message


def test_classify_bind_error_ignores_message_text() -> None:
    """Classification should depend on errno only."""

    assert classify_bind_error(OSError(errno.EADDRINUSE, "whatever")) == "in_use"
    assert classify_bind_error(OSError(errno.EPERM, "whatever")) == "permission"
    assert classify_bind_error(OSError("address already in use")) == "other"


def test_listen_port_invalid_address() -> None:
    """An unresolvable listen address should fail once and stop."""

    results = probe_listen_port(_config({"listen": "no-port-here"}))
    assert len(results) == 1
    assert results[0].status is DiagnosticStatus.FAIL
    assert "Invalid listen address" in results[0].message


def test_listen_port_uses_default_address() -> None:
    """Without a listen key the default :443 address should be probed."""

    _FailingSocket.instances.clear()
    results = probe_listen_port(
        _config({}),
        socket_factory=_factory_raising(OSError(errno.EADDRINUSE, "in use")),
    )
    assert "Port :443 is already in use" in results[0].message


def _write_sysctl(root: Path, rmem: str | None, wmem: str | None) -> Path:
    core = root / "net" / "core"
    core.mkdir(parents=True, exist_ok=True)
    if rmem is not None:
        (core / "rmem_max").write_text(rmem, encoding="utf-8")
    if wmem is not None:
        (core / "wmem_max").write_text(wmem, encoding="utf-8")
    return root


def test_udp_buffers_unsupported_platform() -> None:
    results = probe_udp_buffers(platform="darwin")
    assert len(results) == 1
    assert results[0].status is DiagnosticStatus.WARN
    assert "darwin" in results[0].message


def test_udp_buffers_compares_against_recommendation(tmp_path: Path) -> None:
    """Ceilings at the recommendation pass; lower ones warn with both values."""

    root = _write_sysctl(tmp_path, f"{RECOMMENDED_BUFFER_BYTES}\n", "212992\n")

    results = probe_udp_buffers(sysctl_dir=root, platform="linux")

    assert [result.name for result in results] == ["UDP rmem_max", "UDP wmem_max"]
    assert results[0].status is DiagnosticStatus.OK
    assert results[1].status is DiagnosticStatus.WARN
    assert "212992" in results[1].message
    assert str(RECOMMENDED_BUFFER_BYTES) in results[1].message


def test_udp_buffers_partial_read(tmp_path: Path) -> None:
    root = _write_sysctl(tmp_path, "16777216", None)

    results = probe_udp_buffers(sysctl_dir=root, platform="linux")
    assert len(results) == 1
    assert results[0].status is DiagnosticStatus.OK


def test_udp_buffers_unreadable(tmp_path: Path) -> None:
    """When neither value is readable a single manual-check warning is given."""

    results = probe_udp_buffers(sysctl_dir=tmp_path, platform="linux")
    assert len(results) == 1
    assert results[0].name == "UDP Buffers"
    assert results[0].status is DiagnosticStatus.WARN
    assert "manually" in results[0].message


def test_udp_buffers_garbage_value(tmp_path: Path) -> None:
    root = _write_sysctl(tmp_path, "lots", "16777216")

    results = probe_udp_buffers(sysctl_dir=root, platform="linux")
    assert results[0].status is DiagnosticStatus.WARN
    assert results[1].status is DiagnosticStatus.OK
