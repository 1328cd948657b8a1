"""Diagnostics routines for the UDP transport."""

from __future__ import annotations

from collections.abc import Callable
import errno
from pathlib import Path
import socket
import sys
from typing import Any

from config.controller import ConfigSnapshot
from diagnostics.models import DiagnosticResult, DiagnosticStatus
from transport.buffers import RECOMMENDED_BUFFER_BYTES

DEFAULT_LISTEN_ADDR = ":443"
SYSCTL_DIR = Path("/proc/sys")

_ADDR_IN_USE = {
    code
    for code in (errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", None))
    if code is not None
}
_PERMISSION_DENIED = {
    code
    for code in (errno.EACCES, errno.EPERM, getattr(errno, "WSAEACCES", None))
    if code is not None
}


def split_listen_address(listen_addr: str) -> tuple[str | None, str]:
    """Split ``host:port`` into parts; an empty host means all interfaces."""

    host, sep, port = listen_addr.rpartition(":")
    if not sep or not port:
        raise ValueError("missing port in address")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host or None, port


def resolve_udp_address(listen_addr: str) -> tuple[int, tuple[Any, ...]]:
    """Resolve a listen address to a socket family and bind address."""

    host, port = split_listen_address(listen_addr)
    infos = socket.getaddrinfo(
        host,
        port,
        type=socket.SOCK_DGRAM,
        flags=socket.AI_PASSIVE,
    )
    if not infos:
        raise ValueError("no addresses found")
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr


def classify_bind_error(exc: OSError) -> str:
    """Bucket a bind error by errno: ``in_use``, ``permission`` or ``other``."""

    if exc.errno in _ADDR_IN_USE:
        return "in_use"
    if exc.errno in _PERMISSION_DENIED:
        return "permission"
    return "other"


def probe_listen_port(
    config: ConfigSnapshot,
    socket_factory: Callable[..., socket.socket] = socket.socket,
) -> list[DiagnosticResult]:
    """Check that the configured UDP listen address can be bound.

    The probe socket is always closed before returning, so the server can
    bind the same port right after.
    """

    name = "UDP Port"
    listen_addr = config.get_string("listen") or DEFAULT_LISTEN_ADDR

    try:
        family, sockaddr = resolve_udp_address(listen_addr)
    except (OSError, ValueError) as exc:
        return [
            DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                message=f"Invalid listen address '{listen_addr}': {exc}",
            )
        ]

    try:
        with socket_factory(family, socket.SOCK_DGRAM) as sock:
            sock.bind(sockaddr)
    except OSError as exc:
        bucket = classify_bind_error(exc)
        if bucket == "in_use":
            message = (
                f"Port {listen_addr} is already in use! "
                "Another process (Apache/Nginx/Hysteria?) is binding it."
            )
        elif bucket == "permission":
            message = (
                f"Permission denied binding to {listen_addr}. "
                "Use a port > 1024 or run with elevated privileges."
            )
        else:
            message = f"Cannot bind UDP {listen_addr}: {exc}"
        return [DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, message=message)]

    return [
        DiagnosticResult(
            name=name,
            status=DiagnosticStatus.OK,
            message=f"UDP {listen_addr} is available.",
        )
    ]


def check_buffer_value(name: str, raw_value: str, recommended: int = RECOMMENDED_BUFFER_BYTES) -> DiagnosticResult:
    """Compare one sysctl ceiling against the recommended size."""

    try:
        value = int(raw_value.strip())
    except ValueError:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            message=f"Unexpected value {raw_value.strip()!r}. Verify with 'sysctl' manually.",
        )
    if value >= recommended:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.OK,
            message=f"{value} bytes (>= {recommended} recommended). Good!",
        )
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.WARN,
        message=(
            f"{value} bytes (< {recommended} recommended). "
            "Run the tuning script for full speed. See docs/libya_tuning.md"
        ),
    )


def probe_udp_buffers(
    config: ConfigSnapshot | None = None,
    sysctl_dir: Path = SYSCTL_DIR,
    platform: str | None = None,
) -> list[DiagnosticResult]:
    """Check kernel UDP buffer ceilings against the recommended size.

    Args:
        config: Unused; accepted so every check shares one signature.
        sysctl_dir: Root of the sysctl tree, overridable for testing.
        platform: Platform name, defaults to ``sys.platform``.

    Returns:
        One result per readable ceiling, or a single warning.
    """

    platform = platform or sys.platform
    if not platform.startswith("linux"):
        return [
            DiagnosticResult(
                name="UDP Buffers",
                status=DiagnosticStatus.WARN,
                message=(
                    f"Buffer check only runs on Linux (current OS: {platform}). "
                    "See docs/libya_tuning.md"
                ),
            )
        ]

    results: list[DiagnosticResult] = []
    for name, relative in (
        ("UDP rmem_max", "net/core/rmem_max"),
        ("UDP wmem_max", "net/core/wmem_max"),
    ):
        try:
            raw_value = (sysctl_dir / relative).read_text(encoding="utf-8")
        except OSError:
            continue
        results.append(check_buffer_value(name, raw_value))

    if not results:
        results.append(
            DiagnosticResult(
                name="UDP Buffers",
                status=DiagnosticStatus.WARN,
                message="Could not read sysctl buffer values. Run 'sysctl net.core.rmem_max' manually.",
            )
        )
    return results
