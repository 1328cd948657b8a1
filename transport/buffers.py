"""UDP socket buffer negotiation.

The tuner asks the kernel for large receive/send buffers and reads back what
was actually granted, so operators can see when ``net.core.rmem_max`` /
``net.core.wmem_max`` clamp the request. It is advisory only: it never
raises, retries or closes the socket it is given.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import socket
from typing import Any

from core.logging import logger as LOGGER
from transport.sockopt import SocketBufferInspector, default_inspector

RECOMMENDED_BUFFER_BYTES = 8 * 1024 * 1024

TUNING_HINT = "Run the tuning script to unlock full speed. See docs/libya_tuning.md"


class BufferDirection(str, Enum):
    READ = "read"
    WRITE = "write"


class NegotiationKind(str, Enum):
    """Classification of one buffer request/grant cycle."""

    OPTIMAL = "optimal"
    SHORTFALL = "shortfall"
    SET_FAILED = "set_failed"


@dataclass(frozen=True)
class BufferNegotiationOutcome:
    """What the OS granted for one buffer direction.

    ``granted_bytes`` is only meaningful when ``error`` is ``None``; a failed
    set call is reported through ``error`` rather than as a 0-byte grant.
    """

    direction: BufferDirection
    requested_bytes: int
    granted_bytes: int = 0
    error: str | None = None

    @property
    def kind(self) -> NegotiationKind:
        if self.error is not None:
            return NegotiationKind.SET_FAILED
        if self.granted_bytes >= self.requested_bytes:
            return NegotiationKind.OPTIMAL
        return NegotiationKind.SHORTFALL

    @property
    def log_level(self) -> int:
        return logging.INFO if self.kind is NegotiationKind.OPTIMAL else logging.WARNING

    def describe(self) -> str:
        """Return the operator-facing sentence for this outcome."""

        direction = self.direction.value
        requested = _with_raw(self.requested_bytes)
        if self.kind is NegotiationKind.SET_FAILED:
            return f"Failed to set UDP {direction} buffer to {requested}: {self.error}"
        granted = _with_raw(self.granted_bytes)
        if self.kind is NegotiationKind.OPTIMAL:
            return f"UDP {direction} buffer: requested {requested} -> granted {granted}. Optimal!"
        return (
            f"Requested {requested} {direction} buffer -> OS granted {granted}. "
            f"Warning: {TUNING_HINT}"
        )


def format_bytes(size: int) -> str:
    """Format a byte count as whole MB, KB or B."""

    kb = 1024
    mb = 1024 * kb
    if size >= mb:
        return f"{size // mb}MB"
    if size >= kb:
        return f"{size // kb}KB"
    return f"{size}B"


def _with_raw(size: int) -> str:
    return f"{format_bytes(size)} ({size} bytes)"


_DIRECTION_OPTIONS = {
    BufferDirection.READ: socket.SO_RCVBUF,
    BufferDirection.WRITE: socket.SO_SNDBUF,
}


def negotiate_buffer(
    sock: Any,
    direction: BufferDirection,
    requested_bytes: int,
    inspector: SocketBufferInspector,
) -> BufferNegotiationOutcome:
    """Request one buffer size on ``sock`` and read back the granted value."""

    try:
        sock.setsockopt(socket.SOL_SOCKET, _DIRECTION_OPTIONS[direction], requested_bytes)
    except (OSError, OverflowError, TypeError) as exc:
        # Sizes outside the C int range never reach the kernel.
        return BufferNegotiationOutcome(
            direction=direction,
            requested_bytes=requested_bytes,
            error=str(exc),
        )

    try:
        descriptor = sock.fileno()
    except OSError:
        descriptor = -1
    if direction is BufferDirection.READ:
        granted = inspector.get_receive_buffer_bytes(descriptor)
    else:
        granted = inspector.get_send_buffer_bytes(descriptor)
    return BufferNegotiationOutcome(
        direction=direction,
        requested_bytes=requested_bytes,
        granted_bytes=granted,
    )


def tune_udp_buffers(
    sock: Any,
    read_bytes: int = RECOMMENDED_BUFFER_BYTES,
    write_bytes: int = RECOMMENDED_BUFFER_BYTES,
    inspector: SocketBufferInspector | None = None,
    log: logging.Logger | None = None,
) -> list[BufferNegotiationOutcome]:
    """Tune read then write buffers on a UDP socket and log each outcome."""

    if sock is None:
        return []

    log = log or LOGGER
    inspector = inspector or default_inspector()
    log.info("Tuning UDP socket buffers...")

    outcomes: list[BufferNegotiationOutcome] = []
    for direction, requested in (
        (BufferDirection.READ, read_bytes),
        (BufferDirection.WRITE, write_bytes),
    ):
        outcome = negotiate_buffer(sock, direction, requested, inspector)
        log.log(outcome.log_level, outcome.describe())
        outcomes.append(outcome)
    return outcomes


def open_tuned_udp_socket(
    address: tuple[Any, ...],
    family: int = socket.AF_INET,
    read_bytes: int = RECOMMENDED_BUFFER_BYTES,
    write_bytes: int = RECOMMENDED_BUFFER_BYTES,
    inspector: SocketBufferInspector | None = None,
) -> tuple[socket.socket, list[BufferNegotiationOutcome]]:
    """Bind a UDP socket to ``address`` and tune its buffers.

    Errors propagate; the socket is closed before re-raising.
    """

    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        sock.bind(address)
        outcomes = tune_udp_buffers(
            sock,
            read_bytes=read_bytes,
            write_bytes=write_bytes,
            inspector=inspector,
        )
    except BaseException:
        sock.close()
        raise
    return sock, outcomes
