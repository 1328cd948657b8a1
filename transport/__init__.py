"""UDP transport helpers: buffer negotiation and socket introspection."""

from transport.buffers import (
    RECOMMENDED_BUFFER_BYTES,
    BufferDirection,
    BufferNegotiationOutcome,
    NegotiationKind,
    open_tuned_udp_socket,
    tune_udp_buffers,
)
from transport.sockopt import SocketBufferInspector, default_inspector

__all__ = [
    "RECOMMENDED_BUFFER_BYTES",
    "BufferDirection",
    "BufferNegotiationOutcome",
    "NegotiationKind",
    "SocketBufferInspector",
    "default_inspector",
    "open_tuned_udp_socket",
    "tune_udp_buffers",
]
