"""Per-platform introspection of socket buffer sizes."""

from __future__ import annotations

import os
import socket
from typing import Protocol


class SocketBufferInspector(Protocol):
    """Read the kernel's current buffer sizes for a raw socket descriptor."""

    def get_receive_buffer_bytes(self, descriptor: int) -> int:
        """Return SO_RCVBUF in bytes, or 0 if it cannot be read."""

    def get_send_buffer_bytes(self, descriptor: int) -> int:
        """Return SO_SNDBUF in bytes, or 0 if it cannot be read."""


class PosixSocketBufferInspector:
    """Inspector for Linux and the BSDs, working on a duplicated descriptor."""

    def get_receive_buffer_bytes(self, descriptor: int) -> int:
        return self._getsockopt(descriptor, socket.SO_RCVBUF)

    def get_send_buffer_bytes(self, descriptor: int) -> int:
        return self._getsockopt(descriptor, socket.SO_SNDBUF)

    @staticmethod
    def _getsockopt(descriptor: int, option: int) -> int:
        try:
            with socket.fromfd(descriptor, socket.AF_INET, socket.SOCK_DGRAM) as dup:
                return dup.getsockopt(socket.SOL_SOCKET, option)
        except OSError:
            return 0


class WindowsSocketBufferInspector:
    """Inspector for Windows, borrowing the socket handle without owning it."""

    def get_receive_buffer_bytes(self, descriptor: int) -> int:
        return self._getsockopt(descriptor, socket.SO_RCVBUF)

    def get_send_buffer_bytes(self, descriptor: int) -> int:
        return self._getsockopt(descriptor, socket.SO_SNDBUF)

    @staticmethod
    def _getsockopt(descriptor: int, option: int) -> int:
        try:
            borrowed = socket.socket(fileno=descriptor)
        except OSError:
            return 0
        try:
            return borrowed.getsockopt(socket.SOL_SOCKET, option)
        except OSError:
            return 0
        finally:
            # The caller owns the handle; never close it here.
            borrowed.detach()


def default_inspector() -> SocketBufferInspector:
    """Return the inspector for the running operating system."""

    if os.name == "nt":
        return WindowsSocketBufferInspector()
    return PosixSocketBufferInspector()
