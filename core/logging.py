"""Logging setup for the operator tooling.

Console output goes through rich on stderr so it never mixes with the
report printed on stdout. File logging is optional and runs through a
queue so slow disks do not stall the checks.
"""

from __future__ import annotations

import atexit
import logging
import logging.handlers
from pathlib import Path
import queue

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "libyalink"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

console = Console(stderr=True)


def setup_logging() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
    logger.propagate = False
    return logger


logger = setup_logging()

_listener: logging.handlers.QueueListener | None = None
_queue_handler: logging.Handler | None = None
_log_path: Path | None = None


def set_log_level(level_name: str) -> int:
    """Set the tooling logger level by name, falling back to INFO."""

    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)
    return level


def enable_file_logging(log_path: Path) -> None:
    """Mirror tooling log records into ``log_path``."""

    global _listener, _queue_handler, _log_path

    log_path = log_path.expanduser()
    if _listener is not None and _log_path == log_path:
        return
    disable_file_logging()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

    log_queue: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    _queue_handler = logging.handlers.QueueHandler(log_queue)
    logger.addHandler(_queue_handler)

    _listener = logging.handlers.QueueListener(log_queue, file_handler)
    _listener.start()
    _log_path = log_path


def disable_file_logging() -> None:
    """Flush and stop file logging if it is running."""

    global _listener, _queue_handler, _log_path

    if _queue_handler is not None:
        logger.removeHandler(_queue_handler)
        _queue_handler = None
    if _listener is not None:
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
        _listener = None
    _log_path = None


atexit.register(disable_file_logging)
