"""Command-line entry point for the LibyaLink operator tools."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

from config.controller import load_config
from core.logging import enable_file_logging, logger, set_log_level
from diagnostics.run import run_doctor
from diagnostics.runner import format_report
from transport.buffers import RECOMMENDED_BUFFER_BYTES, open_tuned_udp_socket
from transport.diagnostics import DEFAULT_LISTEN_ADDR, resolve_udp_address

MAX_BUFFER_BYTES = 2**31 - 1


def buffer_size(value: str) -> int:
    """Parse a socket buffer size that fits the kernel's C int option."""

    try:
        size = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid byte count: {value!r}") from None
    if not 0 < size <= MAX_BUFFER_BYTES:
        raise argparse.ArgumentTypeError(f"must be between 1 and {MAX_BUFFER_BYTES} bytes")
    return size


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        prog="libyalink",
        description="Operator tools for the LibyaLink UDP proxy server.",
    )
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level.")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    doctor = subparsers.add_parser("doctor", help="Diagnose server configuration and environment.")
    doctor.add_argument("--config", "-c", type=Path, default=None, help="Config file path.")

    buffers = subparsers.add_parser(
        "buffers",
        help="Bind the listen address and report the UDP buffer sizes the OS grants.",
    )
    buffers.add_argument("--config", "-c", type=Path, default=None, help="Config file path.")
    buffers.add_argument("--listen", type=str, default=None, help="Listen address override.")
    buffers.add_argument("--read-bytes", type=buffer_size, default=RECOMMENDED_BUFFER_BYTES)
    buffers.add_argument("--write-bytes", type=buffer_size, default=RECOMMENDED_BUFFER_BYTES)
    return parser.parse_args(argv)


def run_buffers(args: argparse.Namespace) -> int:
    """Open a UDP socket at the listen address and print buffer outcomes."""

    listen_addr = args.listen
    if listen_addr is None:
        listen_addr = load_config(args.config).get_string("listen") or DEFAULT_LISTEN_ADDR

    try:
        family, sockaddr = resolve_udp_address(listen_addr)
        sock, outcomes = open_tuned_udp_socket(
            sockaddr,
            family=family,
            read_bytes=args.read_bytes,
            write_bytes=args.write_bytes,
        )
    except (OSError, ValueError) as exc:
        logger.error("Cannot open UDP socket on %s: %s", listen_addr, exc)
        return 1

    with sock:
        for outcome in outcomes:
            print(f"[{outcome.kind.value}] {outcome.describe()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    set_log_level(args.log_level)
    if args.log_file is not None:
        enable_file_logging(args.log_file)
        logger.info("Writing logs to %s", args.log_file)

    if args.command == "doctor":
        report = run_doctor(load_config(args.config))
        print(format_report(report))
        return report.exit_code
    return run_buffers(args)


if __name__ == "__main__":
    raise SystemExit(main())
