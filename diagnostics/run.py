"""Command-line entry point for running diagnostics."""

from __future__ import annotations

import argparse
from pathlib import Path

from config.controller import ConfigSnapshot, load_config
from config.diagnostics import probe_auth, probe_config_file
from diagnostics.models import DiagnosticReport
from diagnostics.runner import Check, format_report, run_diagnostics
from tls.diagnostics import probe_tls_files, probe_tls_mode
from transport.diagnostics import probe_listen_port, probe_udp_buffers

DEFAULT_CHECKS: tuple[Check, ...] = (
    probe_config_file,
    probe_tls_mode,
    probe_tls_files,
    probe_listen_port,
    probe_udp_buffers,
    probe_auth,
)


def run_doctor(config: ConfigSnapshot, checks: tuple[Check, ...] = DEFAULT_CHECKS) -> DiagnosticReport:
    """Run the standard server readiness checks against ``config``."""

    return run_diagnostics(checks, config)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""

    parser = argparse.ArgumentParser(description="Diagnose server configuration and environment.")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Config file path (default: search config.yaml, config.yml, config.json).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run diagnostics and return an exit code."""

    args = parse_args(argv)
    report = run_doctor(load_config(args.config))
    print(format_report(report))
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
