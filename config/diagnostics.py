"""Diagnostics routines for the configuration subsystem."""

from __future__ import annotations

from config.controller import ConfigSnapshot
from diagnostics.models import DiagnosticResult, DiagnosticStatus

MIN_PASSWORD_LENGTH = 8


def probe_config_file(config: ConfigSnapshot) -> list[DiagnosticResult]:
    """Report whether a configuration file was loaded.

    Args:
        config: Snapshot produced by ``load_config``.

    Returns:
        A single result with the source path or the load error.
    """

    name = "Config File"
    if config.is_loaded:
        return [
            DiagnosticResult(
                name=name,
                status=DiagnosticStatus.OK,
                message=f"Config loaded from: {config.loaded_file_path}",
            )
        ]
    return [
        DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            message=f"Cannot read config file: {config.load_error or 'no configuration loaded'}",
        )
    ]


def _auth_result(status: DiagnosticStatus, message: str) -> list[DiagnosticResult]:
    return [DiagnosticResult(name="Auth", status=status, message=message)]


def probe_auth(config: ConfigSnapshot) -> list[DiagnosticResult]:
    """Validate the fields required by the configured ``auth.type``.

    Unknown types are accepted as-is; only known types are checked.
    """

    auth_type = config.get_string("auth.type")
    if not auth_type:
        return _auth_result(
            DiagnosticStatus.FAIL,
            "No auth.type configured. Server requires authentication.",
        )

    kind = auth_type.lower()
    if kind == "password":
        password = config.get_string("auth.password")
        if not password:
            return _auth_result(
                DiagnosticStatus.FAIL,
                "auth.type is 'password' but auth.password is empty.",
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            return _auth_result(
                DiagnosticStatus.WARN,
                f"auth.password is very short (< {MIN_PASSWORD_LENGTH} chars). "
                "Consider using a stronger password.",
            )
        return _auth_result(DiagnosticStatus.OK, "Password authentication configured.")

    if kind == "userpass":
        users = config.get_string_map("auth.userpass")
        if not users:
            return _auth_result(
                DiagnosticStatus.FAIL,
                "auth.type is 'userpass' but no user:password entries found.",
            )
        return _auth_result(
            DiagnosticStatus.OK,
            f"User/pass authentication configured ({len(users)} users).",
        )

    if kind in {"http", "https"}:
        url = config.get_string("auth.http.url")
        if not url:
            return _auth_result(
                DiagnosticStatus.FAIL,
                f"auth.type is '{kind}' but auth.http.url is empty.",
            )
        return _auth_result(DiagnosticStatus.OK, f"HTTP authentication configured: {url}")

    return _auth_result(DiagnosticStatus.OK, f"Authentication type: {auth_type}")
