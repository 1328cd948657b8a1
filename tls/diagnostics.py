"""Diagnostics routines for TLS certificate configuration."""

from __future__ import annotations

import os
import ssl

from config.controller import ConfigSnapshot
from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe_tls_mode(config: ConfigSnapshot) -> list[DiagnosticResult]:
    """Check that exactly one of ``tls`` and ``acme`` is configured."""

    name = "TLS/ACME"
    if not config.loaded_file_path:
        return []

    has_tls = config.has_key("tls")
    has_acme = config.has_key("acme")

    if has_tls and has_acme:
        status = DiagnosticStatus.FAIL
        message = "Both 'tls' and 'acme' are set. You must use one or the other, not both."
    elif not has_tls and not has_acme:
        status = DiagnosticStatus.FAIL
        message = "Neither 'tls' nor 'acme' is configured. One is required for the server to start."
    elif has_tls:
        status = DiagnosticStatus.OK
        message = "TLS mode: using local certificate files."
    else:
        status = DiagnosticStatus.OK
        message = "ACME mode: using automatic certificate provisioning."
    return [DiagnosticResult(name=name, status=status, message=message)]


def check_file_readable(name: str, path: str) -> DiagnosticResult:
    """Check that ``path`` exists, can be opened and is not empty."""

    try:
        info = os.stat(path)
    except FileNotFoundError:
        return DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, message=f"File not found: {path}")
    except PermissionError:
        return DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, message=f"Permission denied on {path}")
    except OSError as exc:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            message=f"Error accessing {path}: {exc}",
        )

    try:
        with open(path, "rb"):
            pass
    except PermissionError:
        return DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, message=f"Permission denied on {path}")
    except OSError as exc:
        return DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, message=f"Cannot open {path}: {exc}")

    if info.st_size == 0:
        return DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, message=f"File is empty: {path}")

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.OK,
        message=f"Readable ({info.st_size} bytes): {path}",
    )


def load_key_pair(cert_path: str, key_path: str) -> None:
    """Load a certificate and private key as a matched server pair.

    Passphrase-protected keys are rejected instead of prompting on the TTY;
    the server cannot read them either.

    Raises:
        ssl.SSLError: If either file cannot be parsed, the key is encrypted
            or the key does not match the certificate.
        OSError: If either file cannot be read.
    """

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(certfile=cert_path, keyfile=key_path, password=_no_passphrase)


def _no_passphrase() -> bytes:
    return b""


def probe_tls_files(config: ConfigSnapshot) -> list[DiagnosticResult]:
    """Check the static certificate and key files and that they match.

    Nothing is reported in ACME mode.
    """

    if not config.has_key("tls"):
        return []

    results: list[DiagnosticResult] = []
    readable = True
    for name, key in (("TLS Cert", "tls.cert"), ("TLS Key", "tls.key")):
        path = config.get_string(key)
        if not path:
            results.append(
                DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, message=f"{key} path is empty.")
            )
            readable = False
            continue
        result = check_file_readable(name, path)
        results.append(result)
        readable = readable and result.status is DiagnosticStatus.OK

    if not readable:
        return results

    try:
        load_key_pair(config.get_string("tls.cert"), config.get_string("tls.key"))
    except (ssl.SSLError, OSError, ValueError) as exc:
        results.append(
            DiagnosticResult(
                name="TLS Pair",
                status=DiagnosticStatus.FAIL,
                message=f"Certificate/Key pair is invalid: {exc}",
            )
        )
    else:
        results.append(
            DiagnosticResult(
                name="TLS Pair",
                status=DiagnosticStatus.OK,
                message="Certificate and key pair loaded successfully.",
            )
        )
    return results
