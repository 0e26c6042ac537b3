# backend/fallback.py
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import config
from errors import ExternalToolError

logger = logging.getLogger(__name__)

CERT_BEGIN_MARKER = "-----BEGIN CERTIFICATE-----"


class TransportMode(str, Enum):
    NATIONAL = "ntls"
    GENERIC = "generic"


@dataclass
class ToolOutput:
    mode: TransportMode
    returncode: int
    stdout: str
    stderr: str

    @property
    def combined(self) -> str:
        return (self.stdout or "") + "\n" + (self.stderr or "")

    @property
    def has_certificates(self) -> bool:
        return CERT_BEGIN_MARKER in (self.stdout or "")


def _exec_tool(args: List[str], timeout: float, stdin_data: bytes = b"") -> subprocess.CompletedProcess:
    """Run the toolkit once. stdin is written (possibly empty) and closed; the child is killed on timeout."""
    cmd = [config.OPENSSL_CMD] + args
    try:
        return subprocess.run(
            cmd,
            input=stdin_data,
            capture_output=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(f"{cmd[0]} {args[0]} timed out after {timeout:g}s") from e
    except OSError as e:
        raise ExternalToolError(f"failed to start {cmd[0]}: {e}") from e


def build_s_client_args(domain: str, port: int, mode: TransportMode) -> List[str]:
    args = [
        "s_client",
        "-connect", f"{domain}:{port}",
        "-servername", domain,
        "-showcerts",
    ]
    if mode is TransportMode.NATIONAL:
        args += ["-enable_ntls", "-ntls"]
    return args


def run_showcerts(domain: str, port: int, mode: TransportMode, timeout: Optional[float] = None) -> ToolOutput:
    """Dump the server's chain with s_client under the given transport mode."""
    timeout = config.TOOL_TIMEOUT if timeout is None else timeout
    proc = _exec_tool(build_s_client_args(domain, port, mode), timeout=timeout)

    out = ToolOutput(
        mode=mode,
        returncode=proc.returncode,
        stdout=proc.stdout.decode("utf-8", errors="replace"),
        stderr=proc.stderr.decode("utf-8", errors="replace"),
    )
    if not out.has_certificates:
        tail = (out.stderr.strip().splitlines() or [""])[-1]
        raise ExternalToolError(f"no certificate data from {mode.value} s_client (exit {proc.returncode}) {tail}".strip())

    logger.debug("s_client (%s) returned certificates for %s:%s", mode.value, domain, port)
    return out


def run_x509_text(pem: str, timeout: Optional[float] = None) -> str:
    """Decode one PEM certificate to the toolkit's text form (with SHA-256 fingerprint)."""
    timeout = config.CERT_PARSE_TIMEOUT if timeout is None else timeout
    proc = _exec_tool(
        [
            "x509",
            "-noout",
            "-text",
            "-nameopt", "utf8,sep_comma_plus",
            "-fingerprint",
            "-sha256",
        ],
        timeout=timeout,
        stdin_data=pem.encode("utf-8"),
    )
    text = proc.stdout.decode("utf-8", errors="replace") + proc.stderr.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        raise ExternalToolError(f"x509 exited with {proc.returncode}: {text.strip()[:200]}")
    return text
