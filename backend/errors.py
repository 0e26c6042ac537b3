# backend/errors.py
from __future__ import annotations

from typing import List, Optional


class CertProbeError(Exception):
    """Base class for certificate acquisition failures."""


class TLSConnectionError(CertProbeError, ConnectionError):
    """Every native TLS profile failed (or timed out)."""

    def __init__(self, message: str, attempts: Optional[List[str]] = None):
        super().__init__(message)
        self.attempts = list(attempts or [])


class EmptyCertificateError(CertProbeError):
    """Handshake completed but the peer presented no certificate."""


class ExternalToolError(CertProbeError):
    """The external toolkit could not be started, timed out, or returned no certificates."""


class PerCertificateParseError(CertProbeError):
    """One certificate block from the toolkit output could not be parsed."""
