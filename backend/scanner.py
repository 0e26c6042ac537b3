# backend/scanner.py
from __future__ import annotations

import logging
import socket
import ssl
import urllib.parse
from typing import Any, Dict, List, Optional, Tuple

import config
from errors import TLSConnectionError

logger = logging.getLogger(__name__)

# Ordered compatibility profiles: strictest first, tried one after another
TLS_PROFILES: List[Dict[str, Any]] = [
    {
        "name": "modern",
        "minimum_version": ssl.TLSVersion.TLSv1_2,
        "maximum_version": ssl.TLSVersion.TLSv1_3,
        "ciphers": None,
    },
    {
        "name": "legacy",
        "minimum_version": ssl.TLSVersion.TLSv1,
        "maximum_version": ssl.TLSVersion.TLSv1_3,
        "ciphers": "DEFAULT:@SECLEVEL=0",
    },
    {
        "name": "all_ciphers",
        "minimum_version": ssl.TLSVersion.TLSv1_2,
        "maximum_version": ssl.TLSVersion.TLSv1_3,
        "ciphers": "ALL:@SECLEVEL=0",
    },
]

_SSLCertVerificationError = getattr(ssl, "SSLCertVerificationError", ssl.SSLError)


def _verify_message(err: Exception) -> str:
    # SSLCertVerificationError often exposes verify_code/verify_message.
    return getattr(err, "verify_message", None) or str(err)


def parse_target(target: str) -> Tuple[str, int]:
    """
    Accepts:
      - example.com
      - example.com:443
      - https://example.com
      - https://example.com:8443/path
    Returns (host, port).
    """
    t = (target or "").strip()
    if not t:
        return ("", 0)

    port = 443

    if "://" in t:
        try:
            u = urllib.parse.urlsplit(t)
            hostname, url_port = u.hostname, u.port
        except ValueError:
            hostname, url_port = None, None
        if hostname:
            t = hostname
            port = url_port if url_port is not None else port
        else:
            t = t.split("://", 1)[1]

    # host:port
    if ":" in t:
        host, port_s = t.split(":", 1)
        t = host
        try:
            port = int(port_s.split("/", 1)[0].strip())
        except ValueError:
            port = 443

    # strip path
    t = t.split("/", 1)[0].strip()
    return (t, port)


# -----------------------------
# Session
# -----------------------------

class TLSSession(object):
    """An open TLS connection owned by one request; close it on every path."""

    def __init__(self, ssl_socket: ssl.SSLSocket, profile: str, verified: bool, verify_error: Optional[str] = None):
        self.ssl_socket = ssl_socket
        self.profile = profile
        self.verified = verified
        self.verify_error = verify_error

    def close(self) -> None:
        try:
            self.ssl_socket.close()
        except OSError:
            pass

    def __enter__(self) -> "TLSSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _make_context_for_profile(profile: Dict[str, Any], verify: bool) -> ssl.SSLContext:
    if verify:
        ctx = ssl.create_default_context()
        # trust covers the chain only; SNI is still sent
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_REQUIRED
    else:
        ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE

    # Raises ValueError when the local OpenSSL cannot do the requested bound
    ctx.minimum_version = profile["minimum_version"]
    ctx.maximum_version = profile["maximum_version"]

    if profile.get("ciphers"):
        ctx.set_ciphers(profile["ciphers"])

    return ctx


def _open_session(host: str, port: int, profile: Dict[str, Any], verify: bool, timeout: float) -> TLSSession:
    ctx = _make_context_for_profile(profile, verify=verify)
    sock = socket.create_connection((host, port), timeout=timeout)
    try:
        ssock = ctx.wrap_socket(sock, server_hostname=host)
    except BaseException:
        sock.close()
        raise
    return TLSSession(ssock, profile=profile["name"], verified=verify)


def _attempt_profile(host: str, port: int, profile: Dict[str, Any], timeout: float) -> TLSSession:
    try:
        return _open_session(host, port, profile, verify=True, timeout=timeout)
    except _SSLCertVerificationError as e:
        # Untrusted chains are still inspected; keep the verifier's message
        session = _open_session(host, port, profile, verify=False, timeout=timeout)
        session.verify_error = _verify_message(e)
        return session


def _describe_failure(err: Exception, timeout: float) -> str:
    if isinstance(err, (socket.timeout, TimeoutError)):
        return f"Connection timed out after {timeout:g}s"
    return str(err) or err.__class__.__name__


def connect_with_profiles(
    host: str,
    port: int,
    timeout: Optional[float] = None,
    profiles: Optional[List[Dict[str, Any]]] = None,
) -> TLSSession:
    """Open a TLS session using the first profile that completes a handshake."""
    timeout = config.TLS_TIMEOUT if timeout is None else timeout
    attempts: List[str] = []
    last_error = "Unable to establish TLS connection"

    for profile in (TLS_PROFILES if profiles is None else profiles):
        try:
            session = _attempt_profile(host, port, profile, timeout)
        except (OSError, ValueError) as e:
            last_error = _describe_failure(e, timeout)
            attempts.append(f"{profile['name']}: {last_error}")
            logger.debug("TLS profile %s failed for %s:%s: %s", profile["name"], host, port, last_error)
            continue

        logger.debug("TLS profile %s succeeded for %s:%s (verified=%s)", profile["name"], host, port, session.verified)
        return session

    raise TLSConnectionError(last_error, attempts=attempts)
