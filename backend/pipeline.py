# backend/pipeline.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

import config
from chain import collect_chain, session_metadata
from errors import CertProbeError, EmptyCertificateError, ExternalToolError, TLSConnectionError
from fallback import TransportMode, run_showcerts
from models import ChainResult
from normalizer import build_chain_result
from scanner import connect_with_profiles
from text_extract import extract_certificates, session_info_from_output

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Could not retrieve certificate information, please check the domain"


class AcquisitionState(str, Enum):
    ATTEMPT_NATIVE = "attempt_native"
    ATTEMPT_NATIONAL_TRANSPORT = "attempt_national_transport"
    ATTEMPT_GENERIC_TRANSPORT = "attempt_generic_transport"
    FAILED = "failed"


# Transition taken when a state fails
ON_FAILURE = {
    AcquisitionState.ATTEMPT_NATIVE: AcquisitionState.ATTEMPT_NATIONAL_TRANSPORT,
    AcquisitionState.ATTEMPT_NATIONAL_TRANSPORT: AcquisitionState.ATTEMPT_GENERIC_TRANSPORT,
    AcquisitionState.ATTEMPT_GENERIC_TRANSPORT: AcquisitionState.FAILED,
}

TRANSPORT_MODES = {
    AcquisitionState.ATTEMPT_NATIONAL_TRANSPORT: TransportMode.NATIONAL,
    AcquisitionState.ATTEMPT_GENERIC_TRANSPORT: TransportMode.GENERIC,
}


def get_certificate_chain(domain: str, port: int = 443, timeout: Optional[float] = None) -> ChainResult:
    """Native path: live handshake -> issuer walk -> ChainResult."""
    with connect_with_profiles(domain, port, timeout=timeout) as session:
        entries = collect_chain(session)
        meta = session_metadata(session)

    return build_chain_result(
        domain,
        port,
        entries,
        is_valid=meta["is_valid"],
        protocol=meta["protocol"],
        cipher=meta["cipher"],
        error=meta["error"],
    )


def get_toolkit_certificate_chain(domain: str, port: int, mode: TransportMode, fallback_reason: str) -> ChainResult:
    """Toolkit path for one transport mode; raises ExternalToolError if no certificate survives."""
    dump = run_showcerts(domain, port, mode)
    entries = extract_certificates(dump.stdout)
    if not entries:
        raise ExternalToolError(f"no parseable certificate in {mode.value} s_client output")

    info = session_info_from_output(dump.combined)
    return build_chain_result(
        domain,
        port,
        entries,
        is_valid=True,
        protocol=info["protocol"],
        cipher={"name": info["cipher"]},
        # certificates under -ntls mean the NTLS handshake went through
        national_transport=info["national_transport"] or mode is TransportMode.NATIONAL,
        fallback=True,
        fallback_reason=fallback_reason,
    )


def get_certificate_chain_with_fallback(domain: str, port: int = 443, timeout: Optional[float] = None) -> ChainResult:
    timeout = config.TLS_TIMEOUT if timeout is None else timeout
    state = AcquisitionState.ATTEMPT_NATIVE
    native_error: Optional[CertProbeError] = None
    last_error: Optional[CertProbeError] = None

    while True:
        if state is AcquisitionState.ATTEMPT_NATIVE:
            try:
                return get_certificate_chain(domain, port, timeout=timeout)
            except (TLSConnectionError, EmptyCertificateError) as e:
                native_error = e
                logger.info("native TLS failed for %s:%s (%s), trying %s", domain, port, e, config.OPENSSL_CMD)

        elif state is AcquisitionState.FAILED:
            raise ExternalToolError(GENERIC_FAILURE_MESSAGE) from last_error

        else:
            mode = TRANSPORT_MODES[state]
            try:
                return get_toolkit_certificate_chain(domain, port, mode, fallback_reason=str(native_error))
            except ExternalToolError as e:
                last_error = e
                logger.warning("%s transport failed for %s:%s: %s", mode.value, domain, port, e)

        state = ON_FAILURE[state]
