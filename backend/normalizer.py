# backend/normalizer.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from chain import POSITION_NAMES, common_name
from classifier import classify_fields
from models import CertificateRecord, ChainResult, CipherInfo, DistinguishedName

# Default GM cipher suite when the toolkit output does not name one
GM_DEFAULT_CIPHER = "SM2-WITH-SM4-SM3"


def _dn(fields: Dict[str, Any]) -> DistinguishedName:
    return DistinguishedName(
        common_name=common_name(fields),
        organization=fields.get("O") or "",
        organizational_unit=fields.get("OU") or "",
        country=fields.get("C") or "",
        state=fields.get("ST") or fields.get("S") or "",
        locality=fields.get("L") or "",
    )


def build_certificate_record(fields: Dict[str, Any]) -> CertificateRecord:
    classified = classify_fields(fields)
    position = fields.get("position") or "leaf"
    pk = classified["public_key"]

    return CertificateRecord(
        subject=_dn(fields.get("subject") or {}),
        issuer=_dn(fields.get("issuer") or {}),
        valid_from=fields.get("not_before"),
        valid_to=fields.get("not_after"),
        serial_number=fields.get("serial_number") or "",
        fingerprint=fields.get("fingerprint") or "",
        fingerprint256=fields.get("fingerprint256") or "",
        subject_alt_names=list(fields.get("san_dns") or []),
        bits=pk["bits"],
        public_key=pk,
        signature_algorithm=classified["signature_algorithm"],
        validation_level=classified["validation_level"],
        version=int(fields.get("version") or 0),
        type=position,
        type_name=POSITION_NAMES[position],
        raw_encoding=fields.get("raw_encoding") or "",
    )


def _is_national(record: CertificateRecord) -> bool:
    return record.public_key.type == "SM2" or record.signature_algorithm.algorithm == "SM3withSM2"


def build_chain_result(
    domain: str,
    port: int,
    entries: List[Dict[str, Any]],
    *,
    is_valid: bool,
    protocol: str = "",
    cipher: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None,
    national_transport: bool = False,
    fallback: bool = False,
    fallback_reason: Optional[str] = None,
) -> ChainResult:
    """Same output shape for the live-session and toolkit paths."""
    records = [build_certificate_record(f) for f in entries]

    is_self_signed = len(records) == 1 and records[0].type == "self-signed"
    is_gmssl = bool(national_transport) or any(_is_national(r) for r in records)

    cipher = dict(cipher or {})
    if not cipher.get("name"):
        cipher["name"] = GM_DEFAULT_CIPHER if (fallback and is_gmssl) else "Unknown"
    if not protocol and fallback:
        protocol = "GMTLS" if is_gmssl else "TLS"

    return ChainResult(
        domain=domain,
        port=port,
        certificates=records,
        is_valid=is_valid,
        is_self_signed=is_self_signed,
        is_gmssl=is_gmssl,
        protocol=protocol or "",
        cipher=CipherInfo(**cipher),
        fallback=fallback,
        fallback_reason=fallback_reason if fallback else None,
        error=error,
    )
