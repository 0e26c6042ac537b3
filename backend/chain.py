# backend/chain.py
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa
from cryptography.x509.oid import NameOID, SignatureAlgorithmOID

from config import MAX_CHAIN_LENGTH
from errors import EmptyCertificateError

logger = logging.getLogger(__name__)

POSITION_NAMES = {
    "leaf": "Server certificate",
    "intermediate": "Intermediate certificate",
    "root": "Root certificate",
    "self-signed": "Self-signed certificate",
}

_NAME_KEYS = {
    NameOID.COMMON_NAME: "CN",
    NameOID.ORGANIZATION_NAME: "O",
    NameOID.ORGANIZATIONAL_UNIT_NAME: "OU",
    NameOID.COUNTRY_NAME: "C",
    NameOID.STATE_OR_PROVINCE_NAME: "ST",
    NameOID.LOCALITY_NAME: "L",
    NameOID.BUSINESS_CATEGORY: "businessCategory",
    NameOID.SERIAL_NUMBER: "serialNumber",
}

# OpenSSL short names for the signature OIDs seen on the web PKI (plus GM/T)
_SIGNATURE_NAMES = {
    SignatureAlgorithmOID.RSA_WITH_MD5.dotted_string: "md5WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA1.dotted_string: "sha1WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA224.dotted_string: "sha224WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA256.dotted_string: "sha256WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA384.dotted_string: "sha384WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA512.dotted_string: "sha512WithRSAEncryption",
    SignatureAlgorithmOID.RSASSA_PSS.dotted_string: "rsassaPss",
    SignatureAlgorithmOID.ECDSA_WITH_SHA1.dotted_string: "ecdsa-with-SHA1",
    SignatureAlgorithmOID.ECDSA_WITH_SHA224.dotted_string: "ecdsa-with-SHA224",
    SignatureAlgorithmOID.ECDSA_WITH_SHA256.dotted_string: "ecdsa-with-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA384.dotted_string: "ecdsa-with-SHA384",
    SignatureAlgorithmOID.ECDSA_WITH_SHA512.dotted_string: "ecdsa-with-SHA512",
    SignatureAlgorithmOID.DSA_WITH_SHA1.dotted_string: "dsa_with_SHA1",
    SignatureAlgorithmOID.DSA_WITH_SHA224.dotted_string: "dsa_with_SHA224",
    SignatureAlgorithmOID.DSA_WITH_SHA256.dotted_string: "dsa_with_SHA256",
    SignatureAlgorithmOID.ED25519.dotted_string: "ED25519",
    SignatureAlgorithmOID.ED448.dotted_string: "ED448",
    "1.2.156.10197.1.501": "SM2-with-SM3",
    "1.2.156.10197.1.502": "SM2-with-SHA1",
    "1.2.156.10197.1.503": "SM2-with-SHA256",
}

# DER-encoded OBJECT IDENTIFIER 1.2.156.10197.1.301 (sm2p256v1)
_SM2_CURVE_OID_DER = bytes.fromhex("06082a811ccf5501822d")


# -----------------------------
# Formatting helpers
# -----------------------------

def _utc_iso(dt: Optional[datetime]) -> Optional[str]:
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def colon_hex(data: bytes) -> str:
    return ":".join(f"{b:02X}" for b in data)


def _serial_hex(serial: int) -> str:
    s = f"{serial:X}"
    return s if len(s) % 2 == 0 else "0" + s


def common_name(dn: Dict[str, Any]) -> str:
    # CA certificates often omit CN
    return str(dn.get("CN") or dn.get("O") or dn.get("OU") or "").strip()


# -----------------------------
# x509 -> raw fields
# -----------------------------

def _name_fields(name: x509.Name) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for attr in name:
        key = _NAME_KEYS.get(attr.oid)
        if key and key not in out:
            v = attr.value
            out[key] = v.decode("utf-8", "replace") if isinstance(v, bytes) else str(v)
    return out


def _san_dns(cert: x509.Certificate) -> List[str]:
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        return [str(v) for v in san.get_values_for_type(x509.DNSName)]
    except x509.ExtensionNotFound:
        return []


def _policy_oids(cert: x509.Certificate) -> List[str]:
    try:
        policies = cert.extensions.get_extension_for_class(x509.CertificatePolicies).value
        return [p.policy_identifier.dotted_string for p in policies]
    except x509.ExtensionNotFound:
        return []


def _signature_name(cert: x509.Certificate) -> str:
    try:
        oid = cert.signature_algorithm_oid
    except ValueError:
        return ""
    return _SIGNATURE_NAMES.get(oid.dotted_string, oid.dotted_string)


def _key_fields(cert: x509.Certificate) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "curve": None,
        "modulus": None,
        "bits": None,
        "public_key_raw": None,
        "public_key_algorithm": "",
    }

    try:
        pk = cert.public_key()
    except (UnsupportedAlgorithm, ValueError):
        # cryptography refuses SM2 keys; the curve OID is still in the SPKI
        if _SM2_CURVE_OID_DER in cert.tbs_certificate_bytes:
            out["curve"] = "sm2p256v1"
            out["bits"] = 256
            out["public_key_algorithm"] = "SM2"
        return out

    out["public_key_algorithm"] = pk.__class__.__name__

    if isinstance(pk, rsa.RSAPublicKey):
        out["modulus"] = f"{pk.public_numbers().n:X}"
        out["bits"] = pk.key_size
    elif isinstance(pk, ec.EllipticCurvePublicKey):
        out["curve"] = pk.curve.name
        out["bits"] = pk.key_size
    elif isinstance(pk, ed25519.Ed25519PublicKey):
        out["public_key_raw"] = pk.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)
    elif isinstance(pk, ed448.Ed448PublicKey):
        out["curve"] = "Ed448"
    elif isinstance(pk, dsa.DSAPublicKey):
        out["bits"] = pk.key_size

    return out


def fields_from_x509(cert: x509.Certificate, der: bytes) -> Dict[str, Any]:
    """Raw certificate fields from a parsed certificate (live-session source)."""
    not_before = getattr(cert, "not_valid_before_utc", None) or cert.not_valid_before
    not_after = getattr(cert, "not_valid_after_utc", None) or cert.not_valid_after

    fields: Dict[str, Any] = {
        "subject": _name_fields(cert.subject),
        "issuer": _name_fields(cert.issuer),
        "not_before": _utc_iso(not_before),
        "not_after": _utc_iso(not_after),
        "serial_number": _serial_hex(cert.serial_number),
        "fingerprint": colon_hex(cert.fingerprint(hashes.SHA1())),
        "fingerprint256": colon_hex(cert.fingerprint(hashes.SHA256())),
        "san_dns": _san_dns(cert),
        "signature_algorithm": _signature_name(cert),
        "extension_oids": _policy_oids(cert),
        "version": cert.version.value + 1,
        "raw_encoding": base64.b64encode(der).decode("ascii"),
    }
    fields.update(_key_fields(cert))
    return fields


# -----------------------------
# Issuer linkage + walk
# -----------------------------

@dataclass(eq=False)
class LinkedCertificate:
    der: bytes
    fingerprint256: str
    certificate: Optional[x509.Certificate] = None
    issuer_certificate: Optional["LinkedCertificate"] = None


def link_issuers(certs: List[Tuple[x509.Certificate, bytes]]) -> Optional[LinkedCertificate]:
    """Link each certificate to its issuer within the presented set; returns the peer (first) node."""
    nodes = [
        LinkedCertificate(der=der, fingerprint256=colon_hex(c.fingerprint(hashes.SHA256())), certificate=c)
        for c, der in certs
    ]

    for node in nodes:
        c = node.certificate
        if c.issuer == c.subject:
            node.issuer_certificate = node
            continue
        for other in nodes:
            if other is not node and other.certificate.subject == c.issuer:
                node.issuer_certificate = other
                break

    return nodes[0] if nodes else None


def walk_chain(peer: Optional[LinkedCertificate], max_length: int = MAX_CHAIN_LENGTH) -> List[Tuple[LinkedCertificate, str]]:
    out: List[Tuple[LinkedCertificate, str]] = []
    seen = set()
    node = peer

    while node is not None and node.fingerprint256 not in seen:
        seen.add(node.fingerprint256)

        issuer = node.issuer_certificate
        if not out:
            position = "leaf"
        elif issuer is None or issuer is node:
            position = "root"
        else:
            position = "intermediate"
        out.append((node, position))

        if len(out) >= max_length:
            break
        node = issuer

    return out


def mark_self_signed(entries: List[Dict[str, Any]]) -> bool:
    if len(entries) != 1:
        return False
    only = entries[0]
    if common_name(only.get("subject") or {}) != common_name(only.get("issuer") or {}):
        return False
    only["position"] = "self-signed"
    return True


# -----------------------------
# Live session
# -----------------------------

def _load_chain_item(item: Any) -> Tuple[x509.Certificate, bytes]:
    if isinstance(item, (bytes, bytearray)):
        der = bytes(item)
        return x509.load_der_x509_certificate(der), der

    # ssl.Certificate (3.13+): PEM text by default
    data = item.public_bytes()
    if isinstance(data, str):
        cert = x509.load_pem_x509_certificate(data.encode("ascii"))
    else:
        cert = x509.load_der_x509_certificate(bytes(data))
    return cert, cert.public_bytes(serialization.Encoding.DER)


def presented_certificates(session: Any) -> List[Tuple[x509.Certificate, bytes]]:
    """
    Returns [(certificate, der)] peer first.

    We try multiple mechanisms because Python/OpenSSL differs by platform/version.
    """
    ssock = session.ssl_socket
    accessors = ("get_verified_chain", "get_unverified_chain") if session.verified else ("get_unverified_chain",)

    for name in accessors:
        fn = getattr(ssock, name, None)
        if not callable(fn):
            continue
        try:
            chain = fn()
        except Exception as e:
            logger.debug("%s failed: %s", name, e)
            continue
        if chain:
            return [_load_chain_item(item) for item in chain]

    leaf = ssock.getpeercert(binary_form=True)
    if leaf:
        return [(x509.load_der_x509_certificate(leaf), leaf)]
    return []


def collect_chain(session: Any) -> List[Dict[str, Any]]:
    try:
        certs = presented_certificates(session)
    except ValueError as e:
        # undecodable for cryptography; the toolkit path may still read it
        raise EmptyCertificateError(f"Peer certificate could not be decoded: {e}") from e
    peer = link_issuers(certs)
    if peer is None:
        raise EmptyCertificateError("Handshake completed but no peer certificate was presented")

    entries: List[Dict[str, Any]] = []
    for node, position in walk_chain(peer):
        fields = fields_from_x509(node.certificate, node.der)
        fields["position"] = position
        entries.append(fields)

    mark_self_signed(entries)
    return entries


def session_metadata(session: Any) -> Dict[str, Any]:
    ssock = session.ssl_socket
    c = ssock.cipher()
    cipher = {"name": "Unknown", "version": None, "bits": None}
    if c:
        cipher = {
            "name": c[0] or "Unknown",
            "version": c[1] if len(c) > 1 else None,
            "bits": c[2] if len(c) > 2 else None,
        }
    return {
        "is_valid": bool(session.verified),
        "error": session.verify_error,
        "protocol": ssock.version() or "",
        "cipher": cipher,
    }
