# backend/text_extract.py
from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import config
from chain import mark_self_signed
from classifier import is_sm2_identifier
from errors import ExternalToolError, PerCertificateParseError
from fallback import run_x509_text

logger = logging.getLogger(__name__)

PEM_BLOCK_RE = re.compile(r"-----BEGIN CERTIFICATE-----[\s\S]*?-----END CERTIFICATE-----")

_FLAGS = re.IGNORECASE | re.MULTILINE

SUBJECT_RE = re.compile(r"^[ \t]*Subject:[ \t]*(.+)$", _FLAGS)
ISSUER_RE = re.compile(r"^[ \t]*Issuer:[ \t]*(.+)$", _FLAGS)
NOT_BEFORE_RE = re.compile(r"Not Before\s*:\s*(.+)", _FLAGS)
NOT_AFTER_RE = re.compile(r"Not After\s*:\s*(.+)", _FLAGS)
SERIAL_RE = re.compile(r"Serial Number:\s*([0-9a-f:]+)(?:\s*\(0x([0-9a-f]+)\))?", _FLAGS)
FINGERPRINT_RE = re.compile(r"sha256 Fingerprint=([0-9a-f:]+)", _FLAGS)
KEY_SIZE_RE = re.compile(r"Public-Key:\s*\((\d+)\s*bit", _FLAGS)
CURVE_RE = re.compile(r"ASN1 OID:\s*(\S+)", _FLAGS)
PUBKEY_ALG_RE = re.compile(r"Public Key Algorithm:\s*(\S+)", _FLAGS)
SIG_ALG_RE = re.compile(r"Signature Algorithm:\s*(\S+)", _FLAGS)
SAN_RE = re.compile(r"X509v3 Subject Alternative Name:[^\n]*\n\s*([^\n]+)", _FLAGS)
MODULUS_RE = re.compile(r"Modulus:[ \t]*\n((?:[ \t]+[0-9a-f:]+[ \t]*\n)+)", _FLAGS)
PUB_RE = re.compile(r"\bpub:[ \t]*\n((?:[ \t]+[0-9a-f:]+[ \t]*\n)+)", _FLAGS)
POLICY_RE = re.compile(r"Policy:\s*([0-9]+(?:\.[0-9]+)+)", _FLAGS)
VERSION_RE = re.compile(r"Version:\s*(\d+)", _FLAGS)

PROTOCOL_RES = [
    re.compile(r"Protocol\s*:\s*(\S+)", _FLAGS),
    re.compile(r"New,\s*(\S+?),\s*Cipher is", _FLAGS),
]
CIPHER_RES = [
    re.compile(r"Cipher\s*:\s*(\S+)", _FLAGS),
    re.compile(r"Cipher is\s+(\S+)", _FLAGS),
]
NATIONAL_TRANSPORT_MARKERS = ("NTLS", "GMTLS", "GMSSL")

_DN_KEYS = {
    "cn": "CN",
    "o": "O",
    "ou": "OU",
    "c": "C",
    "st": "ST",
    "s": "ST",
    "l": "L",
    "businesscategory": "businessCategory",
    "serialnumber": "serialNumber",
}


def _first(rx: re.Pattern, text: str) -> Optional[str]:
    m = rx.search(text)
    return m.group(1).strip() if m else None


def _hex_bytes(block: str) -> str:
    return "".join(block.split()).replace(":", "")


def extract_pem_blocks(output: str) -> List[str]:
    return PEM_BLOCK_RE.findall(output or "")


def parse_dn(dn: Optional[str]) -> Dict[str, str]:
    """`C=US, O=Acme, CN=acme.com` (or `C = US, ...`) -> {"C": "US", "O": "Acme", "CN": "acme.com"}."""
    out: Dict[str, str] = {}
    for part in re.split(r"(?<!\\)[,+]", dn or ""):
        key, sep, value = part.partition("=")
        if not sep:
            continue
        k = _DN_KEYS.get(key.strip().lower())
        if k and k not in out:
            out[k] = value.strip().replace("\\,", ",").replace("\\+", "+")
    return out


def format_cert_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    v = " ".join(value.split())
    try:
        dt = datetime.strptime(v, "%b %d %H:%M:%S %Y GMT")
    except ValueError:
        return v
    return dt.replace(tzinfo=timezone.utc).isoformat()


def _serial(text: str) -> str:
    m = SERIAL_RE.search(text)
    if not m:
        return ""
    # Short serials print as "4660 (0x1234)"
    value = m.group(2) or m.group(1)
    return value.replace(":", "").upper()


def _san_dns(text: str) -> List[str]:
    line = _first(SAN_RE, text)
    if not line:
        return []
    out: List[str] = []
    for item in line.split(","):
        item = item.strip()
        if item.lower().startswith("dns:"):
            name = item[4:].strip()
            if name:
                out.append(name)
    return out


def parse_certificate_text(text: str, pem: str = "") -> Dict[str, Any]:
    """Raw certificate fields from `openssl x509 -noout -text -fingerprint -sha256` output."""
    subject_line = _first(SUBJECT_RE, text)
    fingerprint256 = _first(FINGERPRINT_RE, text)
    if subject_line is None and fingerprint256 is None:
        raise PerCertificateParseError("no subject or fingerprint in certificate dump")

    text_l = text.lower()
    curve = _first(CURVE_RE, text) or ""
    pubkey_alg = _first(PUBKEY_ALG_RE, text) or ""

    modulus_block = MODULUS_RE.search(text)
    modulus = _hex_bytes(modulus_block.group(1)) if modulus_block else ""
    if modulus.startswith("00"):
        modulus = modulus[2:]

    pub_block = PUB_RE.search(text)
    pub_raw = bytes.fromhex(_hex_bytes(pub_block.group(1))) if pub_block else None

    key_is_gm = (
        "sm2" in pubkey_alg.lower()
        or is_sm2_identifier(curve)
        or (not curve and not modulus and ("sm2p256v1" in text_l or "sm2-with-sm3" in text_l))
    )
    if key_is_gm and not is_sm2_identifier(curve):
        curve = "sm2p256v1"

    size = _first(KEY_SIZE_RE, text)
    bits = int(size) if size else (256 if key_is_gm else None)

    version = _first(VERSION_RE, text)
    issuer_line = _first(ISSUER_RE, text)

    return {
        "subject": parse_dn(subject_line) if subject_line is not None else {"CN": "Unknown"},
        "issuer": parse_dn(issuer_line) if issuer_line is not None else {"CN": "Unknown"},
        "not_before": format_cert_date(_first(NOT_BEFORE_RE, text)),
        "not_after": format_cert_date(_first(NOT_AFTER_RE, text)),
        "serial_number": _serial(text),
        "fingerprint": "",
        "fingerprint256": (fingerprint256 or "").upper(),
        "san_dns": _san_dns(text),
        "curve": curve or None,
        "modulus": modulus or None,
        "bits": bits,
        "public_key_raw": pub_raw,
        "public_key_algorithm": pubkey_alg,
        "signature_algorithm": _first(SIG_ALG_RE, text) or "",
        "extension_oids": POLICY_RE.findall(text),
        "version": int(version) if version else 3,
        "raw_encoding": pem,
    }


def parse_block(pem: str) -> Dict[str, Any]:
    try:
        text = run_x509_text(pem)
    except ExternalToolError as e:
        raise PerCertificateParseError(str(e)) from e

    try:
        return parse_certificate_text(text, pem)
    except PerCertificateParseError:
        raise
    except Exception as e:
        # malformed toolkit text (odd hex runs, truncated fields)
        raise PerCertificateParseError(f"{e.__class__.__name__}: {e}") from e


def _parse_block_or_none(pem: str) -> Optional[Dict[str, Any]]:
    try:
        return parse_block(pem)
    except PerCertificateParseError as e:
        logger.warning("dropping certificate block from chain: %s", e)
        return None


def assign_positions(entries: List[Dict[str, Any]]) -> None:
    last = len(entries) - 1
    for i, fields in enumerate(entries):
        if i == 0:
            fields["position"] = "leaf"
        elif i == last:
            fields["position"] = "root"
        else:
            fields["position"] = "intermediate"
    mark_self_signed(entries)


def extract_certificates(output: str) -> List[Dict[str, Any]]:
    """Every certificate in the s_client dump, leaf first; unparseable blocks are dropped."""
    blocks = extract_pem_blocks(output)[: config.MAX_CHAIN_LENGTH]
    if not blocks:
        return []

    # blocks are independent; map() keeps their order
    with ThreadPoolExecutor(max_workers=min(config.PARSE_WORKERS, len(blocks))) as ex:
        parsed = list(ex.map(_parse_block_or_none, blocks))

    entries: List[Dict[str, Any]] = []
    for fields in parsed:
        if fields is None:
            continue
        if entries and fields["fingerprint256"] and entries[-1]["fingerprint256"] == fields["fingerprint256"]:
            continue
        entries.append(fields)

    assign_positions(entries)
    return entries


def session_info_from_output(output: str) -> Dict[str, Any]:
    text = PEM_BLOCK_RE.sub("", output or "")

    protocol = ""
    for rx in PROTOCOL_RES:
        protocol = _first(rx, text) or ""
        if protocol:
            break

    cipher = ""
    for rx in CIPHER_RES:
        value = _first(rx, text) or ""
        if value and value.upper() not in ("(NONE)", "0000"):
            cipher = value
            break

    return {
        "protocol": protocol,
        "cipher": cipher,
        "national_transport": any(m in text for m in NATIONAL_TRANSPORT_MARKERS),
    }
