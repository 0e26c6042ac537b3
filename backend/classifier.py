# backend/classifier.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

# -------------------------
# Tables
# -------------------------

# National cryptography (GM/T) curve identifiers
SM2_CURVES = ["SM2", "sm2p256v1", "1.2.156.10197.1.301"]

# EV policy OIDs (CA/Browser Forum + per-CA legacy EV arcs)
EV_OIDS = [
    "2.23.140.1.1",                      # CA/Browser Forum EV
    "1.3.6.1.4.1.34697.2.1",             # AffirmTrust
    "1.3.6.1.4.1.6449.1.2.1.5.1",        # Comodo / Sectigo
    "2.16.840.1.114412.2.1",             # DigiCert
    "2.16.840.1.114028.10.1.2",          # Entrust
    "1.3.6.1.4.1.14370.1.6",             # GeoTrust
    "1.3.6.1.4.1.4146.1.1",              # GlobalSign
    "2.16.840.1.114413.1.7.23.3",        # GoDaddy
    "2.16.840.1.114414.1.7.23.3",        # Starfield
    "2.16.756.1.89.1.2.1.1",             # SwissSign
    "1.3.6.1.4.1.8024.0.2.100.1.2",      # QuoVadis
    "1.2.616.1.113527.2.5.1.1",          # Certum
    "1.3.6.1.4.1.23223.1.1.1",           # StartCom
    "2.16.840.1.113733.1.7.23.6",        # Symantec (VeriSign)
    "2.16.840.1.114404.1.1.2.4.1",       # Trustwave
    "1.3.6.1.4.1.17326.10.14.2.1.2",     # Camerfirma
    "1.3.6.1.4.1.22234.2.5.2.3.1",       # Izenpe
]

ECC_CURVES = {
    "prime256v1": "P-256 (secp256r1)",
    "secp256r1": "P-256 (secp256r1)",
    "secp384r1": "P-384 (secp384r1)",
    "secp521r1": "P-521 (secp521r1)",
    "secp256k1": "secp256k1 (Bitcoin)",
    "X25519": "X25519",
    "Ed25519": "Ed25519",
    "X448": "X448",
    "Ed448": "Ed448",
}

# Raw Ed25519 key (32 bytes) or its base64 text form (44 chars)
_EDWARDS_KEY_LENGTHS = (32, 44)

SIGNATURE_ALGORITHMS = {
    "SM2": {"algorithm": "SM3withSM2", "description": "National cryptography signature (SM2 with SM3)"},
    "ECC": {"algorithm": "ECDSA with SHA-256", "description": "Elliptic curve signature"},
    "RSA": {"algorithm": "SHA-256 with RSA", "description": "RSA signature"},
}

VALIDATION_LEVELS = {
    "EV": {
        "level": "EV",
        "name": "Extended Validation",
        "description": "Highest assurance: organization identity and legal existence verified",
    },
    "OV": {
        "level": "OV",
        "name": "Organization Validation",
        "description": "Domain ownership and organization identity verified",
    },
    "DV": {
        "level": "DV",
        "name": "Domain Validation",
        "description": "Only domain ownership verified",
    },
}


# -------------------------
# Helpers
# -------------------------

def is_sm2_identifier(value: Optional[str]) -> bool:
    v = (value or "").lower()
    if not v:
        return False
    return any(sm2.lower() in v for sm2 in SM2_CURVES)


def _curve_bits(curve: str) -> int:
    if "384" in curve:
        return 384
    if "521" in curve:
        return 521
    if "448" in curve:
        return 448
    return 256


def _get_list(v: Any) -> List[Any]:
    if isinstance(v, (list, tuple, set)):
        return list(v)
    if v is None:
        return []
    return [v]


# -------------------------
# Classification
# -------------------------

def classify_public_key(fields: Dict[str, Any]) -> Dict[str, Any]:
    curve = str(fields.get("curve") or "")
    modulus = str(fields.get("modulus") or "")
    explicit_bits = fields.get("bits")
    raw = fields.get("public_key_raw")

    if curve:
        if is_sm2_identifier(curve):
            return {
                "type": "SM2",
                "type_name": "National cryptography SM2",
                "algorithm": "SM2",
                "curve": curve,
                "bits": 256,
                "description": "Chinese commercial cryptography (SM2)",
            }

        curve_name = ECC_CURVES.get(curve, curve)
        bits = explicit_bits or _curve_bits(curve)
        return {
            "type": "ECC",
            "type_name": "Elliptic curve",
            "algorithm": "ECDSA",
            "curve": curve_name,
            "bits": int(bits),
            "description": f"Elliptic curve cryptography ({curve_name})",
        }

    if modulus:
        bits = explicit_bits or (len(modulus) * 4)
        return {
            "type": "RSA",
            "type_name": "RSA",
            "algorithm": "RSA",
            "curve": None,
            "bits": int(bits),
            "description": f"RSA {bits} bit",
        }

    if raw is not None and len(raw) in _EDWARDS_KEY_LENGTHS:
        return {
            "type": "ECC",
            "type_name": "Elliptic curve",
            "algorithm": "Ed25519",
            "curve": "Ed25519",
            "bits": 256,
            "description": "Edwards-curve (Ed25519)",
        }

    return {
        "type": "Unknown",
        "type_name": "Unknown",
        "algorithm": "Unknown",
        "curve": None,
        "bits": 0,
        "description": "Unknown algorithm",
    }


def classify_signature(fields: Dict[str, Any], public_key: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
    pk = public_key or classify_public_key(fields)
    raw = str(fields.get("signature_algorithm") or "")
    raw_l = raw.lower()

    # Toolkit text names the GM signature even when the key could not be classified
    if "sm2" in raw_l or "sm3" in raw_l:
        return dict(SIGNATURE_ALGORITHMS["SM2"])

    known = SIGNATURE_ALGORITHMS.get(pk.get("type", ""))
    if known:
        return dict(known)

    return {"algorithm": raw or "Unknown", "description": raw or "Unknown"}


def has_ev_policy(fields: Dict[str, Any]) -> bool:
    oids = {str(x).strip() for x in _get_list(fields.get("extension_oids"))}
    return any(oid in oids for oid in EV_OIDS)


def classify_validation_level(fields: Dict[str, Any]) -> Dict[str, str]:
    """DV/OV/EV from policy OIDs and subject attributes.

    Either an EV policy OID or a fully populated organizational subject
    (O, L, ST, C) plus businessCategory/serialNumber is treated as EV, so an
    OV certificate with an unusually complete subject can be reported as EV.
    """
    subject = fields.get("subject") or {}

    has_full_org = bool(
        subject.get("O")
        and subject.get("L")
        and (subject.get("ST") or subject.get("S"))
        and subject.get("C")
    )
    has_ev_fields = bool(subject.get("businessCategory") or subject.get("serialNumber"))

    if has_ev_policy(fields) or (has_full_org and has_ev_fields):
        return dict(VALIDATION_LEVELS["EV"])
    if subject.get("O"):
        return dict(VALIDATION_LEVELS["OV"])
    return dict(VALIDATION_LEVELS["DV"])


def is_national_crypto(public_key: Dict[str, Any], signature: Dict[str, Any]) -> bool:
    return public_key.get("type") == "SM2" or signature.get("algorithm") == SIGNATURE_ALGORITHMS["SM2"]["algorithm"]


def classify_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    pk = classify_public_key(fields)
    sig = classify_signature(fields, pk)
    return {
        "public_key": pk,
        "signature_algorithm": sig,
        "validation_level": classify_validation_level(fields),
        "national_crypto": is_national_crypto(pk, sig),
    }
