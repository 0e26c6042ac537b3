# backend/models.py
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config import MAX_CHAIN_LENGTH


# -----------------------------
# Pydantic models
# -----------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DistinguishedName(_CamelModel):
    common_name: str = ""
    organization: str = ""
    organizational_unit: str = ""
    country: str = ""
    state: str = ""
    locality: str = ""


class PublicKeyInfo(_CamelModel):
    type: Literal["RSA", "ECC", "SM2", "Unknown"]
    type_name: str
    algorithm: str
    curve: Optional[str] = None
    bits: int = 0
    description: str = ""


class SignatureAlgorithmInfo(_CamelModel):
    algorithm: str
    description: str = ""


class ValidationLevelInfo(_CamelModel):
    level: Literal["DV", "OV", "EV"]
    name: str
    description: str = ""


class CertificateRecord(_CamelModel):
    subject: DistinguishedName
    issuer: DistinguishedName
    valid_from: Optional[str] = None
    valid_to: Optional[str] = None
    serial_number: str = ""
    fingerprint: str = ""
    fingerprint256: str = ""
    subject_alt_names: List[str] = Field(default_factory=list)
    bits: int = 0
    public_key: PublicKeyInfo
    signature_algorithm: SignatureAlgorithmInfo
    validation_level: ValidationLevelInfo
    version: int = 0
    type: Literal["leaf", "intermediate", "root", "self-signed"]
    type_name: str
    raw_encoding: str = ""


class CipherInfo(_CamelModel):
    name: str
    version: Optional[str] = None
    bits: Optional[int] = None


class ChainResult(_CamelModel):
    domain: str
    port: int
    certificates: List[CertificateRecord] = Field(default_factory=list, max_length=MAX_CHAIN_LENGTH)
    is_valid: bool
    is_self_signed: bool = False
    is_gmssl: bool = Field(False, alias="isGMSSL")
    protocol: str = ""
    cipher: CipherInfo
    fallback: bool = False
    fallback_reason: Optional[str] = None
    error: Optional[str] = None
