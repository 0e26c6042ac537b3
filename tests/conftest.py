from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.x509.oid import NameOID

from scanner import TLSSession


def make_name(cn: Optional[str] = None, **attrs) -> x509.Name:
    oids = {
        "C": NameOID.COUNTRY_NAME,
        "ST": NameOID.STATE_OR_PROVINCE_NAME,
        "L": NameOID.LOCALITY_NAME,
        "O": NameOID.ORGANIZATION_NAME,
        "OU": NameOID.ORGANIZATIONAL_UNIT_NAME,
        "businessCategory": NameOID.BUSINESS_CATEGORY,
        "serialNumber": NameOID.SERIAL_NUMBER,
    }
    parts = [x509.NameAttribute(oids[k], v) for k, v in attrs.items()]
    if cn is not None:
        parts.append(x509.NameAttribute(NameOID.COMMON_NAME, cn))
    return x509.Name(parts)


def build_cert(
    subject: x509.Name,
    issuer: x509.Name,
    public_key,
    signing_key,
    *,
    ca: bool = False,
    sans: Optional[List[str]] = None,
    policies: Optional[List[str]] = None,
    serial: Optional[int] = None,
) -> bytes:
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(public_key)
        .serial_number(serial if serial is not None else x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=90))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    )
    if sans:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(s) for s in sans]), critical=False
        )
    if policies:
        builder = builder.add_extension(
            x509.CertificatePolicies([x509.PolicyInformation(x509.ObjectIdentifier(p), None) for p in policies]),
            critical=False,
        )

    algorithm = None if isinstance(signing_key, ed25519.Ed25519PrivateKey) else hashes.SHA256()
    cert = builder.sign(signing_key, algorithm)
    return cert.public_bytes(serialization.Encoding.DER)


@pytest.fixture(scope="session")
def root_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def intermediate_key():
    return ec.generate_private_key(ec.SECP384R1())


@pytest.fixture(scope="session")
def leaf_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def three_chain(root_key, intermediate_key, leaf_key) -> List[bytes]:
    """DER certificates: leaf, intermediate, root."""
    root_name = make_name("Example Root CA", C="US", O="Example Trust")
    inter_name = make_name("Example Issuing CA", C="US", O="Example Trust")
    leaf_name = make_name("example.com")

    root = build_cert(root_name, root_name, root_key.public_key(), root_key, ca=True)
    inter = build_cert(inter_name, root_name, intermediate_key.public_key(), root_key, ca=True)
    leaf = build_cert(
        leaf_name,
        inter_name,
        leaf_key.public_key(),
        intermediate_key,
        sans=["example.com", "www.example.com", "example.com"],
        policies=["2.23.140.1.2.1"],
        serial=0x0ABC,
    )
    return [leaf, inter, root]


@pytest.fixture(scope="session")
def self_signed_der(leaf_key) -> bytes:
    name = make_name("localhost")
    return build_cert(name, name, leaf_key.public_key(), leaf_key)


@pytest.fixture(scope="session")
def ed25519_der() -> bytes:
    key = ed25519.Ed25519PrivateKey.generate()
    name = make_name("ed.example")
    return build_cert(name, name, key.public_key(), key)


class FakeSSLSocket(object):
    def __init__(self, chain, protocol="TLSv1.3", cipher=("TLS_AES_256_GCM_SHA384", "TLSv1.3", 256)):
        self._chain = list(chain)
        self._protocol = protocol
        self._cipher = cipher
        self.closed = False

    def get_verified_chain(self):
        return list(self._chain)

    def get_unverified_chain(self):
        return list(self._chain)

    def getpeercert(self, binary_form=False):
        return self._chain[0] if self._chain else None

    def version(self):
        return self._protocol

    def cipher(self):
        return self._cipher

    def close(self):
        self.closed = True


@pytest.fixture
def make_session():
    def _make(chain, verified=True, verify_error=None, **kwargs):
        return TLSSession(FakeSSLSocket(chain, **kwargs), profile="modern", verified=verified, verify_error=verify_error)

    return _make
