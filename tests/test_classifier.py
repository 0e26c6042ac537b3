import pytest

from classifier import (
    classify_fields,
    classify_public_key,
    classify_signature,
    classify_validation_level,
    is_sm2_identifier,
)


@pytest.mark.parametrize("curve", ["SM2", "sm2p256v1", "1.2.156.10197.1.301"])
def test_sm2_curve_is_sm2_256(curve):
    pk = classify_public_key({"curve": curve, "bits": 512})
    assert pk["type"] == "SM2"
    assert pk["bits"] == 256


def test_rsa_bits_from_explicit_length():
    pk = classify_public_key({"modulus": "C3" * 8, "bits": 2048})
    assert (pk["type"], pk["bits"]) == ("RSA", 2048)
    assert pk["curve"] is None


def test_rsa_bits_from_modulus_length():
    pk = classify_public_key({"modulus": "AB" * 256})
    assert (pk["type"], pk["bits"]) == ("RSA", 2048)


def test_ecc_bits_from_curve_name():
    pk = classify_public_key({"curve": "secp384r1"})
    assert pk["type"] == "ECC"
    assert pk["bits"] == 384
    assert pk["curve"] == "P-384 (secp384r1)"

    assert classify_public_key({"curve": "prime256v1"})["bits"] == 256
    assert classify_public_key({"curve": "secp521r1"})["bits"] == 521
    assert classify_public_key({"curve": "Ed448"})["bits"] == 448


def test_ecc_explicit_bits_override_curve_guess():
    pk = classify_public_key({"curve": "brainpoolP512r1", "bits": 512})
    assert (pk["type"], pk["bits"]) == ("ECC", 512)


def test_raw_32_byte_key_is_ed25519():
    pk = classify_public_key({"public_key_raw": b"\x01" * 32})
    assert pk["type"] == "ECC"
    assert pk["algorithm"] == "Ed25519"
    assert pk["bits"] == 256


def test_nothing_known_is_unknown():
    pk = classify_public_key({"bits": 1024, "public_key_raw": b"\x00" * 57})
    assert (pk["type"], pk["bits"]) == ("Unknown", 0)


def test_is_sm2_identifier():
    assert is_sm2_identifier("SM2")
    assert is_sm2_identifier("id-sm2p256v1")
    assert not is_sm2_identifier("prime256v1")
    assert not is_sm2_identifier(None)


def test_signature_follows_key_type():
    assert classify_signature({"curve": "SM2"})["algorithm"] == "SM3withSM2"
    assert classify_signature({"curve": "prime256v1"})["algorithm"] == "ECDSA with SHA-256"
    assert classify_signature({"modulus": "AB" * 128})["algorithm"] == "SHA-256 with RSA"


def test_sm_signature_text_wins_over_key_type():
    fields = {"modulus": "AB" * 256, "signature_algorithm": "SM2-with-SM3"}
    assert classify_signature(fields)["algorithm"] == "SM3withSM2"


def test_unknown_key_keeps_raw_signature_name():
    sig = classify_signature({"signature_algorithm": "ed25519"}, {"type": "Unknown"})
    assert sig["algorithm"] == "ed25519"
    assert classify_signature({})["algorithm"] == "Unknown"


def test_organization_only_is_ov():
    assert classify_validation_level({"subject": {"O": "Acme Corp"}})["level"] == "OV"


def test_no_organization_is_dv():
    assert classify_validation_level({"subject": {"CN": "example.com"}})["level"] == "DV"
    assert classify_validation_level({})["level"] == "DV"


def test_ev_policy_oid_alone_is_ev():
    fields = {"subject": {"CN": "example.com"}, "extension_oids": ["2.23.140.1.1"]}
    assert classify_validation_level(fields)["level"] == "EV"


def test_full_organization_with_ev_field_is_ev():
    subject = {"O": "Acme Corp", "L": "Springfield", "ST": "Illinois", "C": "US", "businessCategory": "Private Organization"}
    assert classify_validation_level({"subject": subject})["level"] == "EV"

    subject = dict(subject, businessCategory=None, serialNumber="12345")
    assert classify_validation_level({"subject": subject})["level"] == "EV"


def test_full_organization_without_ev_field_is_ov():
    subject = {"O": "Acme Corp", "L": "Springfield", "ST": "Illinois", "C": "US"}
    assert classify_validation_level({"subject": subject})["level"] == "OV"


def test_ov_policy_oid_is_not_ev():
    fields = {"subject": {"O": "Acme Corp"}, "extension_oids": ["2.23.140.1.2.2"]}
    assert classify_validation_level(fields)["level"] == "OV"


def test_classify_fields_flags_national_crypto():
    out = classify_fields({"curve": "sm2p256v1", "subject": {}})
    assert out["national_crypto"] is True
    out = classify_fields({"modulus": "AB" * 256, "subject": {}})
    assert out["national_crypto"] is False
