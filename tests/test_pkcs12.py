import binascii

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12 as crypto_pkcs12

from certnorm import (ArchiveError, CallbackPassword, FixedPassword, InvalidPassword,
                      KeyType, ParseError, PasswordError, parse_pkcs12)
from certnorm.pkcs12 import _bmp_password, load_pfx, pkcs12_kdf, verify_mac

from helpers import never_called, private_pkcs8_der, remac, strip_mac


def _der(cert):
    return cert.public_bytes(serialization.Encoding.DER)


# values from "openssl pkcs12" with OPENSSL_DEBUG_KEYGEN
@pytest.mark.parametrize("hash_name,id_byte,salt,iterations,size,expected", [
    ("sha1", 3, "c6b068958d7d6085ba52c9cc3212a8fc2e50b3da", 100000, 20,
     "ef3c7f41e19e7bc7bf06650164aff556d15206d7"),
    ("sha1", 1, "a9fb3e857865d5e2aeff3983389c980d5de4bf39", 50000, 24,
     "12fe77bc0be3ae0d063c4858e948ff4e85c39daa08b833c9"),
    ("sha1", 2, "a9fb3e857865d5e2aeff3983389c980d5de4bf39", 50000, 8,
     "13515c2efce50ef9"),
    ("sha256", 3, "ad18630f2594018bd53c4573a7b03f89afda3e87", 10000, 32,
     "894a3be59b92531f08a458c54e4d89493fd9dda40d65b1831ff3ca69f4ff716c"),
])
def test_kdf_known_answers(hash_name, id_byte, salt, iterations, size, expected):
    key = pkcs12_kdf(hash_name, _bmp_password(b"changeit"), binascii.unhexlify(salt),
                     iterations, id_byte, size)
    assert key == binascii.unhexlify(expected)


def test_password_encodings_differ():
    assert _bmp_password(None) == b""
    assert _bmp_password(b"") == b"\x00\x00"
    assert _bmp_password(b"ab") == b"\x00a\x00b\x00\x00"


def test_protected_archive(p12_secret, rsa_key, rsa_cert, ca_chain):
    bundle = parse_pkcs12(p12_secret, FixedPassword("secret"))
    assert bundle.certificate.der == _der(rsa_cert)
    assert bundle.key.der == private_pkcs8_der(rsa_key)
    assert bundle.key.key_type is KeyType.RSA
    assert [c.der for c in bundle.ca_chain] == [_der(c) for c in ca_chain]


def test_protected_archive_with_callback(p12_secret):
    prompts = []

    def ask(prompt):
        prompts.append(prompt)
        return "secret"

    bundle = parse_pkcs12(p12_secret, CallbackPassword(ask))
    assert bundle.key is not None
    assert len(prompts) == 1


def test_wrong_password(p12_secret, monkeypatch):
    def boom(*args, **kwargs):
        raise AssertionError("archive contents must not be touched")

    monkeypatch.setattr(crypto_pkcs12, "load_key_and_certificates", boom)
    with pytest.raises(InvalidPassword):
        parse_pkcs12(p12_secret, FixedPassword("wrong"))


def test_missing_password(p12_secret):
    with pytest.raises(InvalidPassword):
        parse_pkcs12(p12_secret)


def test_callback_failure_is_fatal(p12_secret):
    with pytest.raises(PasswordError):
        parse_pkcs12(p12_secret, lambda prompt: None)


def test_unencrypted_archive_skips_password(p12_open, rsa_key):
    bundle = parse_pkcs12(p12_open, CallbackPassword(never_called))
    assert bundle.key.der == private_pkcs8_der(rsa_key)
    assert len(bundle.ca_chain) == 2


@pytest.mark.parametrize("mac_password", [None, b""], ids=["absent", "empty"])
def test_passwordless_mac_forms(p12_open, rsa_cert, mac_password):
    archive = remac(p12_open, mac_password)
    pfx, content = load_pfx(archive)
    assert verify_mac(pfx, content, mac_password)

    bundle = parse_pkcs12(archive, never_called)
    assert bundle.certificate.der == _der(rsa_cert)


def test_sha1_mac(p12_open):
    archive = remac(p12_open, None, digest="sha1")
    assert parse_pkcs12(archive, never_called).key is not None


def test_archive_without_mac_is_rejected(p12_open, monkeypatch):
    def boom(*args, **kwargs):
        raise AssertionError("archive contents must not be touched")

    monkeypatch.setattr(crypto_pkcs12, "load_key_and_certificates", boom)
    with pytest.raises(InvalidPassword):
        parse_pkcs12(strip_mac(p12_open), never_called)


def test_stripping_mac_does_not_bypass_password(p12_open):
    protected = remac(p12_open, b"secret")
    assert parse_pkcs12(protected, "secret").key is not None
    with pytest.raises(InvalidPassword):
        parse_pkcs12(protected, "wrong")
    with pytest.raises(InvalidPassword):
        parse_pkcs12(strip_mac(protected), never_called)


def test_verify_mac_rejects_other_passwords(p12_secret):
    pfx, content = load_pfx(p12_secret)
    assert verify_mac(pfx, content, b"secret")
    assert not verify_mac(pfx, content, None)
    assert not verify_mac(pfx, content, b"")
    assert not verify_mac(pfx, content, b"Secret")


def test_certificates_only_archive(ca_chain):
    archive = crypto_pkcs12.serialize_key_and_certificates(
        None, None, None, ca_chain, serialization.BestAvailableEncryption(b"secret")
    )
    bundle = parse_pkcs12(archive, "secret")
    assert bundle.certificate is None
    assert bundle.key is None
    assert [c.der for c in bundle.ca_chain] == [_der(c) for c in ca_chain]


def test_key_only_archive(ec_key):
    archive = crypto_pkcs12.serialize_key_and_certificates(
        b"key", ec_key, None, None, serialization.BestAvailableEncryption(b"secret")
    )
    bundle = parse_pkcs12(archive, "secret")
    assert bundle.certificate is None
    assert bundle.key.key_type is KeyType.ECDSA
    assert bundle.ca_chain == ()


@pytest.mark.parametrize("data", [
    b"\x00\x01\x02",
    b"\x30\x03\x02\x01\x03",
    b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n",
])
def test_malformed_archive(data):
    with pytest.raises(ArchiveError):
        parse_pkcs12(data, never_called)


def test_archive_error_is_a_parse_error():
    with pytest.raises(ParseError):
        parse_pkcs12(b"\x30\x00", never_called)


def test_trailing_garbage(p12_open):
    with pytest.raises(ArchiveError):
        parse_pkcs12(p12_open + b"\x00\x00", never_called)
