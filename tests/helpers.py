"""Builders shared by the tests."""

import datetime
import os

from asn1crypto import pkcs12 as asn1_pkcs12
from cryptography import x509
from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.x509.oid import NameOID

from certnorm.pkcs12 import MAC_KEY_ID, _bmp_password, pkcs12_kdf


def make_cert(key, common_name, issuer_key=None, issuer_name=None):
    """Build a (self-signed unless told otherwise) certificate for key."""
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    signer = issuer_key or key
    now = datetime.datetime.now(datetime.timezone.utc)

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name or subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
    )
    algorithm = None if isinstance(signer, ed25519.Ed25519PrivateKey) else hashes.SHA256()
    return builder.sign(signer, algorithm)


def private_pkcs8_der(key):
    return key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    )


def public_spki_der(key):
    return key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo
    )


def remac(pfx_der, password, digest="sha256", iterations=2048):
    """Re-sign a PFX with a MAC keyed by password (None for the absent password)."""
    pfx = asn1_pkcs12.Pfx.load(pfx_der)
    content = pfx["auth_safe"]["content"].native
    salt = os.urandom(8)

    algorithm = {"sha1": hashes.SHA1, "sha256": hashes.SHA256}[digest]()
    mac_key = pkcs12_kdf(digest, _bmp_password(password), salt, iterations, MAC_KEY_ID,
                         algorithm.digest_size)

    h = hmac.HMAC(mac_key, algorithm)
    h.update(content)

    mac_data = asn1_pkcs12.MacData({
        "mac": {
            "digest_algorithm": {"algorithm": digest},
            "digest": h.finalize(),
        },
        "mac_salt": salt,
        "iterations": iterations,
    })
    return asn1_pkcs12.Pfx({
        "version": 3,
        "auth_safe": pfx["auth_safe"],
        "mac_data": mac_data,
    }).dump()


def strip_mac(pfx_der):
    pfx = asn1_pkcs12.Pfx.load(pfx_der)
    return asn1_pkcs12.Pfx({"version": 3, "auth_safe": pfx["auth_safe"]}).dump()


def never_called(prompt):
    raise AssertionError("password callback should not have been used")
