"""
Canonical DER encoding.

Every decoder ends here: whatever came in, what goes out is re-serialized
by cryptography, never the caller's bytes echoed back.
"""

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, rsa

from .errors import UnsupportedAlgorithm
from .models import Certificate, KeyMaterial, KeyType


def key_type(key) -> KeyType:
    """Classify a private or public key object.

    Raises: UnsupportedAlgorithm for anything but RSA, DSA and EC keys
    """
    if isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        return KeyType.RSA
    if isinstance(key, (dsa.DSAPrivateKey, dsa.DSAPublicKey)):
        return KeyType.DSA
    if isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        return KeyType.ECDSA
    raise UnsupportedAlgorithm(f"Unsupported key type: {type(key).__name__}")


def private_key_der(key) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def public_key_der(key) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )


def certificate_der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(encoding=serialization.Encoding.DER)


def private_key_material(key) -> KeyMaterial:
    return KeyMaterial(der=private_key_der(key), key_type=key_type(key), private=True)


def public_key_material(key) -> KeyMaterial:
    return KeyMaterial(der=public_key_der(key), key_type=key_type(key), private=False)


def certificate_material(cert: x509.Certificate) -> Certificate:
    return Certificate(der=certificate_der(cert))
