"""
Public key introspection and key derivation helpers.

These work on canonical DER only; run PEM through the decoders first.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from asn1crypto import keys as asn1_keys
from cryptography import exceptions as crypto_exceptions
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, rsa

from .encoder import key_type, public_key_der, public_key_material
from .errors import ParseError, UnsupportedAlgorithm
from .inputs import coerce_input
from .models import KeyMaterial, KeyType
from .settings import get_settings

logger = logging.getLogger(__name__)

# Named curves with a known strength; anything else measures as 0 ("unknown")
EC_CURVE_SIZES = {
    "secp256r1": 256,   # P-256
    "secp384r1": 384,   # P-384
    "secp521r1": 521,   # P-521
}

ASN1_KEY_TYPES = {
    "rsa":  KeyType.RSA,
    "dsa":  KeyType.DSA,
    "ec":   KeyType.ECDSA,
}


def _spki(data: bytes) -> Optional[asn1_keys.PublicKeyInfo]:
    """Parse a SubjectPublicKeyInfo, or None for anything else (PKCS#1 included)."""
    try:
        info = asn1_keys.PublicKeyInfo.load(data, strict=True)
        info["algorithm"]["algorithm"].native
    except (ValueError, TypeError) as e:
        logger.debug(f"Not a SubjectPublicKeyInfo: {e}")
        return None
    return info


def _measure_asn1(info: asn1_keys.PublicKeyInfo) -> Optional[Tuple[KeyType, int]]:
    """Measure a SubjectPublicKeyInfo that cryptography refused to load.

    This covers EC keys on curves the backend doesn't know about.
    """
    algorithm = info["algorithm"]["algorithm"].native
    if algorithm not in ASN1_KEY_TYPES:
        raise UnsupportedAlgorithm(f"Unsupported key type: {algorithm}")

    kind = ASN1_KEY_TYPES[algorithm]
    if kind is KeyType.ECDSA:
        try:
            curve_type, curve = info.curve
        except (ValueError, TypeError):
            curve_type, curve = "unknown", None
        logger.debug(f"EC key on {curve_type} curve {curve}")
        return kind, (EC_CURVE_SIZES.get(curve, 0) if curve_type == "named" else 0)

    try:
        return kind, info.bit_size
    except (ValueError, TypeError) as e:
        logger.debug(f"Malformed {algorithm} public key: {e}")
        return None


def _measure(data, settings=None) -> Optional[Tuple[KeyType, int]]:
    """Classify a DER public key and compute its size, or None if it isn't one."""
    if not data:
        return None

    settings = get_settings(settings)
    data = coerce_input(data, settings)

    info = _spki(data)
    if info is None:
        return None

    try:
        key = serialization.load_der_public_key(data)
    except (ValueError, crypto_exceptions.UnsupportedAlgorithm) as e:
        logger.debug(f"Backend can't load public key ({e}), inspecting structure")
        return _measure_asn1(info)

    kind = key_type(key)

    if isinstance(key, rsa.RSAPublicKey):
        size = key.public_numbers().n.bit_length()
    elif isinstance(key, dsa.DSAPublicKey):
        size = key.parameters().parameter_numbers().p.bit_length()
    else:
        size = EC_CURVE_SIZES.get(key.curve.name, 0)
        if not size:
            logger.debug(f"No size known for curve {key.curve.name}")

    return kind, size


def type_of(public_key, settings=None) -> Optional[KeyType]:
    """Which algorithm family a DER SubjectPublicKeyInfo belongs to.

    Returns: KeyType, or None if the input isn't a SubjectPublicKeyInfo
        (legacy PKCS#1 RSA keys included; run those through decode_public_key)

    Raises: UnsupportedAlgorithm for keys other than RSA, DSA and ECDSA
    """
    measured = _measure(public_key, settings)
    return measured[0] if measured is not None else None


def bit_size_of(public_key, settings=None) -> Optional[int]:
    """Effective size in bits of a DER public key.

    RSA and DSA report the bit length of their modulus. ECDSA keys are
    looked up by named curve and report 0 for curves not in EC_CURVE_SIZES.

    Returns: the size, or None if the input isn't a SubjectPublicKeyInfo

    Raises: UnsupportedAlgorithm for keys other than RSA, DSA and ECDSA
    """
    measured = _measure(public_key, settings)
    return measured[1] if measured is not None else None


def key_info(public_key, settings=None) -> Optional[Dict[str, Any]]:
    """Summary of a DER public key: {"type": "rsa", "bits": 2048}."""
    measured = _measure(public_key, settings)
    if measured is None:
        return None
    kind, size = measured
    return {"type": kind.value, "bits": size}


def derive_public_from_private(private_key_der, settings=None) -> bytes:
    """SubjectPublicKeyInfo DER for the public half of an unencrypted DER private key."""
    settings = get_settings(settings)
    data = coerce_input(private_key_der, settings)

    try:
        key = serialization.load_der_private_key(data, password=None)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Failed to parse private key: {e}") from e
    except crypto_exceptions.UnsupportedAlgorithm as e:
        raise UnsupportedAlgorithm(f"Unsupported private key: {e}") from e

    key_type(key)
    return public_key_der(key.public_key())


def certificate_public_key(cert_der, settings=None) -> KeyMaterial:
    """The subject public key of a DER certificate."""
    settings = get_settings(settings)
    data = coerce_input(cert_der, settings)

    try:
        cert = x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise ParseError(f"Failed to parse certificate: {e}") from e

    try:
        key = cert.public_key()
    except ValueError as e:
        raise ParseError(f"Failed to parse certificate public key: {e}") from e
    except crypto_exceptions.UnsupportedAlgorithm as e:
        raise UnsupportedAlgorithm(f"Unsupported certificate public key: {e}") from e

    return public_key_material(key)


def public_key_from_certificate(cert_der, settings=None) -> bytes:
    """SubjectPublicKeyInfo DER of the key embedded in a DER certificate."""
    return certificate_public_key(cert_der, settings).der
