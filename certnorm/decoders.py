"""
Format-specific decoders.

Each decoder accepts PEM or DER, unwraps PEM armor first, asks for a
password only when the material is actually encrypted, and re-encodes the
result to canonical DER.
"""

import logging
import re

from asn1crypto import keys as asn1_keys
from cryptography import exceptions as crypto_exceptions
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from .encoder import certificate_material, private_key_material, public_key_material
from .errors import InvalidPassword, ParseError, UnsupportedAlgorithm
from .inputs import coerce_input
from .models import Certificate, KeyMaterial
from .password import resolve
from .pem import CERTIFICATE_LABELS, PRIVATE_KEY_LABELS, PUBLIC_KEY_LABELS, read_pem
from .settings import get_settings

logger = logging.getLogger(__name__)

# RFC 1421 DEK-Info: cipher name, then the hex IV
DEK_INFO_PATTERN = re.compile(r"^[A-Za-z0-9-]+,[0-9A-Fa-f]+$")


def _is_encrypted_pkcs8(data: bytes) -> bool:
    """Is this DER an EncryptedPrivateKeyInfo rather than a plain key?"""
    try:
        info = asn1_keys.EncryptedPrivateKeyInfo.load(data, strict=True)
        info["encryption_algorithm"]["algorithm"].native
        info["encrypted_data"].native
    except (ValueError, TypeError):
        return False
    return True


def _check_encrypted_pem(block) -> None:
    """Make sure an encrypted PEM block is well formed before asking for a password."""
    if block.label == "ENCRYPTED PRIVATE KEY":
        if not _is_encrypted_pkcs8(block.body):
            raise ParseError(f"PEM section '{block.label}' is not an encrypted PKCS#8 key")
        return

    # legacy Proc-Type: 4,ENCRYPTED
    dek_info = block.headers.get("DEK-Info", "").replace(" ", "")
    if not DEK_INFO_PATTERN.match(dek_info):
        raise ParseError(f"Encrypted PEM section '{block.label}' has a bad DEK-Info header")


def _decrypt_private_key(loader, data: bytes, password: bytes):
    """Run a cryptography loader on encrypted key material."""
    try:
        return loader(data, password=password or None)
    except (ValueError, TypeError) as e:
        logger.debug(f"Decrypting private key failed: {e}")
        raise InvalidPassword("Unable to decrypt private key: invalid password?") from e
    except crypto_exceptions.UnsupportedAlgorithm as e:
        raise ParseError(f"Unsupported private key encryption: {e}") from e


def load_private_key(data, password=None, settings=None):
    """Load a private key from PEM or DER, decrypting it if needed.

    Args:
        data: PEM or DER encoded private key
        password: a PasswordSource (or None / str / callable)
        settings: optional Settings

    Returns: the cryptography private key object
    """
    settings = get_settings(settings)
    data = coerce_input(data, settings)

    block = read_pem(data, settings)

    if block is not None:
        if block.label not in PRIVATE_KEY_LABELS:
            raise ParseError(f"Expected a private key, found {block.description}")

        if block.encrypted:
            logger.debug(f"Encrypted PEM private key ({block.label})")
            _check_encrypted_pem(block)
            secret = resolve(password, settings=settings)
            return _decrypt_private_key(serialization.load_pem_private_key, block.raw, secret)

        der = block.body
    else:
        der = data
        if _is_encrypted_pkcs8(der):
            logger.debug("Encrypted DER private key (PKCS#8)")
            secret = resolve(password, settings=settings)
            return _decrypt_private_key(serialization.load_der_private_key, der, secret)

    logger.debug("Unencrypted private key")
    try:
        return serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Failed to parse private key: {e}") from e
    except crypto_exceptions.UnsupportedAlgorithm as e:
        raise UnsupportedAlgorithm(f"Unsupported private key: {e}") from e


def load_public_key(data, settings=None):
    """Load a SubjectPublicKeyInfo or legacy PKCS#1 RSA public key from PEM or DER."""
    settings = get_settings(settings)
    data = coerce_input(data, settings)

    block = read_pem(data, settings)
    if block is not None:
        if block.label not in PUBLIC_KEY_LABELS:
            raise ParseError(f"Expected a public key, found {block.description}")
        der = block.body
    else:
        der = data

    try:
        # falls back to PKCS#1 RSAPublicKey when it's not an SPKI
        return serialization.load_der_public_key(der)
    except ValueError as e:
        raise ParseError(f"Failed to parse public key: {e}") from e
    except crypto_exceptions.UnsupportedAlgorithm as e:
        raise UnsupportedAlgorithm(f"Unsupported public key: {e}") from e


def load_certificate(data, settings=None) -> x509.Certificate:
    """Load an X.509 certificate from PEM or DER."""
    settings = get_settings(settings)
    data = coerce_input(data, settings)

    block = read_pem(data, settings)
    if block is not None:
        if block.label not in CERTIFICATE_LABELS:
            raise ParseError(f"Expected a certificate, found {block.description}")
        der = block.body
    else:
        der = data

    try:
        return x509.load_der_x509_certificate(der)
    except ValueError as e:
        raise ParseError(f"Failed to parse certificate: {e}") from e


def decode_private_key(data, password=None, settings=None) -> KeyMaterial:
    """Decode a private key to canonical PKCS#8 DER."""
    return private_key_material(load_private_key(data, password, settings))


def decode_public_key(data, settings=None) -> KeyMaterial:
    """Decode a public key to canonical SubjectPublicKeyInfo DER.

    The legacy "RSA PUBLIC KEY" form comes out as an SPKI as well.
    """
    return public_key_material(load_public_key(data, settings))


def decode_certificate(data, settings=None) -> Certificate:
    """Decode a certificate to canonical DER."""
    return certificate_material(load_certificate(data, settings))
