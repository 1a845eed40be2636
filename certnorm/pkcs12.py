"""
PKCS#12 archive parsing.

The archive MAC is checked before anything is unpacked, in a fixed order:

    1. the absent password (zero-length secret)
    2. the empty password (an empty BMPString, i.e. just the 00 00 terminator)
    3. whatever the caller's password source hands us

Only the third step involves the caller. A failure there is final. An archive
without a MAC is never unpacked.
"""

import hashlib
import logging
from typing import Optional, Tuple

from asn1crypto import pkcs12 as asn1_pkcs12
from cryptography import exceptions as crypto_exceptions
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.serialization import pkcs12

from .encoder import certificate_material, private_key_material
from .errors import ArchiveError, InvalidPassword
from .inputs import coerce_input
from .models import Pkcs12Bundle
from .password import resolve
from .settings import get_settings

logger = logging.getLogger(__name__)

# MacData digest algorithms we know how to check
MAC_DIGESTS = {
    "sha1":     hashes.SHA1,
    "sha224":   hashes.SHA224,
    "sha256":   hashes.SHA256,
    "sha384":   hashes.SHA384,
    "sha512":   hashes.SHA512,
}

# RFC 7292 appendix B.3 diversifier for integrity keys
MAC_KEY_ID = 3


def pkcs12_kdf(hash_name: str, password: bytes, salt: bytes, iterations: int,
               id_byte: int, size: int) -> bytes:
    """Derive key material from a password according to PKCS#12 (RFC 7292 B.2).

    password is the already encoded BMPString including its terminator, or
    b"" for the absent password. id_byte is 1 for a key, 2 for an IV and
    3 for an integrity (MAC) key.
    """
    u = hashlib.new(hash_name).digest_size
    v = hashlib.new(hash_name).block_size

    diversifier = bytes([id_byte]) * v

    def expand(value: bytes) -> bytes:
        # repeat value to fill a multiple of the block size
        if not value:
            return b""
        expanded_size = v * ((len(value) + v - 1) // v)
        return (value * (expanded_size // len(value) + 1))[:expanded_size]

    i_value = bytearray(expand(salt) + expand(password))
    modulus = 1 << (8 * v)

    result = b""
    while len(result) < size:
        a_value = hashlib.new(hash_name, diversifier + bytes(i_value)).digest()
        for _ in range(1, iterations):
            a_value = hashlib.new(hash_name, a_value).digest()
        result += a_value

        if len(result) >= size:
            break

        # Ij = (Ij + B + 1) mod 2^v
        b_value = int.from_bytes((a_value * (v // u + 1))[:v], "big")
        for j in range(0, len(i_value), v):
            ij = int.from_bytes(i_value[j:j + v], "big")
            i_value[j:j + v] = ((ij + b_value + 1) % modulus).to_bytes(v, "big")

    return result[:size]


def _bmp_password(password: Optional[bytes]) -> bytes:
    """Encode a UTF-8 password the way PKCS#12 feeds it to the KDF."""
    if password is None:
        return b""
    return password.decode("utf-8").encode("utf-16-be") + b"\x00\x00"


def load_pfx(data: bytes) -> Tuple[asn1_pkcs12.Pfx, bytes]:
    """Parse and walk the outer PFX structure.

    Returns: the Pfx and the authenticated safe bytes the MAC covers

    Raises: ArchiveError for anything that isn't a password-integrity PFX
    """
    try:
        pfx = asn1_pkcs12.Pfx.load(data, strict=True)
        version = pfx["version"].native
        content_type = pfx["auth_safe"]["content_type"].native
        content = pfx["auth_safe"]["content"].native
        pfx["mac_data"].native
    except (ValueError, TypeError, KeyError) as e:
        raise ArchiveError(f"Malformed PKCS#12 archive: {e}") from e

    if version not in ("v3", 3):
        raise ArchiveError(f"Unsupported PKCS#12 version {version}")

    if content_type != "data" or not isinstance(content, bytes):
        raise ArchiveError(f"Unsupported PKCS#12 integrity mode: {content_type}")

    return pfx, content


def has_mac(pfx: asn1_pkcs12.Pfx) -> bool:
    return pfx["mac_data"].native is not None


def verify_mac(pfx: asn1_pkcs12.Pfx, content: bytes, password: Optional[bytes]) -> bool:
    """Check the archive MAC with a password (None for the absent password)."""
    mac_data = pfx["mac_data"]
    digest_name = mac_data["mac"]["digest_algorithm"]["algorithm"].native

    if digest_name not in MAC_DIGESTS:
        raise ArchiveError(f"Unsupported PKCS#12 MAC algorithm: {digest_name}")

    iterations = mac_data["iterations"].native
    if iterations < 1:
        raise ArchiveError(f"Invalid PKCS#12 MAC iteration count: {iterations}")

    algorithm = MAC_DIGESTS[digest_name]()
    mac_key = pkcs12_kdf(
        hash_name=digest_name,
        password=_bmp_password(password),
        salt=mac_data["mac_salt"].native,
        iterations=iterations,
        id_byte=MAC_KEY_ID,
        size=algorithm.digest_size)

    h = hmac.HMAC(mac_key, algorithm)
    h.update(content)
    try:
        h.verify(mac_data["mac"]["digest"].native)
    except crypto_exceptions.InvalidSignature:
        return False
    return True


def unlock(pfx: asn1_pkcs12.Pfx, content: bytes, password=None, settings=None) -> Optional[bytes]:
    """Find the password that verifies the archive MAC.

    Returns: None if the archive is unprotected, else the verified password

    Raises: InvalidPassword when there is no MAC to check, or when the
        caller's password doesn't verify
    """
    if not has_mac(pfx):
        # nothing could verify, so nothing gets unpacked
        logger.debug("PKCS#12 archive has no MAC")
        raise InvalidPassword("PKCS12 read failure: invalid password")

    logger.debug("Checking PKCS#12 MAC with absent password")
    if verify_mac(pfx, content, None):
        return None

    logger.debug("Checking PKCS#12 MAC with empty password")
    if verify_mac(pfx, content, b""):
        return None

    secret = resolve(password, settings=settings)
    logger.debug("Checking PKCS#12 MAC with supplied password")
    if not verify_mac(pfx, content, secret):
        raise InvalidPassword("PKCS12 read failure: invalid password")

    return secret


def parse_pkcs12(data, password=None, settings=None) -> Pkcs12Bundle:
    """Unpack a PKCS#12 archive into canonically encoded parts.

    Args:
        data: DER encoded PKCS#12 archive
        password: a PasswordSource (or None / str / callable), consulted only
            when the archive isn't readable without a password
        settings: optional Settings

    Returns: Pkcs12Bundle with certificate, key and CA chain (in archive order)
    """
    settings = get_settings(settings)
    data = coerce_input(data, settings)

    pfx, content = load_pfx(data)
    secret = unlock(pfx, content, password, settings)

    try:
        key, cert, additional = pkcs12.load_key_and_certificates(data, secret)
    except (ValueError, TypeError) as e:
        raise ArchiveError(f"Failed to unpack PKCS#12 archive: {e}") from e
    except crypto_exceptions.UnsupportedAlgorithm as e:
        raise ArchiveError(f"Unsupported PKCS#12 contents: {e}") from e

    bundle = Pkcs12Bundle(
        certificate=certificate_material(cert) if cert is not None else None,
        key=private_key_material(key) if key is not None else None,
        ca_chain=tuple(certificate_material(c) for c in additional or ()),
    )

    logger.info(f"PKCS#12 archive unpacked: certificate: {'YES' if bundle.certificate else 'NO'}, "
                f"key: {'YES' if bundle.key else 'NO'}, CA certificates: {len(bundle.ca_chain)}")
    return bundle
