"""
Normalize keys and certificates in PEM, DER or PKCS#12 form to canonical DER,
and look inside public keys.
"""

from .decoders import (decode_certificate, decode_private_key, decode_public_key,
                       load_certificate, load_private_key, load_public_key)
from .errors import (ArchiveError, CertnormError, InvalidPassword, ParseError,
                     PasswordError, UnsupportedAlgorithm)
from .introspect import (bit_size_of, derive_public_from_private, key_info,
                         public_key_from_certificate, type_of)
from .models import Certificate, KeyMaterial, KeyType, Pkcs12Bundle
from .password import (CallbackPassword, FixedPassword, NoPassword, PasswordSource,
                       as_password_source, resolve)
from .pem import PemBlock, describe, has_pem, read_pem
from .pkcs12 import parse_pkcs12
from .settings import Settings, configure_logging

__version__ = "0.1.0"

__all__ = [
    "ArchiveError",
    "CallbackPassword",
    "Certificate",
    "CertnormError",
    "FixedPassword",
    "InvalidPassword",
    "KeyMaterial",
    "KeyType",
    "NoPassword",
    "ParseError",
    "PasswordError",
    "PasswordSource",
    "PemBlock",
    "Pkcs12Bundle",
    "Settings",
    "UnsupportedAlgorithm",
    "as_password_source",
    "bit_size_of",
    "configure_logging",
    "decode_certificate",
    "decode_private_key",
    "decode_public_key",
    "derive_public_from_private",
    "describe",
    "has_pem",
    "key_info",
    "load_certificate",
    "load_private_key",
    "load_public_key",
    "parse_pkcs12",
    "public_key_from_certificate",
    "read_pem",
    "resolve",
    "type_of",
]
