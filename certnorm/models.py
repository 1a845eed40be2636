"""Result containers handed back to callers."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class KeyType(Enum):
    """Supported public key algorithm families."""
    RSA = "rsa"
    DSA = "dsa"
    ECDSA = "ecdsa"


@dataclass(frozen=True)
class KeyMaterial:
    """A canonically encoded key.

    Private keys are PKCS#8 PrivateKeyInfo DER, public keys are
    SubjectPublicKeyInfo DER.
    """
    der:        bytes
    key_type:   KeyType
    private:    bool = False

    def __bytes__(self) -> bytes:
        return self.der


@dataclass(frozen=True)
class Certificate:
    """A canonically encoded X.509 certificate."""
    der: bytes

    def __bytes__(self) -> bytes:
        return self.der

    def public_key(self) -> KeyMaterial:
        """The subject public key embedded in the certificate."""
        from .introspect import certificate_public_key
        return certificate_public_key(self.der)


@dataclass(frozen=True)
class Pkcs12Bundle:
    """Contents of a PKCS#12 archive; each slot is independently optional."""
    certificate:    Optional[Certificate] = None
    key:            Optional[KeyMaterial] = None
    ca_chain:       Tuple[Certificate, ...] = ()
