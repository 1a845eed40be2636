"""Exception types raised by certnorm."""


class CertnormError(Exception):
    """Base error type for all certnorm operations."""


class ParseError(CertnormError):
    """Input is malformed, oversized, or not the kind of object expected."""


class ArchiveError(ParseError):
    """The PKCS#12 container itself is malformed or cannot be unpacked."""


class PasswordError(CertnormError):
    """A password could not be obtained from the password source.

    Raised when a callback fails or returns something other than a string,
    when the source is of an unknown kind, or when the password is too long.
    """


class InvalidPassword(CertnormError):
    """MAC verification or decryption failed with the supplied password."""


class UnsupportedAlgorithm(CertnormError):
    """The key is well formed but is not RSA, DSA or ECDSA."""
