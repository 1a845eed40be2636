"""
PEM container reading.

Hunts for the first BEGIN/END delimited section in a buffer and hands back
its label, any RFC 1421 style headers and the base64-decoded body. Absence of
a PEM section is not an error: callers take it as a hint to try DER.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import ParseError
from .inputs import coerce_input
from .settings import get_settings

logger = logging.getLogger(__name__)

# Labels must match on both ends, e.g. BEGIN CERTIFICATE ... END CERTIFICATE
PEM_PATTERN = re.compile(rb"-----BEGIN ([^-\r\n]+)-----(.*?)-----END \1-----", re.DOTALL)

# Known PEM formats: label -> (description, encrypted)
PEM_FORMATS = {
    # Certificate formats
    "CERTIFICATE":                  ("Certificate", False),
    "X509 CERTIFICATE":             ("X.509 Certificate", False),

    # Key formats
    "RSA PRIVATE KEY":              ("RSA Private Key", False),
    "DSA PRIVATE KEY":              ("DSA Private Key", False),
    "EC PRIVATE KEY":               ("EC Private Key", False),
    "PRIVATE KEY":                  ("PKCS#8 Private Key", False),
    "ENCRYPTED PRIVATE KEY":        ("PKCS#8 Encrypted Private Key", True),
    "PUBLIC KEY":                   ("Public Key", False),
    "RSA PUBLIC KEY":               ("PKCS#1 RSA Public Key", False),

    # Containers
    "PKCS12":                       ("PKCS#12 Archive", True),
}

CERTIFICATE_LABELS = ("CERTIFICATE", "X509 CERTIFICATE")
PRIVATE_KEY_LABELS = ("RSA PRIVATE KEY", "DSA PRIVATE KEY", "EC PRIVATE KEY",
                      "PRIVATE KEY", "ENCRYPTED PRIVATE KEY")
PUBLIC_KEY_LABELS = ("PUBLIC KEY", "RSA PUBLIC KEY")


@dataclass(frozen=True)
class PemBlock:
    """One decoded PEM section."""
    label:      str
    body:       bytes
    header:     Optional[str] = None  # raw header text, e.g. Proc-Type/DEK-Info
    headers:    Dict[str, str] = field(default_factory=dict)
    raw:        bytes = field(default=b"", repr=False)  # the whole armored section

    @property
    def encrypted(self) -> bool:
        """True for legacy encrypted PEM or an encrypted-by-label format."""
        proc_type = self.headers.get("Proc-Type", "")
        if proc_type.replace(" ", "").upper().endswith(",ENCRYPTED"):
            return True
        return PEM_FORMATS.get(self.label, ("", False))[1]

    @property
    def description(self) -> str:
        return describe(self.label)


def describe(label: str) -> str:
    """Get a friendly description for a PEM label."""
    label = label.strip().upper()
    if label in PEM_FORMATS:
        return PEM_FORMATS[label][0]
    return f"Unknown format: {label}"


def has_pem(data) -> bool:
    """Does the buffer contain a delimited PEM section?"""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return PEM_PATTERN.search(bytes(data)) is not None


def _split_headers(lines: List[str]) -> Tuple[Dict[str, str], Optional[str], List[str]]:
    """Separate RFC 1421 headers (if any) from the base64 body lines.

    Headers are "Name: value" lines, optionally continued by lines starting
    with whitespace, terminated by a blank line.
    """
    if not lines or ":" not in lines[0]:
        return {}, None, lines

    headers: Dict[str, str] = {}
    header_lines: List[str] = []
    name = None

    for idx, line in enumerate(lines):
        if not line.strip():
            return headers, "\n".join(header_lines), lines[idx + 1:]

        if line[0] in " \t" and name is not None:
            headers[name] += line.strip()
            header_lines.append(line.strip())
            continue

        if ":" not in line:
            # no blank separator; the body starts here
            return headers, "\n".join(header_lines), lines[idx:]

        name, _, value = line.partition(":")
        name = name.strip()
        headers[name] = value.strip()
        header_lines.append(line.strip())

    # nothing but headers
    return headers, "\n".join(header_lines), []


def read_pem(data, settings=None) -> Optional[PemBlock]:
    """Extract the first PEM section of a buffer.

    Args:
        data: bytes (or str) that may contain PEM armor
        settings: optional Settings

    Returns: the decoded PemBlock, or None when there is no PEM section at all

    Raises: ParseError when a section is found but its contents are broken
    """
    if not data:
        return None

    settings = get_settings(settings)
    data = coerce_input(data, settings)

    match = PEM_PATTERN.search(data)
    if match is None:
        logger.debug("No PEM delimiters found")
        return None

    label = match.group(1).decode("ascii", errors="replace").strip()

    try:
        text = match.group(2).decode("ascii")
    except UnicodeDecodeError as e:
        raise ParseError(f"Non-ASCII data inside PEM section '{label}'") from e

    headers, header, body_lines = _split_headers(text.strip("\r\n").splitlines())

    encoded = "".join(line.strip() for line in body_lines)
    if not encoded:
        raise ParseError(f"PEM section '{label}' has no body")

    try:
        body = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ParseError(f"Invalid base64 in PEM section '{label}': {e}") from e

    logger.debug(f"Found PEM section '{label}' ({len(body)} bytes, headers: {sorted(headers)})")

    return PemBlock(label=label, body=body, header=header, headers=headers, raw=match.group(0))
