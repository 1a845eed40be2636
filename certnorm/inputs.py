"""Normalization of raw caller input."""

import logging

from .errors import ParseError
from .settings import Settings

logger = logging.getLogger(__name__)


def coerce_input(data, settings: Settings) -> bytes:
    """Return data as immutable bytes, enforcing the configured size limit.

    Text is UTF-8 encoded so callers may hand over PEM as a str.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    elif isinstance(data, (bytearray, memoryview)):
        data = bytes(data)
    elif not isinstance(data, bytes):
        raise ParseError(f"Expected bytes or str input, got {type(data).__name__}")

    if not data:
        raise ParseError("Empty input")

    if len(data) > settings.max_input_size:
        raise ParseError(f"Input larger than maximum allowed ({settings.max_input_size} bytes)")

    logger.debug(f"Input is {len(data)} bytes, first bytes: {data[:4].hex()}")
    return data
