"""
Password sources and resolution.

A password comes from exactly one place per call: nowhere, a fixed string,
or a caller supplied function that is handed a prompt and returns a string
(typically by asking a human). Resolution is stateless, so the PKCS#12
parser may ask more than once.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .errors import PasswordError
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoPassword:
    """Attempt without a password."""


@dataclass(frozen=True)
class FixedPassword:
    """A password known up front."""
    value: str

    def __repr__(self) -> str:
        return "FixedPassword(value=<hidden>)"


@dataclass(frozen=True)
class CallbackPassword:
    """A function called with a prompt that must return the password as str."""
    func: Callable[[str], str]


PasswordSource = Union[NoPassword, FixedPassword, CallbackPassword]


def as_password_source(value) -> PasswordSource:
    """Turn whatever the caller handed us into a PasswordSource.

    None means no password, a str (or bytes) is a fixed password and any
    callable is a callback.
    """
    if isinstance(value, (NoPassword, FixedPassword, CallbackPassword)):
        return value
    if value is None:
        return NoPassword()
    if isinstance(value, str):
        return FixedPassword(value)
    if isinstance(value, (bytes, bytearray)):
        try:
            return FixedPassword(bytes(value).decode("utf-8"))
        except UnicodeDecodeError as e:
            raise PasswordError("Password bytes are not valid UTF-8") from e
    if callable(value):
        return CallbackPassword(value)
    raise PasswordError(f"Password must be a string or a function, not {type(value).__name__}")


def _bounded(password: str, settings: Settings) -> bytes:
    encoded = password.encode("utf-8")
    limit = settings.max_password_length

    if len(encoded) <= limit:
        return encoded

    if not settings.truncate_long_passwords:
        raise PasswordError(f"Password is longer than the maximum of {limit} bytes")

    logger.warning(f"Password truncated from {len(encoded)} to {limit} bytes")
    # don't leave half a UTF-8 sequence behind
    return encoded[:limit].decode("utf-8", errors="ignore").encode("utf-8")


def resolve(source, prompt: Optional[str] = None, settings=None) -> bytes:
    """Obtain the password bytes from a password source.

    Args:
        source: a PasswordSource, or anything as_password_source() accepts
        prompt: text handed to a callback (defaults to settings.password_prompt)
        settings: optional Settings

    Returns: the UTF-8 encoded password; b"" for NoPassword

    Raises: PasswordError if the callback fails or doesn't return a string
    """
    settings = get_settings(settings)
    source = as_password_source(source)

    if isinstance(source, NoPassword):
        return b""

    if isinstance(source, FixedPassword):
        return _bounded(source.value, settings)

    if prompt is None:
        prompt = settings.password_prompt

    logger.debug("Invoking password callback")
    try:
        result = source.func(prompt)
    except Exception as e:
        raise PasswordError(f"Password callback failed: {e}") from e

    if not isinstance(result, str):
        raise PasswordError("Password callback did not return a string value")

    return _bounded(result, settings)
