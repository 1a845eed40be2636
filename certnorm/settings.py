"""Configuration and logging setup."""

import logging

import pydantic


# 10 megs... same ceiling for any single blob we are handed
MAX_INPUT_SIZE = 1024 * 1024 * 10

# what OpenSSL's PEM_BUFSIZE allowed, but we complain instead of chopping
MAX_PASSWORD_LENGTH = 1024

PASSWORD_PROMPT = "Please enter private key passphrase: "

logger = logging.getLogger("certnorm")


class Settings(pydantic.BaseModel):
    """Library settings."""
    verbose:                    bool = False
    debug:                      bool = False
    max_input_size:             int  = MAX_INPUT_SIZE
    max_password_length:        int  = MAX_PASSWORD_LENGTH
    truncate_long_passwords:    bool = False
    password_prompt:            str  = PASSWORD_PROMPT


def get_settings(settings=None) -> Settings:
    """Return the given settings, or the defaults when None."""
    return settings if settings is not None else Settings()


def configure_logging(settings: Settings) -> None:
    """Set the certnorm logger level based on settings."""
    if settings.debug:
        logger.setLevel(logging.DEBUG)
    elif settings.verbose:
        logger.setLevel(logging.INFO)
    else:
        logger.setLevel(logging.WARNING)
