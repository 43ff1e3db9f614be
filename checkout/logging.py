"""
Logging for the checkout engine.

Every module asks for its logger with `get_logger(__name__)`; the first call
installs one stdout handler on the `checkout` logger (level from
`LOG_LEVEL`). Buyer-typed values go through the `sanitize_*` / `mask_*`
helpers before they reach a log line.
"""

import logging
import os
import sys
from functools import cache
from typing import Optional, TextIO

ROOT_LOGGER = "checkout"

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
# Hosted log collectors stamp their own time
LOG_FORMAT_HOSTED = "%(levelname)s [%(name)s] %(message)s"

# Libraries under the gateway client and the Supabase repositories
_CHATTY_LIBRARIES = ("httpx", "httpcore", "hpack", "postgrest")

_CONTROL_CHARS = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})

_configured = False


def configure_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> logging.Logger:
    """Attach the checkout handler once. Later calls only adjust the level."""
    global _configured

    logger = logging.getLogger(ROOT_LOGGER)
    level_value = logging.getLevelName((level or os.environ.get("LOG_LEVEL", "INFO")).upper())
    logger.setLevel(level_value if isinstance(level_value, int) else logging.INFO)

    if _configured:
        return logger

    hosted = os.environ.get("CHECKOUT_ENV", "").lower() == "production"
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_HOSTED if hosted else LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
    return logger


@cache
def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def _clean(value: object) -> str:
    """Neutralise line breaks and NULs (CWE-117)."""
    return str(value).translate(_CONTROL_CHARS)


def sanitize_id_for_logging(id_value: Optional[str]) -> str:
    """First 8 characters of an id: enough to correlate, not enough to leak."""
    if not id_value:
        return "N/A"
    return _clean(id_value)[:8]


def sanitize_string_for_logging(value: Optional[str], max_length: int = 50) -> str:
    if not value:
        return "N/A"
    cleaned = _clean(value)
    return cleaned if len(cleaned) <= max_length else f"{cleaned[:max_length]}..."


def mask_email_for_logging(email: Optional[str]) -> str:
    """``maria@example.com`` -> ``ma***@example.com``"""
    if not email:
        return "N/A"
    local, at, domain = _clean(email).strip().partition("@")
    if not at:
        return sanitize_string_for_logging(local, max_length=4)
    return f"{local[:2]}***@{domain[:40]}"


__all__ = [
    "ROOT_LOGGER",
    "configure_logging",
    "get_logger",
    "mask_email_for_logging",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
