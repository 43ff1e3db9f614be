# Utilities Module
from .tracking import (
    TRACKING_KEYS,
    extract_tracking_parameters,
    format_phone,
    build_thank_you_url,
)

__all__ = [
    "TRACKING_KEYS",
    "extract_tracking_parameters",
    "format_phone",
    "build_thank_you_url",
]
