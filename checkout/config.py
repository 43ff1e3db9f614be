"""
Checkout engine settings.

Timing knobs are read from the environment in milliseconds (the unit the
checkout page has always used) and exposed in seconds for asyncio.

Usage:
    from checkout.config import get_settings
    settings = get_settings()
    settings.polling_timeout  # 300.0
"""

import os
from functools import cache

from pydantic import BaseModel, Field, model_validator

POLLING_INITIAL_INTERVAL_MS = 3000
POLLING_MAX_INTERVAL_MS = 15000
POLLING_BACKOFF_MULTIPLIER = 1.5
POLLING_TIMEOUT_MS = 5 * 60 * 1000
MANUAL_CHECK_COOLDOWN_MS = 10000
ABANDONED_CART_DEBOUNCE_MS = 5000
REDIRECT_DELAY_MS = 2000


def _env_ms(name: str, default: int) -> float:
    """Read a millisecond value from env and return seconds."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default / 1000
    try:
        return int(raw) / 1000
    except ValueError:
        raise ValueError(f"{name} must be an integer number of milliseconds, got {raw!r}")


class CheckoutSettings(BaseModel):
    """Runtime configuration for one checkout engine instance."""

    polling_initial_interval: float = Field(default=POLLING_INITIAL_INTERVAL_MS / 1000, gt=0)
    polling_max_interval: float = Field(default=POLLING_MAX_INTERVAL_MS / 1000, gt=0)
    polling_backoff_multiplier: float = Field(default=POLLING_BACKOFF_MULTIPLIER, ge=1)
    polling_timeout: float = Field(default=POLLING_TIMEOUT_MS / 1000, gt=0)
    manual_check_cooldown: float = Field(default=MANUAL_CHECK_COOLDOWN_MS / 1000, ge=0)
    abandoned_cart_debounce: float = Field(default=ABANDONED_CART_DEBOUNCE_MS / 1000, ge=0)
    redirect_delay: float = Field(default=REDIRECT_DELAY_MS / 1000, ge=0)
    thank_you_base_url: str = ""

    @model_validator(mode="after")
    def _check_intervals(self) -> "CheckoutSettings":
        if self.polling_max_interval < self.polling_initial_interval:
            raise ValueError("polling_max_interval must be >= polling_initial_interval")
        return self

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        return cls(
            polling_initial_interval=_env_ms("POLLING_INITIAL_INTERVAL_MS", POLLING_INITIAL_INTERVAL_MS),
            polling_max_interval=_env_ms("POLLING_MAX_INTERVAL_MS", POLLING_MAX_INTERVAL_MS),
            polling_backoff_multiplier=float(
                os.environ.get("POLLING_BACKOFF_MULTIPLIER", POLLING_BACKOFF_MULTIPLIER)
            ),
            polling_timeout=_env_ms("POLLING_TIMEOUT_MS", POLLING_TIMEOUT_MS),
            manual_check_cooldown=_env_ms("MANUAL_CHECK_COOLDOWN_MS", MANUAL_CHECK_COOLDOWN_MS),
            abandoned_cart_debounce=_env_ms("ABANDONED_CART_DEBOUNCE_MS", ABANDONED_CART_DEBOUNCE_MS),
            redirect_delay=_env_ms("REDIRECT_DELAY_MS", REDIRECT_DELAY_MS),
            thank_you_base_url=os.environ.get("THANK_YOU_BASE_URL", "").rstrip("/"),
        )


@cache
def get_settings() -> CheckoutSettings:
    """Get settings singleton built from the environment."""
    return CheckoutSettings.from_env()
