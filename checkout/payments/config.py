"""Payment gateway configuration and validation."""
import os
import logging
from typing import Dict, Optional, Tuple

from .constants import PaymentGateway

logger = logging.getLogger(__name__)


DEFAULT_PUSHINPAY_API_URL = "https://api.pushinpay.com.br/api"

# Gateway configuration requirements
GATEWAY_ENV_REQUIREMENTS: Dict[str, Tuple[str, ...]] = {
    PaymentGateway.PUSHINPAY.value: ("PUSHINPAY_TOKEN", "PUSHINPAY_WEBHOOK_URL"),
}

# Human-readable gateway names for error messages
GATEWAY_NAMES: Dict[str, str] = {
    PaymentGateway.PUSHINPAY.value: "PushInPay",
}


def get_gateway_config(gateway: str = PaymentGateway.PUSHINPAY.value) -> Dict[str, Optional[str]]:
    """
    Get all environment variables for a gateway.

    Returns dict with config keys and their values (or None if not set).
    """
    if gateway == PaymentGateway.PUSHINPAY.value:
        return {
            "token": os.environ.get("PUSHINPAY_TOKEN"),
            "webhook_url": os.environ.get("PUSHINPAY_WEBHOOK_URL"),
            "api_url": os.environ.get("PUSHINPAY_API_URL", DEFAULT_PUSHINPAY_API_URL),
        }
    return {}


def validate_gateway_config(gateway: str = PaymentGateway.PUSHINPAY.value) -> Dict[str, str]:
    """
    Validate payment gateway environment configuration.

    Args:
        gateway: Gateway name

    Returns:
        Config dict with all values present

    Raises:
        ValueError: If gateway is not configured
    """
    config = get_gateway_config(gateway)
    name = GATEWAY_NAMES.get(gateway, gateway)

    if not config:
        raise ValueError(f"Unknown payment gateway: {gateway}")

    missing = [key for key, value in config.items() if not value]
    if missing:
        env_vars = GATEWAY_ENV_REQUIREMENTS.get(gateway, ())
        logger.error("Payment gateway %s not configured. Missing: %s", name, missing)
        raise ValueError(f"{name} não configurado. Configure: {', '.join(env_vars)}")

    return {key: str(value) for key, value in config.items()}


def is_gateway_configured(gateway: str = PaymentGateway.PUSHINPAY.value) -> bool:
    """Check if a gateway is properly configured without raising exceptions."""
    config = get_gateway_config(gateway)
    return bool(config) and all(value for value in config.values())
