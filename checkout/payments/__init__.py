"""Payment processing module."""
from .constants import (
    PaymentGateway,
    TransactionStatus,
    FINAL_STATES,
    FAILURE_STATES,
    map_gateway_status,
    status_label,
)
from .config import validate_gateway_config, is_gateway_configured

__all__ = [
    "PaymentGateway",
    "TransactionStatus",
    "FINAL_STATES",
    "FAILURE_STATES",
    "map_gateway_status",
    "status_label",
    "validate_gateway_config",
    "is_gateway_configured",
]
