"""Payment constants, enums, and gateway status aliases."""
from enum import Enum
from typing import Set


class PaymentGateway(str, Enum):
    """Supported payment gateways."""
    PUSHINPAY = "pushinpay"


class TransactionStatus(str, Enum):
    """
    Transaction status lifecycle.

    Flow:
        created -> waiting_payment -> paid
                                   -> cancelled
                                   -> expired
                                   -> failed

    - created: Charge request built, gateway not answered yet
    - waiting_payment: QR code issued, buyer has not paid yet
    - paid: Gateway confirmed the payment (only state that hands off)
    - cancelled / expired / failed: final, buyer must start a new transaction
    """
    CREATED = "created"
    AWAITING_PAYMENT = "waiting_payment"
    PAID = "paid"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"


# Raw gateway status (lower-cased) -> canonical status
GATEWAY_STATUS_ALIASES: dict[str, TransactionStatus] = {
    "paid": TransactionStatus.PAID,
    "approved": TransactionStatus.PAID,
    "created": TransactionStatus.AWAITING_PAYMENT,
    "waiting_payment": TransactionStatus.AWAITING_PAYMENT,
    "pending": TransactionStatus.AWAITING_PAYMENT,
    "processing": TransactionStatus.AWAITING_PAYMENT,
    "expired": TransactionStatus.EXPIRED,
    "cancelled": TransactionStatus.CANCELLED,
    "canceled": TransactionStatus.CANCELLED,
}

# Final statuses (no further transitions)
FINAL_STATES: Set[TransactionStatus] = {
    TransactionStatus.PAID,
    TransactionStatus.CANCELLED,
    TransactionStatus.EXPIRED,
    TransactionStatus.FAILED,
}

# Final statuses that offer a retry-from-scratch
FAILURE_STATES: Set[TransactionStatus] = FINAL_STATES - {TransactionStatus.PAID}

# Allowed transitions of the transaction state machine
TRANSITIONS: dict[TransactionStatus, Set[TransactionStatus]] = {
    TransactionStatus.CREATED: {TransactionStatus.AWAITING_PAYMENT, TransactionStatus.FAILED},
    TransactionStatus.AWAITING_PAYMENT: set(FINAL_STATES),
    TransactionStatus.PAID: set(),
    TransactionStatus.CANCELLED: set(),
    TransactionStatus.EXPIRED: set(),
    TransactionStatus.FAILED: set(),
}

# Labels shown on the seller dashboard and thank-you page
STATUS_LABELS: dict[TransactionStatus, str] = {
    TransactionStatus.CREATED: "PENDENTE",
    TransactionStatus.AWAITING_PAYMENT: "PENDENTE",
    TransactionStatus.PAID: "PAGO",
    TransactionStatus.CANCELLED: "CANCELADO",
    TransactionStatus.EXPIRED: "EXPIRADO",
    TransactionStatus.FAILED: "FALHOU",
}


def map_gateway_status(raw_status: str | None) -> TransactionStatus:
    """
    Map a raw gateway status string onto a transaction status.

    Unknown values map to FAILED; a payment is only considered paid on an
    explicit paid/approved signal.

    Example:
        map_gateway_status("APPROVED") -> TransactionStatus.PAID
        map_gateway_status("chargeback") -> TransactionStatus.FAILED
    """
    if not raw_status:
        return TransactionStatus.FAILED
    return GATEWAY_STATUS_ALIASES.get(str(raw_status).strip().lower(), TransactionStatus.FAILED)


def status_label(status: TransactionStatus | str) -> str:
    """Human-readable (pt-BR) label for a status."""
    try:
        return STATUS_LABELS[TransactionStatus(status)]
    except ValueError:
        return str(status).replace("_", " ").upper()
