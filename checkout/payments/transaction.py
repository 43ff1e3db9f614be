"""
Payment Transaction

One attempt to collect the frozen checkout price through the gateway.
A retry after a failure is always a new Transaction.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from checkout.logging import get_logger, sanitize_id_for_logging
from checkout.payments.constants import (
    FAILURE_STATES,
    FINAL_STATES,
    TRANSITIONS,
    TransactionStatus,
)
from checkout.services.models import ChargeRequest, PaymentInstruction, PriceBreakdown

logger = get_logger(__name__)


class InvalidTransition(ValueError):
    """Status change not allowed by the transaction state machine."""


@dataclass
class Transaction:
    transaction_id: str
    instruction: PaymentInstruction
    price: PriceBreakdown
    charge: ChargeRequest
    status: TransactionStatus = TransactionStatus.CREATED
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Polling bookkeeping (monotonic seconds)
    attempts: int = 0
    first_poll_at: Optional[float] = None
    last_poll_at: Optional[float] = None
    next_manual_check_at: float = 0.0
    timed_out: bool = False

    @property
    def session_id(self) -> str:
        return self.charge.session_id

    @property
    def is_final(self) -> bool:
        return self.status in FINAL_STATES

    @property
    def is_paid(self) -> bool:
        return self.status == TransactionStatus.PAID

    @property
    def is_failed(self) -> bool:
        return self.status in FAILURE_STATES

    def can_transition_to(self, target: TransactionStatus) -> bool:
        return target in TRANSITIONS.get(self.status, set())

    def transition_to(self, target: TransactionStatus) -> bool:
        """
        Move to `target`.

        Re-applying the current status is a no-op and returns False.

        Raises:
            InvalidTransition: if the state machine forbids the move
        """
        if target == self.status:
            return False
        if not self.can_transition_to(target):
            raise InvalidTransition(
                f"Cannot transition from '{self.status.value}' to '{target.value}'"
            )
        logger.info(
            "Transaction %s: %s -> %s",
            sanitize_id_for_logging(self.transaction_id),
            self.status.value,
            target.value,
        )
        self.status = target
        return True
