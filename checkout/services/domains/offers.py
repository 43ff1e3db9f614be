"""Post-click offer decision flow.

When the product carries a post-click offer, the first pay click is held
back until the buyer answers the modal. The answer is kept for the rest of
the session, so a retried payment never asks again.
"""
from enum import Enum

from checkout.errors import OfferDecisionError
from checkout.logging import get_logger
from checkout.services.models import Product
from checkout.session import CheckoutSession, OfferDecision

logger = get_logger(__name__)


class OfferState(str, Enum):
    NO_UPSELL_OFFER = "no_upsell_offer"
    # Product carries an offer; the buyer has not clicked pay yet
    AWAITING_PAY_CLICK = "awaiting_pay_click"
    PENDING_DECISION = "pending_decision"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class OfferDecisionFlow:
    """Tracks the modal for one product/session pair."""

    def __init__(self, product: Product, session: CheckoutSession):
        self.product = product
        self.session = session
        self._pending = False

    @property
    def state(self) -> OfferState:
        if self.session.offer_decision == OfferDecision.ACCEPTED:
            return OfferState.ACCEPTED
        if self.session.offer_decision == OfferDecision.DECLINED:
            return OfferState.DECLINED
        if self._pending:
            return OfferState.PENDING_DECISION
        if self.has_offer:
            return OfferState.AWAITING_PAY_CLICK
        return OfferState.NO_UPSELL_OFFER

    @property
    def has_offer(self) -> bool:
        return self.product.post_click_offer is not None

    def request_payment(self) -> bool:
        """
        Called on the pay click.

        Returns:
            True if payment must wait for the buyer's decision (modal shown),
            False if payment may proceed right away.
        """
        if self._pending:
            return True
        if self.has_offer and self.session.offer_decision == OfferDecision.UNSET:
            self._pending = True
            logger.debug("Post-click offer shown for product %s", self.product.id)
            return True
        return False

    def accept(self) -> None:
        self._decide(OfferDecision.ACCEPTED)

    def decline(self) -> None:
        self._decide(OfferDecision.DECLINED)

    def dismiss(self) -> None:
        """Closing the modal counts as declining."""
        self._decide(OfferDecision.DECLINED)

    def _decide(self, decision: OfferDecision) -> None:
        if not self._pending:
            raise OfferDecisionError(f"cannot {decision.value} offer in state {self.state.value}")
        self._pending = False
        self.session.offer_decision = decision
        logger.info("Post-click offer %s for product %s", decision.value, self.product.id)
