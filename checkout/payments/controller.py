"""
Payment Session Controller

Turns the current checkout session into a PIX charge, owns the single
active transaction and its confirmation poller, and rejects duplicate
submissions while a charge request is outstanding.
"""
from typing import Any, Callable, Optional

from checkout.config import CheckoutSettings, get_settings
from checkout.errors import (
    ERROR_INVALID_AMOUNT,
    ERROR_INVALID_BUYER,
    GatewayError,
    InitiationFailureKind,
    InitiationInProgress,
    PaymentInitiationFailed,
)
from checkout.logging import get_logger, sanitize_id_for_logging
from checkout.payments.constants import TransactionStatus
from checkout.payments.polling import ConfirmationPoller
from checkout.payments.transaction import Transaction
from checkout.services.domains.pricing import price_session, selected_add_ons
from checkout.services.models import ChargeRequest, LineItem, LineItemKind, PriceBreakdown, Product
from checkout.session import CheckoutSession, OfferDecision

logger = get_logger(__name__)


def build_line_items(product: Product, session: CheckoutSession) -> list[LineItem]:
    """Base product, each selected add-on, and the post-click offer if accepted."""
    items = [LineItem(product_id=product.id, name=product.name, price=product.price, kind=LineItemKind.BASE)]
    for add_on in selected_add_ons(product, session):
        items.append(
            LineItem(product_id=add_on.product_id, name=add_on.name, price=add_on.price, kind=LineItemKind.ADD_ON)
        )
    offer = product.post_click_offer
    if offer is not None and session.offer_decision == OfferDecision.ACCEPTED:
        items.append(
            LineItem(product_id=offer.product_id, name=offer.name, price=offer.price, kind=LineItemKind.POST_CLICK_OFFER)
        )
    return items


def build_charge_request(product: Product, session: CheckoutSession, price: PriceBreakdown) -> ChargeRequest:
    return ChargeRequest(
        session_id=session.session_id,
        product_id=product.id,
        owner_id=product.owner_id,
        amount=price.final,
        original_amount=price.pre_discount,
        discount_applied=price.discount,
        coupon_code=session.applied_coupon.code.upper() if session.applied_coupon else None,
        items=build_line_items(product, session),
        buyer=session.buyer_identity(),
        tracking_parameters=dict(session.tracking_parameters),
    )


class PaymentSessionController:
    """Initiates PIX charges and supervises the active transaction."""

    def __init__(
        self,
        gateway,
        settings: Optional[CheckoutSettings] = None,
        on_paid: Optional[Callable[[Transaction], Any]] = None,
        on_terminal: Optional[Callable[[Transaction], Any]] = None,
        poller_factory: Optional[Callable[..., ConfirmationPoller]] = None,
    ):
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.on_paid = on_paid
        self.on_terminal = on_terminal
        self.poller_factory = poller_factory or ConfirmationPoller
        self._in_flight: set[str] = set()
        self.transaction: Optional[Transaction] = None
        self.poller: Optional[ConfirmationPoller] = None

    def is_initiating(self, session_id: str) -> bool:
        return session_id in self._in_flight

    async def initiate(self, product: Product, session: CheckoutSession) -> Transaction:
        """
        Request a payment instruction for the session's current price.

        Raises:
            InitiationInProgress: an initiate for this session is still outstanding
            PaymentInitiationFailed: pre-flight validation or the gateway failed;
                the session is left untouched and the buyer can retry
        """
        session_id = session.session_id
        if session_id in self._in_flight:
            logger.warning("Duplicate initiate for session %s rejected", sanitize_id_for_logging(session_id))
            raise InitiationInProgress(session_id)

        self._in_flight.add(session_id)
        try:
            return await self._initiate(product, session)
        finally:
            self._in_flight.discard(session_id)

    async def _initiate(self, product: Product, session: CheckoutSession) -> Transaction:
        # Frozen for the lifetime of this transaction
        price = price_session(product, session).model_copy()

        if not session.has_buyer_identity():
            raise PaymentInitiationFailed(
                InitiationFailureKind.GATEWAY_REJECTED, "buyer name, email and phone are required", ERROR_INVALID_BUYER
            )
        if price.final <= 0:
            raise PaymentInitiationFailed(
                InitiationFailureKind.GATEWAY_REJECTED, f"amount must be positive, got {price.final}", ERROR_INVALID_AMOUNT
            )

        charge = build_charge_request(product, session, price)

        try:
            instruction = await self.gateway.create_instruction(charge)
        except GatewayError as e:
            logger.warning(
                "PIX initiation failed for session %s (%s): %s",
                sanitize_id_for_logging(session.session_id),
                e.kind.value,
                e,
            )
            raise PaymentInitiationFailed(e.kind, str(e)) from e

        transaction = Transaction(
            transaction_id=instruction.transaction_id,
            instruction=instruction,
            price=price,
            charge=charge,
        )
        transaction.transition_to(TransactionStatus.AWAITING_PAYMENT)

        self._replace_transaction(transaction)
        logger.info(
            "Transaction %s created for session %s: final=%s",
            sanitize_id_for_logging(transaction.transaction_id),
            sanitize_id_for_logging(session.session_id),
            price.final,
        )
        return transaction

    def _replace_transaction(self, transaction: Transaction) -> None:
        if self.poller is not None:
            self.poller.stop()
        self.transaction = transaction
        self.poller = self.poller_factory(
            transaction,
            self.gateway,
            self.settings,
            on_paid=self.on_paid,
            on_terminal=self.on_terminal,
        )
        self.poller.start()

    async def manual_check(self) -> Optional[TransactionStatus]:
        if self.poller is None:
            return None
        return await self.poller.manual_check()

    def close(self) -> None:
        """Stop the active poller and any pending redirect."""
        if self.poller is not None:
            self.poller.stop()
