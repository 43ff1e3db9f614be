"""
Checkout Engine

Wires pricing, coupons, the post-click offer, payment initiation,
confirmation polling and abandoned-cart telemetry to the events of one
checkout page. Every error raised here is a CheckoutError carrying a
buyer-facing message; none of them ends the session.
"""
import inspect
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from checkout.config import CheckoutSettings, get_settings
from checkout.errors import PollingTimeout, TransactionFailed
from checkout.logging import get_logger, sanitize_id_for_logging
from checkout.payments.constants import TransactionStatus
from checkout.payments.controller import PaymentSessionController
from checkout.payments.transaction import Transaction
from checkout.services.abandoned_carts import AbandonmentTelemetryWriter
from checkout.services.domains.coupons import CouponValidationResult, CouponValidator
from checkout.services.domains.offers import OfferDecisionFlow, OfferState
from checkout.services.domains.pricing import pre_discount_price, price_session
from checkout.services.models import Coupon, PriceBreakdown, Product
from checkout.session import CheckoutSession, CouponSource
from checkout.utils.tracking import extract_tracking_parameters

logger = get_logger(__name__)


class CheckoutEngine:
    """One buyer's checkout for one product."""

    def __init__(
        self,
        product: Product,
        gateway,
        order_history,
        abandoned_carts,
        handoff: Optional[Callable[[Transaction], Any]] = None,
        settings: Optional[CheckoutSettings] = None,
        tracking_parameters: str | Mapping[str, str] | None = None,
        session: Optional[CheckoutSession] = None,
        poller_factory=None,
    ):
        self.product = product
        self.settings = settings or get_settings()
        self.session = session or CheckoutSession()
        if tracking_parameters is not None:
            self.session.tracking_parameters = extract_tracking_parameters(tracking_parameters)
        self.handoff = handoff

        self.coupons = CouponValidator(order_history)
        self.offer_flow = OfferDecisionFlow(product, self.session)
        self.telemetry = AbandonmentTelemetryWriter(abandoned_carts, self.settings.abandoned_cart_debounce)
        self.payments = PaymentSessionController(
            gateway,
            self.settings,
            on_paid=self._on_paid,
            on_terminal=self._on_terminal,
            poller_factory=poller_factory,
        )

    # ==================== Read-only views ====================

    @property
    def price(self) -> PriceBreakdown:
        return self.session.price

    @property
    def transaction(self) -> Optional[Transaction]:
        return self.payments.transaction

    @property
    def offer_state(self) -> OfferState:
        return self.offer_flow.state

    # ==================== Buyer events ====================

    def start(self, now: Optional[datetime] = None) -> PriceBreakdown:
        """Price the page and apply the first eligible automatic coupon."""
        if self.session.applied_coupon is None:
            coupon = CouponValidator.find_automatic_coupon(
                self.product, pre_discount_price(self.product, self.session), now
            )
            if coupon is not None:
                self.session.set_coupon(coupon, CouponSource.AUTOMATIC)
                logger.info("Automatic coupon applied for product %s", self.product.id)
        return self._changed()

    def update_buyer(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        phone_country_code: Optional[str] = None,
    ) -> None:
        if name is not None:
            self.session.buyer_name = name
        if email is not None:
            self.session.buyer_email = email
        if phone is not None:
            self.session.buyer_phone = phone
        if phone_country_code is not None:
            self.session.phone_country_code = phone_country_code
        self._changed()

    def toggle_add_on(self, add_on_id: str) -> PriceBreakdown:
        if self.product.find_add_on(add_on_id) is None:
            raise KeyError(f"unknown add-on {add_on_id}")
        selected = self.session.selected_add_on_ids
        if add_on_id in selected:
            selected.discard(add_on_id)
        else:
            selected.add(add_on_id)
        return self._changed()

    async def apply_coupon(self, code: str, now: Optional[datetime] = None) -> CouponValidationResult:
        """
        Validate and apply a code typed by the buyer.

        On failure the current coupon (if any) stays applied and the
        result carries the message to show.
        """
        result = await self.coupons.try_apply(code, self.product, self.session, now=now)
        if result.valid and result.coupon is not None:
            self.session.set_coupon(result.coupon, CouponSource.MANUAL)
            self._changed()
        return result

    def remove_coupon(self) -> Optional[Coupon]:
        restored = self.session.clear_coupon()
        self._changed()
        return restored

    # ==================== Payment ====================

    async def initiate_payment(self) -> Optional[Transaction]:
        """
        Pay click.

        Returns None when the post-click offer modal must be answered first;
        `accept_offer` / `decline_offer` / `dismiss_offer` then continue.
        """
        if self.offer_flow.request_payment():
            return None
        return await self._initiate()

    async def accept_offer(self) -> Transaction:
        self.offer_flow.accept()
        self._changed()
        return await self._initiate()

    async def decline_offer(self) -> Transaction:
        self.offer_flow.decline()
        return await self._initiate()

    async def dismiss_offer(self) -> Transaction:
        self.offer_flow.dismiss()
        return await self._initiate()

    async def _initiate(self) -> Transaction:
        transaction = await self.payments.initiate(self.product, self.session)
        # Latest buyer data goes out now instead of after the debounce; not awaited
        self.telemetry.schedule_flush()
        return transaction

    async def manual_check(self) -> Optional[TransactionStatus]:
        return await self.payments.manual_check()

    async def wait_for_confirmation(self) -> Transaction:
        """
        Wait for the active transaction to settle.

        Raises:
            PollingTimeout: no terminal status within the polling budget
            TransactionFailed: cancelled, expired or failed
        """
        poller = self.payments.poller
        transaction = self.payments.transaction
        if poller is None or transaction is None:
            raise RuntimeError("no payment in progress")

        await poller.wait()
        if transaction.is_paid:
            return transaction
        if transaction.is_failed:
            raise TransactionFailed(transaction.transaction_id, transaction.status)
        raise PollingTimeout(transaction.transaction_id, transaction.status)

    async def close(self) -> None:
        """Tear down timers: polling, cooldown, redirect and telemetry debounce."""
        self.payments.close()
        self.telemetry.close()

    # ==================== Internals ====================

    def _changed(self) -> PriceBreakdown:
        price = price_session(self.product, self.session)
        self.telemetry.on_session_change(self.product, self.session)
        return price

    async def _on_terminal(self, transaction: Transaction) -> None:
        if transaction.is_paid:
            # Paid checkouts are not abandoned
            self.telemetry.close()
        else:
            logger.info(
                "Transaction %s ended as %s",
                sanitize_id_for_logging(transaction.transaction_id),
                transaction.status.value,
            )

    async def _on_paid(self, transaction: Transaction) -> None:
        if self.handoff is not None:
            result = self.handoff(transaction)
            if inspect.isawaitable(result):
                await result
