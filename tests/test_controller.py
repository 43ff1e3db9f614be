"""Tests for payment initiation and transaction ownership."""
import asyncio
import functools

import pytest

from checkout.errors import (
    ERROR_INVALID_AMOUNT,
    ERROR_INVALID_BUYER,
    GatewayError,
    InitiationFailureKind,
    InitiationInProgress,
    PaymentInitiationFailed,
)
from checkout.payments.constants import TransactionStatus
from checkout.payments.controller import PaymentSessionController, build_line_items
from checkout.payments.polling import ConfirmationPoller
from checkout.services.models import LineItemKind
from checkout.session import CouponSource, OfferDecision


@pytest.fixture
def parked_factory(clock):
    """Pollers that park forever after their first poll."""

    async def park(_seconds):
        await asyncio.Event().wait()

    return functools.partial(ConfirmationPoller, clock=clock, sleep=park)


@pytest.fixture
def controller(gateway, settings, parked_factory):
    controller = PaymentSessionController(gateway, settings, poller_factory=parked_factory)
    yield controller
    controller.close()


@pytest.mark.asyncio
async def test_initiate_builds_frozen_charge(controller, gateway, sample_product, buyer_session):
    buyer_session.selected_add_on_ids.add("bump-1")
    buyer_session.set_coupon(sample_product.find_coupon("DESCONTO10"), CouponSource.MANUAL)
    buyer_session.tracking_parameters = {"utm_source": "instagram"}

    tx = await controller.initiate(sample_product, buyer_session)

    assert tx.status == TransactionStatus.AWAITING_PAYMENT
    assert controller.transaction is tx
    assert controller.poller.is_running

    charge = gateway.charges[0]
    assert (charge.amount, charge.original_amount, charge.discount_applied) == (10800, 12000, 1200)
    assert charge.coupon_code == "DESCONTO10"
    assert [(i.product_id, i.price, i.kind) for i in charge.items] == [
        ("product-123", 10000, LineItemKind.BASE),
        ("product-456", 2000, LineItemKind.ADD_ON),
    ]
    assert charge.buyer.phone == "+5511987654321"
    assert charge.tracking_parameters == {"utm_source": "instagram"}

    # Later edits do not reach the frozen transaction
    buyer_session.selected_add_on_ids.clear()
    buyer_session.tracking_parameters["utm_source"] = "changed"
    assert tx.price.final == 10800
    assert tx.charge.tracking_parameters == {"utm_source": "instagram"}


def test_line_items_include_accepted_offer(offer_product, buyer_session):
    buyer_session.offer_decision = OfferDecision.ACCEPTED
    items = build_line_items(offer_product, buyer_session)

    assert items[-1].product_id == "product-789"
    assert items[-1].is_post_click_offer

    buyer_session.offer_decision = OfferDecision.DECLINED
    assert all(not i.is_post_click_offer for i in build_line_items(offer_product, buyer_session))


@pytest.mark.asyncio
async def test_duplicate_initiate_rejected(controller, gateway, sample_product, buyer_session):
    gateway.create_gate = asyncio.Event()

    first = asyncio.create_task(controller.initiate(sample_product, buyer_session))
    await asyncio.sleep(0)
    assert controller.is_initiating(buyer_session.session_id)

    with pytest.raises(InitiationInProgress):
        await controller.initiate(sample_product, buyer_session)

    gateway.create_gate.set()
    tx = await first
    assert len(gateway.charges) == 1
    assert tx.transaction_id == "tx-1"
    assert controller.is_initiating(buyer_session.session_id) is False


@pytest.mark.asyncio
async def test_missing_buyer_rejected_before_gateway(controller, gateway, sample_product, buyer_session):
    buyer_session.buyer_phone = "  "

    with pytest.raises(PaymentInitiationFailed) as exc_info:
        await controller.initiate(sample_product, buyer_session)

    assert exc_info.value.kind == InitiationFailureKind.GATEWAY_REJECTED
    assert exc_info.value.user_message == ERROR_INVALID_BUYER
    assert gateway.charges == []


@pytest.mark.asyncio
async def test_zero_amount_rejected_before_gateway(controller, gateway, sample_product, buyer_session):
    cheap = sample_product.model_copy(update={"price": 5000})
    buyer_session.set_coupon(cheap.find_coupon("MENOS60"), CouponSource.MANUAL)

    with pytest.raises(PaymentInitiationFailed) as exc_info:
        await controller.initiate(cheap, buyer_session)

    assert exc_info.value.user_message == ERROR_INVALID_AMOUNT
    assert gateway.charges == []


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", list(InitiationFailureKind))
async def test_gateway_failure_leaves_session_retryable(controller, gateway, sample_product, buyer_session, kind):
    gateway.create_error = GatewayError(kind, "nope")
    with pytest.raises(PaymentInitiationFailed) as exc_info:
        await controller.initiate(sample_product, buyer_session)

    assert exc_info.value.kind == kind
    assert controller.transaction is None
    assert controller.is_initiating(buyer_session.session_id) is False
    assert buyer_session.selected_add_on_ids == set()
    assert buyer_session.price.final == 10000

    gateway.create_error = None
    tx = await controller.initiate(sample_product, buyer_session)
    assert tx.status == TransactionStatus.AWAITING_PAYMENT


@pytest.mark.asyncio
async def test_new_transaction_stops_previous_poller(controller, gateway, sample_product, buyer_session):
    first_tx = await controller.initiate(sample_product, buyer_session)
    first_poller = controller.poller
    await asyncio.sleep(0)

    second_tx = await controller.initiate(sample_product, buyer_session)

    assert first_tx.transaction_id != second_tx.transaction_id
    assert (await first_poller.wait()).stopped is True
    assert controller.poller is not first_poller
    assert controller.poller.is_running


@pytest.mark.asyncio
async def test_close_stops_poller(gateway, settings, parked_factory, sample_product, buyer_session):
    controller = PaymentSessionController(gateway, settings, poller_factory=parked_factory)
    await controller.initiate(sample_product, buyer_session)

    controller.close()

    assert (await controller.poller.wait()).stopped is True
