"""Tests for debounced abandoned cart telemetry."""
import asyncio

import pytest

from checkout.services.abandoned_carts import AbandonmentTelemetryWriter, build_record
from checkout.services.domains.pricing import price_session
from checkout.services.models import AbandonedCartStatus
from checkout.session import CheckoutSession

from tests.conftest import FakeAbandonedCartStore


def test_build_record(sample_product, buyer_session):
    buyer_session.selected_add_on_ids.add("bump-1")
    buyer_session.tracking_parameters = {"utm_campaign": "lancamento"}
    price_session(sample_product, buyer_session)

    record = build_record(sample_product, buyer_session)

    assert record.platform_user_id == "seller-1"
    assert record.product_name == "Curso de Python"
    assert record.customer_whatsapp == "+5511987654321"
    assert record.potential_value_in_cents == 12000
    assert record.tracking_parameters == {"utm_campaign": "lancamento"}
    assert record.status == AbandonedCartStatus.NOT_CONTACTED
    assert record.to_row(include_status=False).get("status") is None


@pytest.mark.asyncio
async def test_skipped_without_email(sample_product, cart_store):
    writer = AbandonmentTelemetryWriter(cart_store, debounce_seconds=0)

    writer.on_session_change(sample_product, CheckoutSession(buyer_name="Maria"))
    await writer.flush()

    assert writer.has_pending_write is False
    assert cart_store.created == []


@pytest.mark.asyncio
async def test_debounce_keeps_only_last_change(sample_product, cart_store):
    writer = AbandonmentTelemetryWriter(cart_store, debounce_seconds=0.05)
    session = CheckoutSession(buyer_email="maria@example.com")

    for name in ("M", "Ma", "Maria"):
        session.buyer_name = name
        writer.on_session_change(sample_product, session)
    await asyncio.sleep(0.2)

    assert [r.customer_name for r in cart_store.created] == ["Maria"]
    assert cart_store.updated == []


@pytest.mark.asyncio
async def test_upsert_by_product_and_email(sample_product, cart_store):
    writer = AbandonmentTelemetryWriter(cart_store, debounce_seconds=60)
    session = CheckoutSession(buyer_email="maria@example.com")

    writer.on_session_change(sample_product, session)
    await writer.flush()
    session.buyer_email = "MARIA@example.com"
    session.buyer_name = "Maria"
    writer.on_session_change(sample_product, session)
    await writer.flush()

    assert len(cart_store.created) == 1
    assert cart_store.updated[0][0] == "cart-1"
    assert cart_store.updated[0][1].customer_name == "Maria"
    assert writer.record_id_for("product-123", "maria@example.com") == "cart-1"

    session.buyer_email = "joao@example.com"
    writer.on_session_change(sample_product, session)
    await writer.flush()
    assert len(cart_store.created) == 2


@pytest.mark.asyncio
async def test_failures_are_swallowed(sample_product):
    store = FakeAbandonedCartStore(fail=True)
    writer = AbandonmentTelemetryWriter(store, debounce_seconds=0)
    session = CheckoutSession(buyer_email="maria@example.com")

    writer.on_session_change(sample_product, session)
    await writer.flush()
    assert writer.record_id_for("product-123", "maria@example.com") is None

    store.fail = False
    writer.on_session_change(sample_product, session)
    await writer.flush()
    assert len(store.created) == 1


@pytest.mark.asyncio
async def test_close_cancels_pending_write(sample_product, cart_store):
    writer = AbandonmentTelemetryWriter(cart_store, debounce_seconds=0.01)
    session = CheckoutSession(buyer_email="maria@example.com")

    writer.on_session_change(sample_product, session)
    writer.close()
    await asyncio.sleep(0.05)
    writer.on_session_change(sample_product, session)
    await writer.flush()

    assert cart_store.created == []


@pytest.mark.asyncio
async def test_schedule_flush_writes_in_background(sample_product, cart_store):
    writer = AbandonmentTelemetryWriter(cart_store, debounce_seconds=60)
    assert writer.schedule_flush() is None

    writer.on_session_change(sample_product, CheckoutSession(buyer_email="maria@example.com"))
    task = writer.schedule_flush()

    assert cart_store.created == []
    await task
    assert len(cart_store.created) == 1
    assert writer.has_pending_write is False


@pytest.mark.asyncio
async def test_close_cancels_background_flush(sample_product):
    gate = asyncio.Event()

    class SlowStore(FakeAbandonedCartStore):
        async def create(self, record):
            await gate.wait()
            return await super().create(record)

    store = SlowStore()
    writer = AbandonmentTelemetryWriter(store, debounce_seconds=60)
    writer.on_session_change(sample_product, CheckoutSession(buyer_email="maria@example.com"))
    task = writer.schedule_flush()
    await asyncio.sleep(0)

    writer.close()
    gate.set()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert store.created == []
