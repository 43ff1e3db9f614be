"""Pytest configuration and fixtures"""
import asyncio
import functools
import os
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")
os.environ.setdefault("PUSHINPAY_TOKEN", "test_pushinpay_token")
os.environ.setdefault("PUSHINPAY_WEBHOOK_URL", "https://test.supabase.co/functions/v1/webhook-pushinpay")
os.environ.setdefault("THANK_YOU_BASE_URL", "https://checkout.test")

from checkout.config import CheckoutSettings  # noqa: E402
from checkout.payments.constants import TransactionStatus  # noqa: E402
from checkout.payments.polling import ConfirmationPoller  # noqa: E402
from checkout.payments.transaction import Transaction  # noqa: E402
from checkout.services.models import (  # noqa: E402
    AddOnOffer,
    BuyerIdentity,
    ChargeRequest,
    Coupon,
    DiscountType,
    LineItem,
    PaymentInstruction,
    PostClickOffer,
    PriceBreakdown,
    Product,
)
from checkout.session import CheckoutSession  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


# ==================== Fakes ====================

class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeGateway:
    """Scripted gateway. `statuses` is consumed one per lookup; the last one repeats."""

    def __init__(self, statuses: Optional[List[Any]] = None):
        self.statuses = list(statuses or ["waiting_payment"])
        self.charges: List[Any] = []
        self.status_calls: List[str] = []
        self.create_error: Optional[Exception] = None
        self.create_gate: Optional[asyncio.Event] = None

    async def create_instruction(self, charge):
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.create_error is not None:
            raise self.create_error
        self.charges.append(charge)
        return PaymentInstruction(
            transaction_id=f"tx-{len(self.charges)}",
            qr_code="00020126580014br.gov.bcb.pix",
            qr_code_base64="iVBORw0KGgo=",
            status="created",
            value=charge.amount,
        )

    async def get_transaction_status(self, transaction_id: str) -> str:
        self.status_calls.append(transaction_id)
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeOrderHistory:
    def __init__(self, used: Optional[set] = None, error: Optional[Exception] = None):
        self.used = used or set()
        self.error = error
        self.calls: List[tuple] = []

    async def has_used_coupon(self, product, email, code) -> bool:
        self.calls.append((product.id, email, code))
        if self.error is not None:
            raise self.error
        return (email.lower(), code.upper()) in self.used


class FakeAbandonedCartStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.created: List[Any] = []
        self.updated: List[tuple] = []

    async def create(self, record) -> str:
        if self.fail:
            raise RuntimeError("store unavailable")
        self.created.append(record)
        return f"cart-{len(self.created)}"

    async def update(self, record_id, record) -> None:
        if self.fail:
            raise RuntimeError("store unavailable")
        self.updated.append((record_id, record))


def make_transaction(transaction_id: str = "tx-1") -> Transaction:
    """Transaction already awaiting payment."""
    charge = ChargeRequest(
        session_id="session-1",
        product_id="product-123",
        owner_id="seller-1",
        amount=10000,
        original_amount=10000,
        items=[LineItem(product_id="product-123", name="Curso", price=10000)],
        buyer=BuyerIdentity(name="Maria", email="maria@example.com", phone="+5511987654321"),
    )
    tx = Transaction(
        transaction_id=transaction_id,
        instruction=PaymentInstruction(
            transaction_id=transaction_id, qr_code="pix", qr_code_base64="img", status="created", value=10000
        ),
        price=PriceBreakdown(pre_discount=10000, discount=0, final=10000),
        charge=charge,
    )
    tx.transition_to(TransactionStatus.AWAITING_PAYMENT)
    return tx


# ==================== Fixtures ====================

@pytest.fixture
def settings():
    return CheckoutSettings(thank_you_base_url="https://checkout.test")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def poller_factory(clock):
    return functools.partial(ConfirmationPoller, clock=clock, sleep=clock.sleep)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def order_history():
    return FakeOrderHistory()


@pytest.fixture
def cart_store():
    return FakeAbandonedCartStore()


@pytest.fixture
def coupons():
    return [
        Coupon(id="c-10", code="DESCONTO10", discount_type=DiscountType.PERCENTAGE, discount_value=10),
        Coupon(id="c-fixed", code="MENOS60", discount_type=DiscountType.FIXED, discount_value=6000),
        Coupon(id="c-off", code="DESLIGADO", discount_type=DiscountType.PERCENTAGE, discount_value=50, is_active=False),
        Coupon(
            id="c-old",
            code="VENCIDO",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=20,
            expires_at=NOW - timedelta(days=1),
        ),
        Coupon(
            id="c-min",
            code="MIN200",
            discount_type=DiscountType.FIXED,
            discount_value=1000,
            min_purchase_value=20000,
        ),
    ]


@pytest.fixture
def sample_product(coupons):
    """Product with one add-on, no post-click offer."""
    return Product(
        id="product-123",
        owner_id="seller-1",
        name="Curso de Python",
        price=10000,
        add_ons=[AddOnOffer(id="bump-1", product_id="product-456", name="E-book bônus", price=2000)],
        coupons=coupons,
    )


@pytest.fixture
def offer_product(sample_product):
    """Same product carrying a post-click offer."""
    return sample_product.model_copy(
        update={
            "post_click_offer": PostClickOffer(
                product_id="product-789",
                name="Mentoria",
                price=5000,
                description="Uma hora de mentoria individual",
            )
        }
    )


@pytest.fixture
def buyer_session():
    return CheckoutSession(
        session_id="session-1",
        buyer_name="Maria Silva",
        buyer_email="maria@example.com",
        buyer_phone="(11) 98765-4321",
    )


@pytest.fixture
def mock_supabase_client():
    """Mock async Supabase client"""
    client = Mock()

    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.insert.return_value = table_mock
    table_mock.update.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.execute = AsyncMock(return_value=Mock(data=[]))

    client.table.return_value = table_mock
    return client
