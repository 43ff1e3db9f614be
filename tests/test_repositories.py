"""Tests for Supabase-backed repositories."""
from unittest.mock import AsyncMock, Mock, call

import pytest

from checkout.services.models import AbandonedCartRecord, AbandonedCartStatus
from checkout.services.repositories import AbandonedCartRepository, OrderRepository


def _record() -> AbandonedCartRecord:
    return AbandonedCartRecord(
        platform_user_id="seller-1",
        product_id="product-123",
        product_name="Curso de Python",
        customer_name="Maria Silva",
        customer_email="maria@example.com",
        customer_whatsapp="+5511987654321",
        potential_value_in_cents=12000,
        tracking_parameters={"utm_source": "ig"},
    )


class TestOrderRepository:
    @pytest.mark.asyncio
    async def test_has_used_coupon_query(self, mock_supabase_client, sample_product):
        table = mock_supabase_client.table.return_value
        table.execute = AsyncMock(return_value=Mock(data=[{"id": "sale-1"}]))

        repo = OrderRepository(mock_supabase_client)
        used = await repo.has_used_coupon(sample_product, " maria@example.com ", "desconto10")

        assert used is True
        mock_supabase_client.table.assert_called_with("sales")
        table.select.assert_called_with("id")
        assert table.eq.call_args_list == [
            call("platform_user_id", "seller-1"),
            call("customer_email", "maria@example.com"),
            call("coupon_code_used", "DESCONTO10"),
            call("status", "paid"),
        ]
        table.limit.assert_called_with(1)

    @pytest.mark.asyncio
    async def test_has_used_coupon_no_rows(self, mock_supabase_client, sample_product):
        repo = OrderRepository(mock_supabase_client)
        assert await repo.has_used_coupon(sample_product, "maria@example.com", "DESCONTO10") is False


class TestAbandonedCartRepository:
    @pytest.mark.asyncio
    async def test_create_returns_id(self, mock_supabase_client):
        table = mock_supabase_client.table.return_value
        table.execute = AsyncMock(return_value=Mock(data=[{"id": 42}]))

        record_id = await AbandonedCartRepository(mock_supabase_client).create(_record())

        assert record_id == "42"
        mock_supabase_client.table.assert_called_with("abandoned_carts")
        row = table.insert.call_args[0][0]
        assert row["status"] == AbandonedCartStatus.NOT_CONTACTED.value
        assert row["potential_value_in_cents"] == 12000
        assert row["tracking_parameters"] == {"utm_source": "ig"}
        assert row["created_at"] == row["last_interaction_at"]

    @pytest.mark.asyncio
    async def test_create_without_rows_raises(self, mock_supabase_client):
        with pytest.raises(RuntimeError):
            await AbandonedCartRepository(mock_supabase_client).create(_record())

    @pytest.mark.asyncio
    async def test_update_keeps_status(self, mock_supabase_client):
        table = mock_supabase_client.table.return_value

        await AbandonedCartRepository(mock_supabase_client).update("cart-1", _record())

        row = table.update.call_args[0][0]
        assert "status" not in row
        assert row["customer_name"] == "Maria Silva"
        table.eq.assert_called_with("id", "cart-1")
