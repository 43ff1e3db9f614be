"""Order Repository - read-only order history used by coupon checks."""
from checkout.db import Tables
from checkout.payments.constants import TransactionStatus
from checkout.services.models import Product

from .base import BaseRepository


class OrderRepository(BaseRepository):
    """Order history queries."""

    async def has_used_coupon(self, product: Product, email: str, code: str) -> bool:
        """Whether this seller already has a paid order by `email` that used `code`."""
        result = (
            await self.client.table(Tables.SALES)
            .select("id")
            .eq("platform_user_id", product.owner_id)
            .eq("customer_email", email.strip())
            .eq("coupon_code_used", code.strip().upper())
            .eq("status", TransactionStatus.PAID.value)
            .limit(1)
            .execute()
        )
        return bool(result.data)
