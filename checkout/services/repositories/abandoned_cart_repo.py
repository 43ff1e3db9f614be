"""Abandoned Cart Repository - recovery snapshots of unfinished checkouts."""
from checkout.db import Tables
from checkout.services.models import AbandonedCartRecord

from .base import BaseRepository


class AbandonedCartRepository(BaseRepository):
    """Abandoned cart database operations."""

    async def create(self, record: AbandonedCartRecord) -> str:
        """Insert a new record and return its id."""
        row = record.to_row()
        row["created_at"] = row["last_interaction_at"]
        result = await self.client.table(Tables.ABANDONED_CARTS).insert(row).execute()
        if not result.data:
            raise RuntimeError("abandoned cart insert returned no rows")
        return str(result.data[0]["id"])

    async def update(self, record_id: str, record: AbandonedCartRecord) -> None:
        """Refresh an existing record; its recovery status is left as is."""
        await (
            self.client.table(Tables.ABANDONED_CARTS)
            .update(record.to_row(include_status=False))
            .eq("id", record_id)
            .execute()
        )
