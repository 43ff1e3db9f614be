"""
Abandoned cart telemetry.

Records who started a checkout and how much it was worth, so the seller can
run recovery campaigns. Writes are debounced (only the last change inside
the window is written) and strictly best-effort: a failed write is logged
and dropped, the buyer never sees it.
"""

import asyncio
from typing import Optional

from checkout.config import get_settings
from checkout.logging import get_logger, mask_email_for_logging
from checkout.services.models import AbandonedCartRecord, Product
from checkout.session import CheckoutSession

logger = get_logger(__name__)


def build_record(product: Product, session: CheckoutSession) -> AbandonedCartRecord:
    return AbandonedCartRecord(
        platform_user_id=product.owner_id,
        product_id=product.id,
        product_name=product.name,
        customer_name=session.buyer_name.strip(),
        customer_email=session.buyer_email.strip(),
        customer_whatsapp=session.full_phone if session.buyer_phone.strip() else "",
        potential_value_in_cents=session.price.final,
        tracking_parameters=dict(session.tracking_parameters),
    )


class AbandonmentTelemetryWriter:
    """Debounced upsert of abandoned-cart records keyed by (product, email)."""

    def __init__(self, store, debounce_seconds: Optional[float] = None):
        self.store = store
        self.debounce_seconds = (
            get_settings().abandoned_cart_debounce if debounce_seconds is None else debounce_seconds
        )
        # (product_id, lower(email)) -> record id
        self._record_ids: dict[tuple[str, str], str] = {}
        self._pending: Optional[AbandonedCartRecord] = None
        self._timer: Optional[asyncio.Task] = None
        self._flush_task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def has_pending_write(self) -> bool:
        return self._pending is not None

    def record_id_for(self, product_id: str, email: str) -> Optional[str]:
        return self._record_ids.get((product_id, email.strip().lower()))

    def on_session_change(self, product: Product, session: CheckoutSession) -> None:
        """Schedule a write of the current session, replacing any pending one."""
        if self._closed:
            return
        self._cancel_timer()

        if not session.buyer_email.strip():
            self._pending = None
            return

        self._pending = build_record(product, session)
        self._timer = asyncio.create_task(self._write_after_delay())

    async def flush(self) -> None:
        """Write the pending record now, if any."""
        self._cancel_timer()
        await self._write_pending()

    def schedule_flush(self) -> Optional[asyncio.Task]:
        """Write the pending record now, in the background. The caller never waits on the store."""
        if self._closed or self._pending is None:
            return None
        self._cancel_timer()
        self._flush_task = asyncio.create_task(self._write_pending())
        return self._flush_task

    def close(self) -> None:
        """Drop any pending write and ignore further changes."""
        self._closed = True
        self._cancel_timer()
        if self._flush_task is not None and not self._flush_task.done():
            self._flush_task.cancel()
        self._flush_task = None
        self._pending = None

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _write_after_delay(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        # Past this point the write must not be cancelled by a new change
        self._timer = None
        await self._write_pending()

    async def _write_pending(self) -> None:
        record, self._pending = self._pending, None
        if record is not None:
            await self._upsert(record)

    async def _upsert(self, record: AbandonedCartRecord) -> None:
        key = (record.product_id, record.customer_email.lower())
        async with self._lock:
            try:
                record_id = self._record_ids.get(key)
                if record_id:
                    await self.store.update(record_id, record)
                else:
                    self._record_ids[key] = await self.store.create(record)
                    logger.info(
                        "Abandoned cart created for product %s (%s)",
                        record.product_id,
                        mask_email_for_logging(record.customer_email),
                    )
            except Exception as e:
                logger.warning(
                    "Abandoned cart write failed for product %s (%s): %s",
                    record.product_id,
                    mask_email_for_logging(record.customer_email),
                    e,
                )
