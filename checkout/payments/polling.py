"""
Payment confirmation polling.

`poll_until` is a generic bounded poll loop with exponential backoff; it
knows nothing about payments. `ConfirmationPoller` drives it for one PIX
transaction, adds the buyer's manual "check status" button and schedules
the post-purchase handoff once the gateway reports the payment as paid.
"""
import asyncio
import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from checkout.config import CheckoutSettings, get_settings
from checkout.logging import get_logger, sanitize_id_for_logging
from checkout.payments.constants import TransactionStatus, map_gateway_status
from checkout.payments.transaction import Transaction

logger = get_logger(__name__)

S = TypeVar("S")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[Any]]


# ==================== Primitive ====================

@dataclass(frozen=True)
class BackoffPolicy:
    """Wait between polls: min(initial * multiplier ** attempt, max_interval) seconds."""
    initial: float = 3.0
    max_interval: float = 15.0
    multiplier: float = 1.5

    @classmethod
    def from_settings(cls, settings: CheckoutSettings) -> "BackoffPolicy":
        return cls(
            initial=settings.polling_initial_interval,
            max_interval=settings.polling_max_interval,
            multiplier=settings.polling_backoff_multiplier,
        )

    def interval(self, attempt: int) -> float:
        return min(self.initial * self.multiplier ** attempt, self.max_interval)

    def intervals(self, n: int) -> list[float]:
        """Waits after the first `n` pending polls (attempt counter starts at 1)."""
        return [self.interval(attempt) for attempt in range(1, n + 1)]


@dataclass
class PollOutcome(Generic[S]):
    status: Optional[S]
    timed_out: bool = False
    attempts: int = 0
    stopped: bool = False


async def poll_until(
    check: Callable[[], Awaitable[Optional[S]]],
    is_pending: Callable[[S], bool],
    policy: BackoffPolicy,
    budget: float,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> PollOutcome[S]:
    """
    Call `check` until it returns a non-pending status or the budget runs out.

    Args:
        check: One status lookup; None means unknown and is treated as pending
        is_pending: Whether a known status should keep the loop going
        policy: Backoff between polls
        budget: Seconds allowed, measured from the first poll
        clock: Monotonic clock (injectable for tests)
        sleep: Awaitable sleep (injectable for tests)

    Returns:
        PollOutcome with the last known status. On timeout the status is
        whatever was last seen, and `timed_out` is set.
    """
    started = clock()
    attempt = 0
    polls = 0
    last_known: Optional[S] = None

    while True:
        if clock() - started > budget:
            return PollOutcome(status=last_known, timed_out=True, attempts=polls)

        status = await check()
        polls += 1
        if status is not None:
            last_known = status
            if not is_pending(status):
                return PollOutcome(status=status, timed_out=False, attempts=polls)

        attempt += 1
        await sleep(policy.interval(attempt))


# ==================== Confirmation poller ====================

async def _call(callback: Optional[Callable[..., Any]], *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class ConfirmationPoller:
    """
    Watches one transaction until it is paid, fails, or the budget is spent.

    The poller only ever writes the transaction status; the checkout session
    is never touched from here.
    """

    def __init__(
        self,
        transaction: Transaction,
        gateway,
        settings: Optional[CheckoutSettings] = None,
        on_paid: Optional[Callable[[Transaction], Any]] = None,
        on_terminal: Optional[Callable[[Transaction], Any]] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.transaction = transaction
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.policy = BackoffPolicy.from_settings(self.settings)
        self.on_paid = on_paid
        self.on_terminal = on_terminal
        self._clock = clock
        self._sleep = sleep

        self._task: Optional[asyncio.Task] = None
        self._handoff_task: Optional[asyncio.Task] = None
        self._poll_in_flight = False
        self._manual_in_flight = False
        self._stopped = False
        # Set once the transaction reaches a final status
        self._settled = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def manual_check_available(self) -> bool:
        return (
            not self._poll_in_flight
            and not self._manual_in_flight
            and self._clock() >= self.transaction.next_manual_check_at
        )

    # ==================== Lifecycle ====================

    def start(self) -> None:
        if self._task is not None:
            return
        self._stopped = False
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        """Cancel scheduled polls and any pending redirect."""
        self._stopped = True
        for task in (self._task, self._handoff_task):
            if task is not None and not task.done():
                task.cancel()

    async def wait(self) -> PollOutcome[TransactionStatus]:
        """Wait for the poll loop to finish."""
        if self._task is None:
            raise RuntimeError("poller was not started")
        try:
            return await self._task
        except asyncio.CancelledError:
            if self._stopped:
                return PollOutcome(
                    status=self.transaction.status,
                    timed_out=self.transaction.timed_out,
                    attempts=self.transaction.attempts,
                    stopped=True,
                )
            raise

    async def wait_for_handoff(self) -> None:
        """Wait for a scheduled post-purchase handoff, if one is pending."""
        if self._handoff_task is not None:
            try:
                await self._handoff_task
            except asyncio.CancelledError:
                if not self._stopped:
                    raise

    async def _run(self) -> PollOutcome[TransactionStatus]:
        outcome = await poll_until(
            self._scheduled_check,
            lambda _status: not self.transaction.is_final,
            self.policy,
            self.settings.polling_timeout,
            clock=self._clock,
            sleep=self._pause,
        )
        if outcome.timed_out and self.transaction.is_final:
            # Settled by a manual check during the last wait
            return PollOutcome(status=self.transaction.status, attempts=outcome.attempts)
        if outcome.timed_out:
            self.transaction.timed_out = True
            logger.warning(
                "Polling timed out for transaction %s after %s polls (status=%s)",
                sanitize_id_for_logging(self.transaction.transaction_id),
                outcome.attempts,
                self.transaction.status.value,
            )
        return outcome

    async def _pause(self, seconds: float) -> None:
        """Backoff wait that ends early when a manual check settles the transaction."""
        if self._settled.is_set():
            return
        sleeper = asyncio.ensure_future(self._sleep(seconds))
        settled = asyncio.ensure_future(self._settled.wait())
        try:
            await asyncio.wait({sleeper, settled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            settled.cancel()

    # ==================== Checks ====================

    async def _scheduled_check(self) -> Optional[TransactionStatus]:
        if self.transaction.is_final:
            # Settled by a manual check while we were waiting
            return self.transaction.status

        now = self._clock()
        if self.transaction.first_poll_at is None:
            self.transaction.first_poll_at = now
        self.transaction.attempts += 1

        self._poll_in_flight = True
        try:
            return await self._lookup()
        finally:
            self._poll_in_flight = False

    async def manual_check(self) -> Optional[TransactionStatus]:
        """
        Buyer-triggered status check.

        No-op (returns None, no network call) during the cooldown or while a
        scheduled poll request is in flight. Works after a polling timeout.
        """
        if not self.manual_check_available:
            logger.debug(
                "Manual check ignored for %s (cooldown or poll in flight)",
                sanitize_id_for_logging(self.transaction.transaction_id),
            )
            return None
        if self.transaction.is_final:
            return self.transaction.status

        self._manual_in_flight = True
        try:
            return await self._lookup()
        finally:
            self._manual_in_flight = False
            self.transaction.next_manual_check_at = self._clock() + self.settings.manual_check_cooldown

    async def _lookup(self) -> Optional[TransactionStatus]:
        """One gateway status lookup. Errors count as an unknown status."""
        tx = self.transaction
        tx.last_poll_at = self._clock()
        try:
            raw_status = await self.gateway.get_transaction_status(tx.transaction_id)
        except Exception as e:
            logger.warning(
                "Status lookup failed for transaction %s: %s",
                sanitize_id_for_logging(tx.transaction_id),
                e,
            )
            return None

        status = map_gateway_status(raw_status)
        await self._apply(status)
        return tx.status

    async def _apply(self, status: TransactionStatus) -> None:
        tx = self.transaction
        if tx.is_final or not tx.transition_to(status):
            return
        if tx.is_final:
            self._settled.set()

        if status == TransactionStatus.PAID:
            self._handoff_task = asyncio.create_task(self._handoff_after_delay())
        try:
            await _call(self.on_terminal, tx)
        except Exception:
            logger.exception("on_terminal callback failed for %s", sanitize_id_for_logging(tx.transaction_id))

    async def _handoff_after_delay(self) -> None:
        await self._sleep(self.settings.redirect_delay)
        try:
            await _call(self.on_paid, self.transaction)
        except Exception:
            logger.exception(
                "Post-purchase handoff failed for %s",
                sanitize_id_for_logging(self.transaction.transaction_id),
            )
