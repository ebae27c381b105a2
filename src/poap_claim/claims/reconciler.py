"""Reconciliation loop - advances tracked claims using queue status and chain receipts."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

from poap_claim.interfaces.chain import ChainReader
from poap_claim.interfaces.notifier import Notifier
from poap_claim.interfaces.queue import DeliveryQueueClient
from poap_claim.interfaces.store import TransactionStore
from poap_claim.models.records import Notification, TickReport, Transaction, TxStatus

log = logging.getLogger(__name__)

T = TypeVar("T")

DELIVERY_IN_PROCESS = Notification(
    title="Delivery in process!",
    description="The POAP token is on its way to your wallet",
    severity="success",
)
DELIVERY_FAILED = Notification(
    title="Couldn't deliver your POAP!",
    description="There was an error processing your POAP token. Please try again",
    severity="error",
)

# Outcomes returned by _advance(), tallied into the TickReport
ADVANCED = "advanced"
PASSED = "passed"
FAILED = "failed"
UNCHANGED = "unchanged"
ERROR = "error"


class ReconciliationLoop:
    """Periodically reconciles every in-flight claim of one event.

    Each tick:
    1. Lists the event's transactions from the store
    2. Skips terminal ones (no network calls)
    3. Without a hash: polls the delivery queue; a finished message records
       the settlement hash, a failed one marks the claim failed
    4. With a hash: reads the delivery-chain receipt; success passes the
       claim, a revert fails it, no receipt leaves it pending
    5. Runs the optional on_tick hook

    Per-transaction calls run concurrently and are joined before the next
    tick. Failures and timeouts leave the transaction untouched until the
    next tick. Once stopped, results still in flight are discarded.
    """

    def __init__(
        self,
        store: TransactionStore,
        queue: DeliveryQueueClient,
        chain: ChainReader,
        event_key: str,
        notifier: Notifier | None = None,
        poll_interval: float = 2.0,
        request_timeout: float = 15.0,
        on_tick: Callable[[TickReport], Awaitable[None]] | None = None,
    ) -> None:
        self._store = store
        self._queue = queue
        self._chain = chain
        self._event_key = event_key
        self._notifier = notifier
        self._poll_interval = poll_interval
        self._request_timeout = request_timeout
        self._on_tick = on_tick
        self._running = False
        self._stops = 0  # bumped by stop(); ticks begun before a stop are discarded
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ── Lifecycle ─────────────────────────────────────────

    async def start(self) -> None:
        """Start ticking in a background task."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        log.info(
            "Reconciliation started for %s (interval=%.1fs, timeout=%.1fs)",
            self._event_key, self._poll_interval, self._request_timeout,
        )

    async def stop(self) -> None:
        """Cancel the schedule; late results from the last tick are dropped."""
        self._running = False
        self._stops += 1
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        log.info("Reconciliation stopped for %s", self._event_key)

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                log.error("Reconciliation tick error: %s", exc, exc_info=True)

            try:
                await asyncio.sleep(self._poll_interval)
            except asyncio.CancelledError:
                break

    # ── Tick ──────────────────────────────────────────────

    async def tick(self) -> TickReport:
        """Run one reconciliation pass over the event's transactions.

        Can be called directly, whether or not the loop is running. Results
        of a pass still in flight when stop() is called are dropped.
        """
        start_time = time.monotonic()
        generation = self._stops
        transactions = await self._store.list(self._event_key)
        in_flight = [tx for tx in transactions if not tx.is_terminal]

        report = TickReport(checked=len(in_flight), skipped=len(transactions) - len(in_flight))
        results = await asyncio.gather(
            *(self._advance(tx, generation) for tx in in_flight), return_exceptions=True,
        )

        for result in results:
            if isinstance(result, BaseException) or result == ERROR:
                report.errors += 1
            elif result == ADVANCED:
                report.advanced += 1
            elif result == PASSED:
                report.passed += 1
            elif result == FAILED:
                report.failed += 1
            else:
                report.unchanged += 1

        report.duration_ms = int((time.monotonic() - start_time) * 1000)
        if in_flight:
            log.debug(
                "Tick %s: %d in flight, %d advanced, %d passed, %d failed, %d errors",
                self._event_key, report.checked, report.advanced,
                report.passed, report.failed, report.errors,
            )

        if self._on_tick is not None:
            await self._on_tick(report)
        return report

    async def _call(self, request: Awaitable[T]) -> T:
        return await asyncio.wait_for(request, timeout=self._request_timeout)

    async def _advance(self, tx: Transaction, generation: int) -> str:
        """Move one transaction forward by at most one step."""
        if tx.is_terminal:
            return UNCHANGED

        notification: Notification | None = None
        try:
            if not tx.hash:
                record = await self._call(self._queue.get_queue_status(tx.queue_uid))
                if record.finished and record.tx_hash:
                    updated, outcome = tx.with_hash(record.tx_hash), ADVANCED
                    notification = DELIVERY_IN_PROCESS
                elif record.failed:
                    updated = tx.with_status(TxStatus.FAILED, record.tx_hash)
                    outcome = FAILED
                    notification = DELIVERY_FAILED
                else:
                    if record.finished:
                        log.warning("Queue %s finished without a tx hash", tx.queue_uid)
                    return UNCHANGED
            else:
                receipt = await self._call(self._chain.get_transaction_receipt(tx.hash))
                if receipt is None:
                    return UNCHANGED
                if receipt.status:
                    updated, outcome = tx.with_status(TxStatus.PASSED), PASSED
                else:
                    updated, outcome = tx.with_status(TxStatus.FAILED), FAILED
        except asyncio.TimeoutError:
            log.warning("Timed out checking %s (queue_uid=%s)", tx.address, tx.queue_uid)
            return ERROR
        except Exception as exc:
            log.warning("Poll failed for %s (queue_uid=%s): %s", tx.address, tx.queue_uid, exc)
            return ERROR

        if not await self._apply(tx, updated, generation):
            return UNCHANGED

        log.info(
            "Claim %s/%s -> %s (hash=%s)",
            tx.key, tx.address, updated.status.value, updated.hash or "-",
        )
        if notification is not None and self._notifier is not None:
            self._notifier.notify(notification)
        return outcome

    async def _apply(self, polled: Transaction, updated: Transaction, generation: int) -> bool:
        """Persist a transition unless the stored record has moved on."""
        if generation != self._stops:
            log.debug("Loop stopped, dropping result for %s", polled.queue_uid)
            return False

        current = await self._store.get(polled.key, polled.address)
        if current is None or current.queue_uid != polled.queue_uid:
            log.debug("Transaction %s replaced or removed, dropping result", polled.queue_uid)
            return False
        if current.stage >= updated.stage:
            return False
        return await self._store.save(updated)
