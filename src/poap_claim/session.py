"""Claim session - one event's claim flow, from address entry to delivery."""

from __future__ import annotations

import logging

from poap_claim.claims.reconciler import ReconciliationLoop
from poap_claim.claims.resolver import AddressResolver
from poap_claim.claims.submitter import ClaimSubmitter
from poap_claim.interfaces.chain import ChainReader
from poap_claim.interfaces.notifier import Notifier
from poap_claim.interfaces.queue import DeliveryQueueClient
from poap_claim.interfaces.store import TransactionStore
from poap_claim.models.event import ClaimEvent, RewardEvent
from poap_claim.models.records import (
    ActionResult,
    ResolvedAddress,
    TickReport,
    Transaction,
    TxStatus,
)

log = logging.getLogger(__name__)


class ClaimSession:
    """Drives the claim flow for one event and delivery.

    Holds what the presentation layer reads: the validated claimant, the
    current error message, whether a claim is in progress, and whether the
    address has already claimed. Owns the reconciliation loop for as long
    as the session is open.
    """

    def __init__(
        self,
        event: ClaimEvent,
        delivery_id: int,
        store: TransactionStore,
        queue: DeliveryQueueClient,
        chain: ChainReader,
        notifier: Notifier | None = None,
        poll_interval: float = 2.0,
        request_timeout: float = 15.0,
    ) -> None:
        self.event = event
        self.delivery_id = delivery_id
        self.poll_interval = poll_interval
        self._store = store
        self._resolver = AddressResolver(chain)
        self._submitter = ClaimSubmitter(queue)
        self.loop = ReconciliationLoop(
            store=store,
            queue=queue,
            chain=chain,
            event_key=event.key,
            notifier=notifier,
            poll_interval=poll_interval,
            request_timeout=request_timeout,
            on_tick=self._after_tick,
        )
        self._unsubscribe = None

        self.address_input = ""
        self.resolved: ResolvedAddress | None = None
        self.error = ""
        self.validating = False
        self.claiming = False
        self.claimed = False

    # ── Lifecycle ─────────────────────────────────────────

    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_transaction)
        await self.loop.start()

    async def stop(self) -> None:
        await self.loop.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def __aenter__(self) -> ClaimSession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # ── Address entry ─────────────────────────────────────

    @property
    def address_validated(self) -> bool:
        return self.resolved is not None

    async def validate(self, value: str) -> bool:
        """Resolve and check the entered address or ENS name."""
        self.address_input = value
        self.error = ""
        self.validating = True
        try:
            result = await self._resolver.resolve(value, self.event)
        finally:
            self.validating = False

        if not result.success:
            self.error = result.message
            return False

        self.resolved = result.resolved
        self.address_input = result.resolved.address
        self.check_claimed()
        return True

    def clear(self) -> None:
        """Return to address entry."""
        self.address_input = ""
        self.resolved = None
        self.error = ""
        self.claiming = False
        self.claimed = False

    # ── Claim ─────────────────────────────────────────────

    async def claim(self) -> ActionResult:
        """Submit the validated address for delivery and start tracking it.

        Only one claim per address is ever in flight: a second call while one
        is being submitted or tracked is refused, as is any claim for an
        address whose delivery has already settled.
        """
        if not self.event.active:
            return ActionResult(success=False, message="Claims for this event are closed")
        if self.resolved is None:
            return ActionResult(success=False, message="Validate an address first")
        if self.claiming:
            return ActionResult(success=False, message="A claim for this address is already in progress")
        if self.claimed:
            return ActionResult(success=False, message="This address has already claimed")

        # Set before the first await so overlapping calls see it
        self.claiming = True
        address = self.resolved.address
        try:
            existing = await self._store.get(self.event.key, address)
            if existing is not None and existing.status == TxStatus.PASSED:
                self.claiming = False
                return ActionResult(success=False, message="This address has already been delivered")
            if existing is not None and not existing.is_terminal:
                log.warning("Claim for %s already in progress (queue_uid=%s)", address, existing.queue_uid)
                return ActionResult(success=False, message="A claim for this address is already in progress")

            result = await self._submitter.submit(self.event.key, self.delivery_id, address)
            if not result.success or result.transaction is None:
                self.claiming = False
                return ActionResult(success=False, message=result.cause or "Claim submission failed")

            if not await self._store.save(result.transaction):
                log.warning("Claim %s for %s was not recorded", result.transaction.queue_uid, address)
                self.claiming = False
                return ActionResult(success=False, message="Claim could not be recorded")
        except Exception:
            self.claiming = False
            raise
        return ActionResult(success=True, message=f"Claim queued ({result.transaction.queue_uid})")

    def check_claimed(self) -> bool:
        """Recompute the already-claimed flag from the event's claim map."""
        self.claimed = self.resolved is not None and self.event.is_claimed(self.resolved.address)
        return self.claimed

    # ── Reads ─────────────────────────────────────────────

    async def transactions(self) -> list[Transaction]:
        return await self._store.list(self.event.key)

    async def settled(self) -> bool:
        """True when every transaction of the event is terminal."""
        return all(tx.is_terminal for tx in await self.transactions())

    def rewards(self, events: list[RewardEvent]) -> list[RewardEvent]:
        """Reward definitions belonging to this event, newest first."""
        wanted = set(self.event.event_ids)
        return sorted((e for e in events if e.id in wanted), key=lambda e: e.id, reverse=True)

    # ── Hooks ─────────────────────────────────────────────

    async def _after_tick(self, report: TickReport) -> None:
        self.check_claimed()

    def _on_transaction(self, tx: Transaction) -> None:
        if tx.key != self.event.key or self.resolved is None:
            return
        if tx.address == self.resolved.address and tx.status == TxStatus.FAILED:
            self.claiming = False
