"""Claim tracker - wires all components together and runs claim sessions."""

from __future__ import annotations

import asyncio
import logging
import signal

from poap_claim.chain.reader import Web3ChainReader
from poap_claim.delivery.client import HttpDeliveryQueueClient
from poap_claim.interfaces.notifier import Notifier
from poap_claim.models.config import ClaimConfig
from poap_claim.models.event import ClaimEvent
from poap_claim.notify import LogNotifier
from poap_claim.session import ClaimSession
from poap_claim.storage.sqlite import SQLiteTransactionStore

log = logging.getLogger(__name__)


class ClaimTracker:
    """Builds the shared store and network clients and hands out sessions.

    One tracker owns one store; every session opened from it shares that
    store, so transactions from every event are visible to every reader.
    """

    def __init__(self, cfg: ClaimConfig, notifier: Notifier | None = None) -> None:
        self._cfg = cfg
        self.store = SQLiteTransactionStore(cfg.db_path)
        self.queue = HttpDeliveryQueueClient(cfg.api_url, cfg.api_key, cfg.request_timeout)
        self.chain = Web3ChainReader(cfg.origin_rpc_url, cfg.delivery_rpc_url)
        self.notifier = notifier or LogNotifier()

    async def open(self) -> None:
        log.info("Opening claim tracker")
        log.info("  API: %s", self._cfg.api_url)
        log.info("  Origin RPC: %s", self._cfg.origin_rpc_url or "(none)")
        log.info("  Delivery RPC: %s", self._cfg.delivery_rpc_url)
        log.info("  DB: %s", self._cfg.db_path)
        await self.store.initialize()

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> ClaimTracker:
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def session(self, event: ClaimEvent, delivery_id: int = 0) -> ClaimSession:
        return ClaimSession(
            event=event,
            delivery_id=delivery_id,
            store=self.store,
            queue=self.queue,
            chain=self.chain,
            notifier=self.notifier,
            poll_interval=self._cfg.poll_interval,
            request_timeout=self._cfg.request_timeout,
        )


async def watch_session(session: ClaimSession, until_settled: bool = True) -> None:
    """Run a session's reconciliation loop until settled or interrupted."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        async with session:
            while not stop.is_set():
                if until_settled and await session.settled():
                    log.info("All claims for %s are settled", session.event.key)
                    break
                try:
                    await asyncio.wait_for(stop.wait(), timeout=session.poll_interval)
                except asyncio.TimeoutError:
                    pass
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                pass
