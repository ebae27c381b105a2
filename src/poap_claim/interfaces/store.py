"""TransactionStore protocol - process-wide persistence of tracked claims."""

from __future__ import annotations

from typing import Callable, Protocol

from poap_claim.models.records import Transaction

TransactionListener = Callable[[Transaction], None]


class TransactionStore(Protocol):
    """Durable key-value store of tracked claims, shared by every claim flow."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    # ── Transactions ───────────────────────────────────────

    async def list(self, key: str | None = None) -> list[Transaction]:
        """Tracked transactions in insertion order, optionally for one event."""
        ...

    async def get(self, key: str, address: str) -> Transaction | None:
        ...

    async def save(self, tx: Transaction) -> bool:
        """Upsert by (key, address). Returns False if refused as a regression."""
        ...

    # ── Readers ────────────────────────────────────────────

    def subscribe(self, listener: TransactionListener) -> Callable[[], None]:
        """Call listener after every accepted write. Returns an unsubscribe."""
        ...
