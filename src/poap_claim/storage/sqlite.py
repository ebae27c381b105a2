"""SQLite implementation of the TransactionStore protocol."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import aiosqlite

from poap_claim.interfaces.store import TransactionListener
from poap_claim.models.records import Transaction, TxStatus

log = logging.getLogger(__name__)

SCHEMA = """
-- Tracked claim transactions, one per (event, claimant)
CREATE TABLE IF NOT EXISTS transactions (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL,
    address TEXT NOT NULL,
    queue_uid TEXT NOT NULL,
    hash TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_transactions_identity ON transactions(key, address);
CREATE INDEX IF NOT EXISTS idx_transactions_status ON transactions(status);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_tx(row: aiosqlite.Row) -> Transaction:
    return Transaction(
        key=row["key"],
        address=row["address"],
        queue_uid=row["queue_uid"],
        hash=row["hash"],
        status=TxStatus(row["status"]),
    )


def is_regression(current: Transaction | None, incoming: Transaction) -> bool:
    """True if writing ``incoming`` over ``current`` would move it backward.

    A different queue uid is a fresh submission for the same claimant. It
    replaces a pending or failed record, never a delivered one.
    """
    if current is None:
        return False
    if current.queue_uid != incoming.queue_uid:
        return current.status == TxStatus.PASSED
    if current.is_terminal:
        return incoming != current
    return incoming.stage < current.stage


class SQLiteTransactionStore:
    """SQLite-backed implementation of the TransactionStore protocol.

    Writes are whole-record upserts keyed by (key, address), committed
    immediately; subscribed readers are called after each accepted write.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._listeners: list[TransactionListener] = []

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Transactions ───────────────────────────────────────

    async def list(self, key: str | None = None) -> list[Transaction]:
        if key is None:
            query, params = "SELECT * FROM transactions ORDER BY seq", ()
        else:
            query, params = "SELECT * FROM transactions WHERE key=? ORDER BY seq", (key,)
        async with self.db.execute(query, params) as cur:
            return [_row_to_tx(row) async for row in cur]

    async def get(self, key: str, address: str) -> Transaction | None:
        async with self.db.execute(
            "SELECT * FROM transactions WHERE key=? AND address=?", (key, address)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_tx(row) if row else None

    async def save(self, tx: Transaction) -> bool:
        current = await self.get(tx.key, tx.address)
        if is_regression(current, tx):
            log.debug(
                "Ignoring stale write for %s/%s (stored %s, incoming %s)",
                tx.key, tx.address, current.status.value if current else None,
                tx.status.value,
            )
            return False
        if current == tx:
            return True

        # Single-statement upsert: concurrent first writes for the same claimant
        # cannot collide, and an update keeps the row's original seq position.
        # A delivered record is only ever updated by its own queue uid.
        now = _now()
        cur = await self.db.execute(
            "INSERT INTO transactions"
            " (key, address, queue_uid, hash, status, created_at, updated_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)"
            " ON CONFLICT(key, address) DO UPDATE SET"
            " queue_uid=excluded.queue_uid, hash=excluded.hash,"
            " status=excluded.status, updated_at=excluded.updated_at"
            " WHERE transactions.status != ? OR transactions.queue_uid = excluded.queue_uid",
            (
                tx.key, tx.address, tx.queue_uid, tx.hash, tx.status.value, now, now,
                TxStatus.PASSED.value,
            ),
        )
        await self.db.commit()
        if cur.rowcount == 0:
            log.debug("Delivered claim %s/%s kept, dropping write", tx.key, tx.address)
            return False

        for listener in list(self._listeners):
            try:
                listener(tx)
            except Exception as exc:
                log.warning("Transaction listener failed: %s", exc)
        return True

    # ── Readers ────────────────────────────────────────────

    def subscribe(self, listener: TransactionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
