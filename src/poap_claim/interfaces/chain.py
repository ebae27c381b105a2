"""ChainReader protocol - read-only access to the origin and delivery chains."""

from __future__ import annotations

from typing import Protocol

from poap_claim.models.records import Receipt


class ChainReader(Protocol):
    """Resolves names on the identity chain and reads delivery-chain receipts."""

    async def identity_connected(self) -> bool:
        """Whether an identity-resolution provider is available right now."""
        ...

    async def resolve_name(self, name: str) -> str | None:
        """Resolve a human-readable name to an address. None if unresolved."""
        ...

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt | None:
        """Receipt for a settlement transaction. None while still unmined."""
        ...
