"""web3 chain reader - ENS resolution on the origin chain, receipts on the delivery chain."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TransactionNotFound

from poap_claim.models.records import Receipt

log = logging.getLogger(__name__)


def _to_receipt(tx_hash: str, raw: Mapping[str, Any]) -> Receipt:
    """Reduce a web3 receipt (AttributeDict) to the fields we track."""
    return Receipt(
        tx_hash=tx_hash,
        status=bool(raw.get("status", 0)),
        block_number=raw.get("blockNumber"),
    )


class Web3ChainReader:
    """Read-only access to two EVM networks.

    The origin chain (mainnet) is only used to resolve ENS names; the
    delivery chain is where rewards are minted and where receipts are read.
    An empty origin URL means no identity provider is configured.
    """

    def __init__(self, origin_rpc_url: str, delivery_rpc_url: str) -> None:
        self._origin: AsyncWeb3 | None = None
        if origin_rpc_url:
            self._origin = AsyncWeb3(AsyncHTTPProvider(origin_rpc_url))
        self._delivery = AsyncWeb3(AsyncHTTPProvider(delivery_rpc_url))

    async def identity_connected(self) -> bool:
        if self._origin is None:
            return False
        try:
            return await self._origin.is_connected()
        except Exception as exc:
            log.warning("Origin chain connectivity check failed: %s", exc)
            return False

    async def resolve_name(self, name: str) -> str | None:
        if self._origin is None:
            return None
        address = await self._origin.ens.address(name)
        if address:
            log.debug("Resolved %s -> %s", name, address)
        return address or None

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt | None:
        try:
            raw = await self._delivery.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        if raw is None:
            return None
        return _to_receipt(tx_hash, raw)
