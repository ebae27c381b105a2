"""Address resolver - turns user input into an eligible, checksummed claimant."""

from __future__ import annotations

import logging

from web3 import Web3

from poap_claim.interfaces.chain import ChainReader
from poap_claim.models.event import ClaimEvent
from poap_claim.models.records import (
    ResolutionError,
    ResolutionResult,
    ResolvedAddress,
)

log = logging.getLogger(__name__)


def _failure(error: ResolutionError) -> ResolutionResult:
    return ResolutionResult(success=False, error=error)


class AddressResolver:
    """Validates an address or ENS name against an event's eligibility list.

    Syntactically valid addresses never touch the chain, so they resolve
    even with no identity provider. Names need the origin chain; a missing
    name and a failed lookup both come back as INVALID_IDENTIFIER.
    """

    def __init__(self, chain: ChainReader) -> None:
        self._chain = chain

    async def resolve(self, value: str, event: ClaimEvent) -> ResolutionResult:
        value = (value or "").strip()
        if not value:
            return _failure(ResolutionError.EMPTY_INPUT)

        display_name: str | None = None
        if Web3.is_address(value):
            address = Web3.to_checksum_address(value)
        else:
            if not await self._chain.identity_connected():
                log.warning("No identity provider connection, cannot resolve %s", value)
                return _failure(ResolutionError.NO_PROVIDER_CONNECTION)
            try:
                resolved = await self._chain.resolve_name(value)
            except Exception as exc:
                log.warning("Name lookup failed for %s: %s", value, exc)
                resolved = None
            if not resolved or not Web3.is_address(resolved):
                log.info("Could not resolve %s to an address", value)
                return _failure(ResolutionError.INVALID_IDENTIFIER)
            address = Web3.to_checksum_address(resolved)
            display_name = value

        claims = event.eligible_claims(address)
        if claims is None:
            log.info("Address %s is not on the claim list for %s", address, event.key)
            return _failure(ResolutionError.NOT_ELIGIBLE)

        return ResolutionResult(
            success=True,
            resolved=ResolvedAddress(address=address, claims=claims, display_name=display_name),
        )
