"""Claim campaign models loaded from event definitions and the backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ClaimEvent:
    """A claim campaign (delivery) as configured for the claim flow.

    ``addresses`` is keyed by lowercase address; every eligibility lookup
    must lowercase the candidate first. ``claims`` records addresses that
    have already claimed.
    """

    key: str
    addresses: dict[str, list[int]] = field(default_factory=dict)
    claims: dict[str, bool] = field(default_factory=dict)
    event_ids: list[int] = field(default_factory=list)
    active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClaimEvent:
        addresses = {
            str(addr).lower(): [int(c) for c in claim_ids]
            for addr, claim_ids in (data.get("addresses") or {}).items()
        }
        claims = {str(addr): bool(v) for addr, v in (data.get("claims") or {}).items()}
        return cls(
            key=str(data["key"]),
            addresses=addresses,
            claims=claims,
            event_ids=[int(i) for i in data.get("eventIds", data.get("event_ids", []))],
            active=bool(data.get("active", True)),
        )

    def eligible_claims(self, address: str) -> list[int] | None:
        """Claim ids the address may claim, or None if it is not on the list."""
        claim_ids = self.addresses.get(address.lower())
        if claim_ids is None:
            return None
        return list(claim_ids)

    def is_claimed(self, address: str) -> bool:
        if not address:
            return False
        if address in self.claims:
            return self.claims[address]
        return self.claims.get(address.lower(), False)


@dataclass(frozen=True)
class RewardEvent:
    """A reward (badge) definition published by the backend."""

    id: int
    name: str
    image_url: str = ""
    year: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> RewardEvent:
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "")),
            image_url=str(data.get("image_url", "")),
            year=data.get("year"),
        )
