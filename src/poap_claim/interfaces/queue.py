"""DeliveryQueueClient protocol - backend claim submission and queue status."""

from __future__ import annotations

from typing import Protocol

from poap_claim.models.event import RewardEvent
from poap_claim.models.records import QueueRecord


class DeliveryQueueClient(Protocol):
    """HTTP access to the backend delivery endpoints."""

    async def submit_claim(self, delivery_id: int, address: str) -> str:
        """Request delivery for an address. Returns the assigned queue uid."""
        ...

    async def get_queue_status(self, queue_uid: str) -> QueueRecord:
        """Current state of a queued delivery."""
        ...

    async def get_reward_events(self) -> list[RewardEvent]:
        """All reward definitions known to the backend."""
        ...
