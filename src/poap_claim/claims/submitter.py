"""Claim submitter - requests a delivery and builds the tracked transaction."""

from __future__ import annotations

import logging

from poap_claim.interfaces.queue import DeliveryQueueClient
from poap_claim.models.records import SubmissionResult, Transaction, TxStatus

log = logging.getLogger(__name__)


class ClaimSubmitter:
    """Submits one claim per call to the delivery queue.

    Never retries: a second request could settle the same reward twice.
    Persisting the returned transaction is left to the caller.
    """

    def __init__(self, queue: DeliveryQueueClient) -> None:
        self._queue = queue

    async def submit(self, event_key: str, delivery_id: int, address: str) -> SubmissionResult:
        log.info("Submitting claim: event=%s delivery=%d address=%s", event_key, delivery_id, address)

        try:
            queue_uid = await self._queue.submit_claim(delivery_id, address)
            if not queue_uid:
                raise ValueError("No response received")
        except Exception as exc:
            log.error(
                "Claim submission failed for %s (delivery %d): %s",
                address, delivery_id, exc,
            )
            return SubmissionResult(
                success=False,
                error="submission_failed",
                cause=f"{type(exc).__name__}: {exc}",
            )

        tx = Transaction(
            key=event_key,
            address=address,
            queue_uid=queue_uid,
            status=TxStatus.PENDING,
        )
        log.info("Claim queued for %s (queue_uid=%s)", address, queue_uid)
        return SubmissionResult(success=True, transaction=tx)
