"""Data models for the poap_claim tracker."""

from poap_claim.models.event import ClaimEvent, RewardEvent
from poap_claim.models.records import (
    ActionResult,
    Notification,
    QueueRecord,
    QueueStatus,
    Receipt,
    ResolutionError,
    ResolutionResult,
    ResolvedAddress,
    SubmissionResult,
    TickReport,
    Transaction,
    TxStatus,
)
from poap_claim.models.config import ClaimConfig

__all__ = [
    "ClaimEvent", "RewardEvent",
    "ActionResult", "Notification", "QueueRecord", "QueueStatus", "Receipt",
    "ResolutionError", "ResolutionResult", "ResolvedAddress",
    "SubmissionResult", "TickReport", "Transaction", "TxStatus",
    "ClaimConfig",
]
