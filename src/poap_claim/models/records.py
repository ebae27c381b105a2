"""Record types for tracked claims and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class TxStatus(str, Enum):
    """Lifecycle status of a tracked claim transaction."""

    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({TxStatus.PASSED, TxStatus.FAILED})


@dataclass(frozen=True)
class Transaction:
    """A submitted claim, tracked until the delivery settles on-chain."""

    key: str  # owning event key
    address: str  # checksummed claimant address
    queue_uid: str
    hash: str | None = None  # settlement tx hash, set once the queue reports one
    status: TxStatus = TxStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def stage(self) -> int:
        """Position in the lifecycle: 0 queued, 1 hash known, 2 terminal."""
        if self.is_terminal:
            return 2
        return 1 if self.hash else 0

    def with_hash(self, tx_hash: str) -> Transaction:
        return replace(self, hash=tx_hash)

    def with_status(self, status: TxStatus, tx_hash: str | None = None) -> Transaction:
        return replace(self, status=status, hash=tx_hash or self.hash)


class QueueStatus(str, Enum):
    """Status values reported by the backend delivery queue."""

    PENDING = "pending"
    IN_PROCESS = "in_process"
    FINISH = "finish"
    FINISH_WITH_ERROR = "finish_with_error"

    @classmethod
    def _missing_(cls, value: object) -> QueueStatus | None:
        # The backend reports upper-case values; older payloads say "finished".
        if isinstance(value, str):
            normalized = value.strip().lower().replace("finished", "finish")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


@dataclass(frozen=True)
class QueueRecord:
    """A delivery queue message as returned by the backend."""

    uid: str
    status: QueueStatus
    tx_hash: str | None = None

    @classmethod
    def from_json(cls, uid: str, data: dict[str, Any]) -> QueueRecord:
        try:
            status = QueueStatus(data.get("status", "pending"))
        except ValueError:
            status = QueueStatus.PENDING
        result = data.get("result") or {}
        tx_hash = result.get("tx_hash") if isinstance(result, dict) else None
        return cls(uid=str(data.get("uid", uid)), status=status, tx_hash=tx_hash or None)

    @property
    def finished(self) -> bool:
        return self.status == QueueStatus.FINISH

    @property
    def failed(self) -> bool:
        return self.status == QueueStatus.FINISH_WITH_ERROR


@dataclass(frozen=True)
class Receipt:
    """Delivery-chain transaction receipt (only the fields the tracker uses)."""

    tx_hash: str
    status: bool
    block_number: int | None = None


@dataclass(frozen=True)
class Notification:
    """User-facing notice emitted on a delivery state change."""

    title: str
    description: str
    severity: str  # "success" | "error"
    duration_ms: int = 5000
    closable: bool = True


class ResolutionError(str, Enum):
    """Why a user-supplied identifier could not be used for a claim."""

    EMPTY_INPUT = "empty_input"
    INVALID_IDENTIFIER = "invalid_identifier"
    NOT_ELIGIBLE = "not_eligible"
    NO_PROVIDER_CONNECTION = "no_provider_connection"


RESOLUTION_MESSAGES = {
    ResolutionError.EMPTY_INPUT: "Please enter an address",
    ResolutionError.INVALID_IDENTIFIER: "Please enter a valid Ethereum address or ENS Name",
    ResolutionError.NOT_ELIGIBLE: "Address not found in claim list",
    ResolutionError.NO_PROVIDER_CONNECTION: "No connection to the Ethereum network",
}


@dataclass(frozen=True)
class ResolvedAddress:
    """A validated, eligible claimant."""

    address: str  # checksummed
    claims: list[int] = field(default_factory=list)
    display_name: str | None = None  # ENS name when resolved from one


@dataclass
class ResolutionResult:
    """Result of AddressResolver.resolve()."""

    success: bool
    resolved: ResolvedAddress | None = None
    error: ResolutionError | None = None

    @property
    def message(self) -> str:
        return RESOLUTION_MESSAGES[self.error] if self.error else ""


@dataclass
class SubmissionResult:
    """Result of a claim submission to the delivery queue."""

    success: bool
    transaction: Transaction | None = None
    error: str | None = None  # "submission_failed"
    cause: str | None = None  # underlying failure, for logs


@dataclass
class TickReport:
    """Outcome counts for one reconciliation tick."""

    checked: int = 0
    skipped: int = 0
    advanced: int = 0
    passed: int = 0
    failed: int = 0
    unchanged: int = 0
    errors: int = 0
    duration_ms: int = 0


@dataclass
class ActionResult:
    """Result of a user-initiated session action."""

    success: bool
    message: str
