"""Protocol interfaces for all poap_claim components."""

from poap_claim.interfaces.chain import ChainReader
from poap_claim.interfaces.queue import DeliveryQueueClient
from poap_claim.interfaces.store import TransactionListener, TransactionStore
from poap_claim.interfaces.notifier import Notifier

__all__ = [
    "ChainReader",
    "DeliveryQueueClient",
    "TransactionListener", "TransactionStore",
    "Notifier",
]
