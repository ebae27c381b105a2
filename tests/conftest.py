"""Shared fixtures for poap_claim tests."""

from __future__ import annotations

import pytest

from poap_claim.claims.reconciler import ReconciliationLoop
from poap_claim.models.config import ClaimConfig
from poap_claim.notify import CollectingNotifier
from poap_claim.session import ClaimSession
from poap_claim.storage.sqlite import SQLiteTransactionStore

from tests.factories import make_event
from tests.mocks import MockChainReader, MockQueueClient


def make_test_config(**overrides) -> ClaimConfig:
    """Build a ClaimConfig suitable for testing."""
    defaults = dict(
        poll_interval=0.01,
        request_timeout=0.5,
        api_url="https://api.example.test",
        api_key="",
        origin_rpc_url="http://127.0.0.1:8545",
        delivery_rpc_url="http://127.0.0.1:8546",
        db_path=":memory:",
    )
    defaults.update(overrides)
    return ClaimConfig(**defaults)


@pytest.fixture
def test_config():
    """Default ClaimConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteTransactionStore."""
    s = SQLiteTransactionStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def event():
    return make_event()


@pytest.fixture
def mock_chain():
    return MockChainReader()


@pytest.fixture
def mock_queue():
    return MockQueueClient()


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
def reconciler(store, mock_queue, mock_chain, notifier, event):
    """ReconciliationLoop for the default event, driven tick by tick."""
    return ReconciliationLoop(
        store=store,
        queue=mock_queue,
        chain=mock_chain,
        event_key=event.key,
        notifier=notifier,
        poll_interval=0.01,
        request_timeout=0.2,
    )


@pytest.fixture
async def session(event, store, mock_queue, mock_chain, notifier):
    """ClaimSession for delivery 42 of the default event, wired to mocks."""
    s = ClaimSession(
        event=event,
        delivery_id=42,
        store=store,
        queue=mock_queue,
        chain=mock_chain,
        notifier=notifier,
        poll_interval=0.01,
        request_timeout=0.2,
    )
    yield s
    await s.stop()
