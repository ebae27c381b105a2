"""Reconciliation loop: queue -> hash -> receipt transitions, terminality, cost bounds."""

from __future__ import annotations

import asyncio

import pytest

from poap_claim.claims.reconciler import (
    DELIVERY_FAILED,
    DELIVERY_IN_PROCESS,
    ReconciliationLoop,
)
from poap_claim.models.records import TxStatus

from tests.factories import ALICE, BOB, CAROL, make_transaction


# ── Queue phase ───────────────────────────────────────────────────


async def test_pending_queue_leaves_transaction_unchanged(reconciler, store, mock_queue, notifier):
    await store.save(make_transaction(queue_uid="q1"))

    report = await reconciler.tick()

    assert report.checked == 1
    assert report.unchanged == 1
    assert await store.get("devcon-drop", ALICE) == make_transaction(queue_uid="q1")
    assert mock_queue.status_calls == ["q1"]
    assert notifier.notifications == []


async def test_finished_queue_records_hash_but_stays_pending(reconciler, store, mock_queue, notifier):
    await store.save(make_transaction(queue_uid="q1"))
    mock_queue.finish("q1", "0xdead")

    report = await reconciler.tick()

    tx = await store.get("devcon-drop", ALICE)
    assert tx.hash == "0xdead"
    assert tx.status == TxStatus.PENDING
    assert report.advanced == 1
    assert notifier.notifications == [DELIVERY_IN_PROCESS]
    assert DELIVERY_IN_PROCESS.title == "Delivery in process!"
    assert DELIVERY_IN_PROCESS.duration_ms == 5000


async def test_finished_queue_without_hash_is_unchanged(reconciler, store, mock_queue, notifier):
    await store.save(make_transaction(queue_uid="q1"))
    mock_queue.finish("q1", None)

    await reconciler.tick()

    assert (await store.get("devcon-drop", ALICE)).hash is None
    assert notifier.notifications == []


async def test_queue_error_fails_immediately(reconciler, store, mock_queue, mock_chain, notifier):
    await store.save(make_transaction(queue_uid="q1"))
    mock_queue.fail("q1", "0xbad")

    report = await reconciler.tick()

    tx = await store.get("devcon-drop", ALICE)
    assert tx.hash == "0xbad"
    assert tx.status == TxStatus.FAILED
    assert report.failed == 1
    assert mock_chain.receipt_calls == []
    assert notifier.notifications == [DELIVERY_FAILED]
    assert DELIVERY_FAILED.severity == "error"


async def test_queue_error_without_hash_still_fails(reconciler, store, mock_queue):
    await store.save(make_transaction(queue_uid="q1"))
    mock_queue.fail("q1")

    await reconciler.tick()

    tx = await store.get("devcon-drop", ALICE)
    assert tx.status == TxStatus.FAILED
    assert tx.hash is None


# ── Receipt phase ─────────────────────────────────────────────────


async def test_no_receipt_leaves_transaction_unchanged(reconciler, store, mock_queue, mock_chain):
    tx = make_transaction(queue_uid="q1", hash="0xdead")
    await store.save(tx)

    await reconciler.tick()

    assert await store.get("devcon-drop", ALICE) == tx
    assert mock_chain.receipt_calls == ["0xdead"]
    # Once a hash is known the queue is no longer consulted
    assert mock_queue.status_calls == []


@pytest.mark.parametrize("success, expected", [(True, TxStatus.PASSED), (False, TxStatus.FAILED)])
async def test_receipt_decides_terminal_status(reconciler, store, mock_chain, notifier, success, expected):
    await store.save(make_transaction(queue_uid="q1", hash="0xdead"))
    mock_chain.mine("0xdead", success=success)

    await reconciler.tick()

    tx = await store.get("devcon-drop", ALICE)
    assert tx.status == expected
    assert tx.hash == "0xdead"
    # Receipts don't emit notifications
    assert notifier.notifications == []


# ── Terminality & cost ────────────────────────────────────────────


@pytest.mark.parametrize("status", [TxStatus.PASSED, TxStatus.FAILED])
async def test_terminal_transactions_cost_nothing(reconciler, store, mock_queue, mock_chain, status):
    tx = make_transaction(queue_uid="q1", hash="0xdead", status=status)
    await store.save(tx)
    mock_chain.mine("0xdead", success=status != TxStatus.PASSED)

    for _ in range(3):
        report = await reconciler.tick()
        assert report.skipped == 1
        assert report.checked == 0

    assert await store.get("devcon-drop", ALICE) == tx
    assert mock_queue.status_calls == []
    assert mock_chain.receipt_calls == []


async def test_never_skips_straight_to_passed(reconciler, store, mock_queue, mock_chain):
    """A finished queue with an already-mined receipt still takes two ticks."""
    await store.save(make_transaction(queue_uid="q1"))
    mock_queue.finish("q1", "0xdead")
    mock_chain.mine("0xdead")

    await reconciler.tick()
    assert (await store.get("devcon-drop", ALICE)).status == TxStatus.PENDING

    await reconciler.tick()
    assert (await store.get("devcon-drop", ALICE)).status == TxStatus.PASSED


async def test_only_own_event_is_reconciled(reconciler, store, mock_queue):
    await store.save(make_transaction(key="other-drop", queue_uid="q9"))
    await store.save(make_transaction(queue_uid="q1"))

    report = await reconciler.tick()

    assert report.checked == 1
    assert mock_queue.status_calls == ["q1"]


# ── Failure isolation ─────────────────────────────────────────────


async def test_poll_errors_are_isolated_per_transaction(reconciler, store, mock_queue, mock_chain):
    await store.save(make_transaction(address=ALICE, queue_uid="q1"))
    await store.save(make_transaction(address=BOB, queue_uid="q2"))
    await store.save(make_transaction(address=CAROL, queue_uid="q3", hash="0xc0ffee"))
    mock_queue.status_errors["q1"] = ConnectionError("backend down")
    mock_queue.finish("q2", "0xb0b")
    mock_chain.receipt_errors["0xc0ffee"] = RuntimeError("rpc glitch")

    report = await reconciler.tick()

    assert report.errors == 2
    assert report.advanced == 1
    assert (await store.get("devcon-drop", ALICE)).hash is None
    assert (await store.get("devcon-drop", BOB)).hash == "0xb0b"

    # Retried on the next tick
    del mock_queue.status_errors["q1"]
    mock_queue.finish("q1", "0xa11ce")
    await reconciler.tick()
    assert (await store.get("devcon-drop", ALICE)).hash == "0xa11ce"


async def test_slow_call_times_out_and_is_retried(reconciler, store, mock_chain):
    await store.save(make_transaction(queue_uid="q1", hash="0xdead"))
    mock_chain.mine("0xdead")
    mock_chain.receipt_delay = 1.0  # request_timeout is 0.2

    report = await reconciler.tick()
    assert report.errors == 1
    assert (await store.get("devcon-drop", ALICE)).status == TxStatus.PENDING

    mock_chain.receipt_delay = 0.0
    await reconciler.tick()
    assert (await store.get("devcon-drop", ALICE)).status == TxStatus.PASSED


async def test_transactions_are_polled_concurrently(reconciler, store, mock_queue):
    for i, address in enumerate((ALICE, BOB, CAROL)):
        await store.save(make_transaction(address=address, queue_uid=f"q{i}"))
    mock_queue.status_delay = 0.1

    report = await reconciler.tick()

    assert report.checked == 3
    assert report.errors == 0
    # Three sequential calls would need 300ms
    assert report.duration_ms < 250


# ── No regression ─────────────────────────────────────────────────


async def test_stale_result_does_not_overwrite_terminal_state(reconciler, store, mock_queue):
    """A poll that started before the claim failed must not resurrect it."""
    stale = make_transaction(queue_uid="q1")
    await store.save(stale)
    mock_queue.finish("q1", "0xdead")
    mock_queue.status_delay = 0.05

    async def fail_meanwhile():
        await asyncio.sleep(0.01)
        await store.save(stale.with_status(TxStatus.FAILED, "0xbad"))

    await asyncio.gather(reconciler.tick(), fail_meanwhile())

    tx = await store.get("devcon-drop", ALICE)
    assert tx.status == TxStatus.FAILED
    assert tx.hash == "0xbad"


async def test_resubmitted_claim_drops_old_result(reconciler, store, mock_queue):
    await store.save(make_transaction(queue_uid="q1"))
    mock_queue.finish("q1", "0xdead")
    mock_queue.status_delay = 0.05

    async def resubmit():
        await asyncio.sleep(0.01)
        await store.save(make_transaction(queue_uid="q2"))

    await asyncio.gather(reconciler.tick(), resubmit())

    tx = await store.get("devcon-drop", ALICE)
    assert tx.queue_uid == "q2"
    assert tx.hash is None


# ── Lifecycle ─────────────────────────────────────────────────────


async def test_loop_picks_up_transactions_added_while_running(reconciler, store, mock_queue):
    await reconciler.start()
    assert reconciler.running
    try:
        await asyncio.sleep(0.03)
        mock_queue.finish("q1", "0xdead")
        await store.save(make_transaction(queue_uid="q1"))
        for _ in range(50):
            if (await store.get("devcon-drop", ALICE)).hash:
                break
            await asyncio.sleep(0.01)
    finally:
        await reconciler.stop()

    assert (await store.get("devcon-drop", ALICE)).hash == "0xdead"
    assert not reconciler.running


async def test_loop_keeps_running_after_everything_settles(reconciler, store, mock_queue):
    await store.save(make_transaction(queue_uid="q1", status=TxStatus.PASSED, hash="0x1"))
    await reconciler.start()
    await asyncio.sleep(0.05)
    assert reconciler.running
    await reconciler.stop()


async def test_results_after_stop_are_discarded(store, mock_queue, mock_chain):
    loop = ReconciliationLoop(
        store=store, queue=mock_queue, chain=mock_chain,
        event_key="devcon-drop", poll_interval=0.01, request_timeout=1.0,
    )
    await store.save(make_transaction(queue_uid="q1"))
    mock_queue.finish("q1", "0xdead")
    mock_queue.status_delay = 0.1

    await loop.start()
    await asyncio.sleep(0.02)
    await loop.stop()
    await asyncio.sleep(0.15)

    assert (await store.get("devcon-drop", ALICE)).hash is None


async def test_manual_tick_after_stop_still_applies(reconciler, store, mock_queue):
    await reconciler.start()
    await reconciler.stop()
    await store.save(make_transaction(queue_uid="q1"))
    mock_queue.finish("q1", "0xdead")

    report = await reconciler.tick()

    assert report.advanced == 1
    assert (await store.get("devcon-drop", ALICE)).hash == "0xdead"


async def test_stop_during_manual_tick_drops_its_results(reconciler, store, mock_queue):
    await store.save(make_transaction(queue_uid="q1"))
    mock_queue.finish("q1", "0xdead")
    mock_queue.status_delay = 0.05

    pending = asyncio.create_task(reconciler.tick())
    await asyncio.sleep(0.01)
    await reconciler.stop()
    report = await pending

    assert report.unchanged == 1
    assert (await store.get("devcon-drop", ALICE)).hash is None


async def test_on_tick_hook_runs_after_each_tick(store, mock_queue, mock_chain):
    reports = []

    async def on_tick(report):
        reports.append(report)

    loop = ReconciliationLoop(
        store=store, queue=mock_queue, chain=mock_chain,
        event_key="devcon-drop", on_tick=on_tick,
    )
    await loop.tick()
    await loop.tick()

    assert len(reports) == 2
