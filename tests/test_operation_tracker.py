from __future__ import annotations

import threading
from typing import Any, List

import pytest
from web3 import Web3

from conftest import NEW_OWNER, FakeLedger
from vinledger.core.errors import LocalValidationError, OperationInFlightError
from vinledger.core.ledger_client import LedgerClient
from vinledger.core.operation_tracker import OperationTracker
from vinledger.core.read_cache import ReadCache
from vinledger.models.operation import (
    FailureKind,
    OperationKind,
    OperationState,
    OperationStatus,
)
from vinledger.models.record import LookupStatus


def _record_states(tracker: OperationTracker) -> List[OperationState]:
    states: List[OperationState] = [tracker.status.state]

    def _listener(status: OperationStatus) -> None:
        states.append(status.state)

    tracker.add_listener(_listener)
    return states


def test_starts_idle(tracker: OperationTracker) -> None:
    assert tracker.status.state == OperationState.IDLE
    assert tracker.busy is False
    assert tracker.pending is None


def test_add_record_scenario(tracker: OperationTracker, cache: ReadCache, client) -> None:
    cache.refresh()
    states = _record_states(tracker)

    tracker.submit_add_record("1HGCM82633A004352", "Honda", "Accord", 2003, "Alice")
    status = tracker.wait_until_settled(timeout=2)

    assert states == [
        OperationState.IDLE,
        OperationState.SUBMITTING,
        OperationState.AWAITING_CONFIRMATION,
        OperationState.CONFIRMED,
    ]
    assert status.kind == OperationKind.ADD_RECORD
    assert status.tx_hash is not None
    assert status.block_number is not None
    assert cache.summary().records_count == 4
    assert client.read_records_count() == 4


def test_confirmation_refreshes_count_and_owner_exactly_once(
    tracker: OperationTracker, cache: ReadCache, ledger: FakeLedger
) -> None:
    cache.refresh()
    before_count = ledger.call_count("getRecordsCount")
    before_owner = ledger.call_count("owner")

    tracker.submit_remove_record(0)
    assert tracker.wait_until_settled(timeout=2).state == OperationState.CONFIRMED

    assert ledger.call_count("getRecordsCount") - before_count == 1
    assert ledger.call_count("owner") - before_owner == 1
    assert cache.summary().records_count == 2


def test_mark_serviced_scenario(tracker: OperationTracker, cache: ReadCache) -> None:
    before = cache.set_search_key("WBA3A5C51CF256651")
    assert before.record.index == 2
    assert before.record.serviced is False

    tracker.submit_mark_serviced(2)
    assert tracker.wait_until_settled(timeout=2).state == OperationState.CONFIRMED

    after = cache.set_search_key("WBA3A5C51CF256651", force=True)
    assert after.status == LookupStatus.FOUND
    assert after.record.serviced is True


def test_change_owner_updates_cached_owner(tracker: OperationTracker, cache: ReadCache) -> None:
    cache.refresh()
    tracker.submit_change_owner(NEW_OWNER)
    tracker.wait_until_settled(timeout=2)
    assert cache.summary().owner == Web3.to_checksum_address(NEW_OWNER)


def test_local_validation_error_leaves_state_idle(tracker: OperationTracker, ledger: FakeLedger) -> None:
    states = _record_states(tracker)
    with pytest.raises(LocalValidationError):
        tracker.submit_remove_record(-1)
    assert tracker.status.state == OperationState.IDLE
    assert states == [OperationState.IDLE]
    assert ledger.transactions == []


def test_local_validation_error_does_not_touch_settled_operation(tracker: OperationTracker) -> None:
    tracker.submit_mark_serviced(0)
    confirmed = tracker.wait_until_settled(timeout=2)
    with pytest.raises(LocalValidationError):
        tracker.submit_add_record("VIN", "Make", "Model", 1800)
    assert tracker.status == confirmed


def test_dispatch_failure(tracker: OperationTracker, cache: ReadCache, ledger: FakeLedger) -> None:
    cache.refresh()
    reads = len(ledger.calls)
    ledger.reject_dispatch = "user rejected the request"
    states = _record_states(tracker)

    status = tracker.submit_add_record("1HGCM82633A004352", "Honda", "Accord", 2003)

    assert status.state == OperationState.FAILED
    assert status.failure.kind == FailureKind.DISPATCH
    assert "user rejected" in status.failure.message
    assert status.tx_hash is None
    assert states == [OperationState.IDLE, OperationState.SUBMITTING, OperationState.FAILED]
    assert len(ledger.calls) == reads


def test_confirmation_failure_leaves_cache_unchanged(
    tracker: OperationTracker, cache: ReadCache, ledger: FakeLedger
) -> None:
    summary = cache.refresh()
    reads = len(ledger.calls)
    ledger.fail_confirmation = "connection dropped while waiting for receipt"
    states = _record_states(tracker)

    tracker.submit_add_record("1HGCM82633A004352", "Honda", "Accord", 2003, "Alice")
    status = tracker.wait_until_settled(timeout=2)

    assert status.state == OperationState.FAILED
    assert status.failure.kind == FailureKind.CONFIRMATION
    assert status.tx_hash is not None
    assert states[-2:] == [OperationState.AWAITING_CONFIRMATION, OperationState.FAILED]
    assert cache.summary() == summary
    assert len(ledger.calls) == reads


def test_reverted_transaction_is_a_confirmation_failure(tracker: OperationTracker) -> None:
    tracker.submit_mark_serviced(50)
    status = tracker.wait_until_settled(timeout=2)
    assert status.state == OperationState.FAILED
    assert status.failure.kind == FailureKind.CONFIRMATION
    assert "reverted" in status.failure.message


def test_awaiting_confirmation_while_held(tracker: OperationTracker, ledger: FakeLedger) -> None:
    ledger.hold.clear()
    status = tracker.submit_mark_serviced(1)
    assert status.state == OperationState.AWAITING_CONFIRMATION
    assert tracker.busy is True
    assert tracker.wait_until_settled(timeout=0.05).state == OperationState.AWAITING_CONFIRMATION

    ledger.hold.set()
    assert tracker.wait_until_settled(timeout=2).state == OperationState.CONFIRMED
    assert tracker.busy is False


def test_next_submission_replaces_settled_operation(tracker: OperationTracker, ledger: FakeLedger) -> None:
    ledger.fail_confirmation = "dropped"
    tracker.submit_mark_serviced(0)
    assert tracker.wait_until_settled(timeout=2).state == OperationState.FAILED

    ledger.fail_confirmation = None
    states = _record_states(tracker)
    tracker.submit_mark_serviced(1)
    status = tracker.wait_until_settled(timeout=2)
    assert status.state == OperationState.CONFIRMED
    assert status.failure is None
    assert states[1] == OperationState.SUBMITTING


def test_clear_returns_settled_operation_to_idle(tracker: OperationTracker) -> None:
    tracker.submit_mark_serviced(0)
    tracker.wait_until_settled(timeout=2)
    assert tracker.clear().state == OperationState.IDLE


def test_clear_in_flight_stops_observing(
    tracker: OperationTracker, cache: ReadCache, ledger: FakeLedger
) -> None:
    cache.refresh()
    ledger.hold.clear()
    tracker.submit_add_record("1HGCM82633A004352", "Honda", "Accord", 2003)
    pending = tracker.pending
    reads = len(ledger.calls)

    assert tracker.clear().state == OperationState.IDLE
    ledger.hold.set()
    pending.wait(timeout=2)

    # the transaction still landed, but the cleared tracker neither moved nor refreshed
    assert len(ledger.records) == 4
    assert tracker.status.state == OperationState.IDLE
    assert len(ledger.calls) == reads


class _OwnerCrashesAfterMining(FakeLedger):
    """owner() raises a non-read error once any transaction has been mined."""

    def call(self, function_name: str, *args: Any) -> Any:
        if function_name == "owner" and self.block > 100:
            raise RuntimeError("owner decoder crashed")
        return super().call(function_name, *args)


def test_crash_in_post_confirmation_reread_still_confirms() -> None:
    ledger = _OwnerCrashesAfterMining().seed()
    client = LedgerClient(ledger, confirmation_timeout=5.0, poll_latency=0.01)
    cache = ReadCache(client)
    tracker = OperationTracker(client, cache)
    cache.refresh()

    tracker.submit_mark_serviced(0)
    status = tracker.wait_until_settled(timeout=1)

    assert status.state == OperationState.CONFIRMED
    assert tracker.busy is False
    assert cache.summary().is_loading is False
    # the next submission is accepted
    assert tracker.submit_mark_serviced(1, exclusive=True).state != OperationState.FAILED
    assert tracker.wait_until_settled(timeout=1).state == OperationState.CONFIRMED


def test_failed_reread_after_confirmation_keeps_stale_values(
    tracker: OperationTracker, cache: ReadCache, ledger: FakeLedger
) -> None:
    cache.refresh()
    ledger.hold.clear()
    tracker.submit_add_record("1HGCM82633A004352", "Honda", "Accord", 2003, "Alice")
    ledger.fail_reads = True
    ledger.hold.set()

    status = tracker.wait_until_settled(timeout=2)

    assert status.state == OperationState.CONFIRMED
    assert status.failure is None
    assert len(ledger.records) == 4
    summary = cache.summary()
    assert summary.records_count == 3
    assert summary.loaded is True
    assert set(cache.read_errors()) == {"records_count", "owner"}


def test_exclusive_submission_refused_while_in_flight(tracker: OperationTracker, ledger: FakeLedger) -> None:
    ledger.hold.clear()
    first = tracker.submit_mark_serviced(0, exclusive=True)
    assert first.state == OperationState.AWAITING_CONFIRMATION

    with pytest.raises(OperationInFlightError) as exc:
        tracker.submit_remove_record(1, exclusive=True)
    assert exc.value.status.tx_hash == first.tx_hash
    assert tracker.status == first
    assert ledger.transactions == [("markServiced", (0,))]

    ledger.hold.set()
    assert tracker.wait_until_settled(timeout=2).state == OperationState.CONFIRMED
    assert tracker.submit_remove_record(1, exclusive=True).state != OperationState.FAILED


def test_concurrent_exclusive_submissions_dispatch_once(tracker: OperationTracker, ledger: FakeLedger) -> None:
    ledger.hold.clear()
    start = threading.Barrier(6)
    refused: List[int] = []
    lock = threading.Lock()

    def _submit(index: int) -> None:
        start.wait()
        try:
            tracker.submit_mark_serviced(index % 3, exclusive=True)
        except OperationInFlightError:
            with lock:
                refused.append(index)

    threads = [threading.Thread(target=_submit, args=(i,)) for i in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(2)

    assert len(ledger.transactions) == 1
    assert len(refused) == 5

    ledger.hold.set()
    assert tracker.wait_until_settled(timeout=2).state == OperationState.CONFIRMED
