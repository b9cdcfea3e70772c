"""Lifecycle of the one mutating ledger operation the UI has in flight."""
import logging
import threading
from typing import Callable, List, Optional

from vinledger.core.errors import DispatchError, OperationInFlightError
from vinledger.core.ledger_client import LedgerClient, PreparedCall
from vinledger.core.pending_operation import PendingOperation
from vinledger.core.read_cache import ReadCache
from vinledger.models.operation import (
    IDLE_STATUS,
    FailureKind,
    FailureReason,
    OperationState,
    OperationStatus,
)

logger = logging.getLogger(__name__)

Listener = Callable[[OperationStatus], None]


class OperationTracker:
    """Idle -> Submitting -> AwaitingConfirmation -> Confirmed | Failed.

    Input errors raise LocalValidationError before the state moves. A dispatch
    failure and a confirmation failure both end in Failed, each with its own
    FailureKind. Reaching Confirmed re-reads the cache summary once, before
    Confirmed is published, so observers of Confirmed see post-mutation data.

    The tracker does not queue. A submission with `exclusive=True` raises
    OperationInFlightError while `busy`; without it the caller must check.
    A settled operation is replaced by the next submission or by `clear()`.
    """

    def __init__(self, client: LedgerClient, cache: ReadCache) -> None:
        self._client = client
        self._cache = cache
        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)
        self._status: OperationStatus = IDLE_STATUS
        self._generation = 0
        self._pending: Optional[PendingOperation] = None
        self._listeners: List[Listener] = []

    @property
    def status(self) -> OperationStatus:
        with self._lock:
            return self._status

    @property
    def busy(self) -> bool:
        return self.status.in_flight

    @property
    def pending(self) -> Optional[PendingOperation]:
        """Handle of the last dispatched transaction, observed or not."""
        with self._lock:
            return self._pending

    def add_listener(self, listener: Listener) -> None:
        """Call `listener(status)` on every transition.

        Listeners run on the thread that caused the transition, under the
        tracker lock, before `wait_until_settled` callers wake. Keep them short.
        """
        with self._lock:
            self._listeners.append(listener)

    def _set(self, status: OperationStatus, generation: int) -> bool:
        """Publish `status` if `generation` is still the observed operation."""
        with self._changed:
            if generation != self._generation:
                return False
            previous = self._status.state
            self._status = status
            logger.info(
                "Operation %s: %s -> %s",
                status.kind.value if status.kind else "-",
                previous.value,
                status.state.value,
            )
            for listener in self._listeners:
                try:
                    listener(status)
                except Exception:
                    logger.exception("Operation listener failed")
            self._changed.notify_all()
        return True

    def _begin(self, call: PreparedCall, exclusive: bool) -> int:
        """Move to Submitting and return the new generation.

        With `exclusive`, the in-flight check and the move happen under one
        lock hold, so two callers cannot both pass the check.
        """
        with self._lock:
            if exclusive and self._status.in_flight:
                raise OperationInFlightError(self._status)
            self._generation += 1
            generation = self._generation
            self._set(OperationStatus(state=OperationState.SUBMITTING, kind=call.kind), generation)
        return generation

    def _submit(self, call: PreparedCall, exclusive: bool = False) -> OperationStatus:
        generation = self._begin(call, exclusive)
        try:
            pending = self._client.dispatch(call)
        except DispatchError as e:
            self._set(
                OperationStatus(
                    state=OperationState.FAILED,
                    kind=call.kind,
                    failure=FailureReason(FailureKind.DISPATCH, str(e)),
                ),
                generation,
            )
            return self.status
        with self._lock:
            self._pending = pending
        self._set(
            OperationStatus(
                state=OperationState.AWAITING_CONFIRMATION,
                kind=call.kind,
                tx_hash=pending.tx_hash,
            ),
            generation,
        )
        pending.subscribe(lambda p: self._on_settled(p, generation))
        return self.status

    def _on_settled(self, pending: PendingOperation, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.info("Operation tx=%s settled after it was cleared; ignoring", pending.tx_hash)
                return
        if pending.error is not None:
            logger.warning("Operation tx=%s did not confirm: %s", pending.tx_hash, pending.error)
            self._set(
                OperationStatus(
                    state=OperationState.FAILED,
                    kind=pending.kind,
                    tx_hash=pending.tx_hash,
                    failure=FailureReason(FailureKind.CONFIRMATION, str(pending.error)),
                ),
                generation,
            )
            return
        try:
            self._cache.invalidate()
        except Exception:
            # the transaction is final either way; the cache keeps what it had
            logger.exception("Operation tx=%s confirmed but the cache re-read crashed", pending.tx_hash)
        self._set(
            OperationStatus(
                state=OperationState.CONFIRMED,
                kind=pending.kind,
                tx_hash=pending.tx_hash,
                block_number=pending.receipt.block_number if pending.receipt else None,
            ),
            generation,
        )

    def submit_add_record(
        self,
        vin: str,
        make: str,
        model: str,
        year: int,
        owner_name: str = "",
        exclusive: bool = False,
    ) -> OperationStatus:
        return self._submit(self._client.prepare_add_record(vin, make, model, year, owner_name), exclusive)

    def submit_mark_serviced(self, index: int, exclusive: bool = False) -> OperationStatus:
        return self._submit(self._client.prepare_mark_serviced(index), exclusive)

    def submit_remove_record(self, index: int, exclusive: bool = False) -> OperationStatus:
        return self._submit(self._client.prepare_remove_record(index), exclusive)

    def submit_change_owner(self, new_owner: str, exclusive: bool = False) -> OperationStatus:
        return self._submit(self._client.prepare_change_owner(new_owner), exclusive)

    def clear(self) -> OperationStatus:
        """Return to Idle. If an operation is still in flight, stop observing it (it is not cancelled)."""
        with self._lock:
            if self._status.in_flight:
                logger.info("Operation tx=%s: no longer observed", self._status.tx_hash)
            self._generation += 1
            generation = self._generation
        self._set(IDLE_STATUS, generation)
        return self.status

    def wait_until_settled(self, timeout: Optional[float] = None) -> OperationStatus:
        """Block until nothing is in flight (or `timeout`); returns the status at that point."""
        with self._changed:
            self._changed.wait_for(lambda: not self._status.in_flight, timeout)
            return self._status
