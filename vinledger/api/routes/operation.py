"""Current operation status, clearing it, and the shared submit path used by mutation routes."""
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException

from vinledger.api.state import AppState, get_state
from vinledger.core.errors import LocalValidationError, OperationInFlightError
from vinledger.models.operation import FailureKind, OperationState, OperationStatus

router = APIRouter()


def status_to_dict(status: OperationStatus, state: AppState) -> dict:
    return {
        "state": status.state.value,
        "kind": status.kind.value if status.kind else None,
        "tx_hash": status.tx_hash,
        "block_number": status.block_number,
        "failure": (
            {"kind": status.failure.kind.value, "message": status.failure.message}
            if status.failure
            else None
        ),
        "is_loading": status.in_flight or state.cache.summary().is_loading,
    }


def run_submission(state: AppState, submit: Callable[[], OperationStatus]) -> dict:
    """Submit one mutation through the tracker and map its outcome to an HTTP response.

    `submit` must call the tracker with `exclusive=True`; the tracker refuses it
    while another operation is in flight and that becomes a 409.
    """
    try:
        status = submit()
    except OperationInFlightError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "error": "operation_in_flight",
                "operation": status_to_dict(e.status, state),
            },
        )
    except LocalValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": "local_validation", "field": e.field, "message": e.message},
        )
    if (
        status.state == OperationState.FAILED
        and status.failure is not None
        and status.failure.kind == FailureKind.DISPATCH
    ):
        raise HTTPException(
            status_code=502,
            detail={
                "error": "dispatch",
                "message": status.failure.message,
                "operation": status_to_dict(status, state),
            },
        )
    return status_to_dict(status, state)


@router.get("/operation")
def get_operation(state: AppState = Depends(get_state)):
    """Return the status of the current (or last settled) operation."""
    return status_to_dict(state.tracker.status, state)


@router.post("/operation/clear")
def clear_operation(state: AppState = Depends(get_state)):
    """Return to idle. An in-flight transaction is no longer observed but still lands on the ledger."""
    return status_to_dict(state.tracker.clear(), state)
