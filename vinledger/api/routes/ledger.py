"""Ledger summary: records count and administrative owner."""
from fastapi import APIRouter, Depends

from vinledger.api.state import AppState, get_state

router = APIRouter()


def _summary_to_dict(state: AppState) -> dict:
    summary = state.cache.summary()
    return {
        "records_count": summary.records_count,
        "owner": summary.owner,
        "loaded": summary.loaded,
        "is_loading": summary.is_loading or state.tracker.busy,
        "account": state.client.account,
        "errors": state.cache.read_errors(),
    }


@router.get("/summary")
def get_summary(state: AppState = Depends(get_state)):
    """Return cached records count and owner (no ledger read)."""
    return _summary_to_dict(state)


@router.post("/refresh")
def refresh_summary(state: AppState = Depends(get_state)):
    """Re-read records count and owner from the ledger."""
    state.cache.refresh()
    return _summary_to_dict(state)
