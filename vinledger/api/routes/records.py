"""Vehicle records: lookup by VIN or index, and the add / serviced / remove mutations."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from vinledger.api.routes.operation import run_submission
from vinledger.api.state import AppState, get_state
from vinledger.core.errors import LocalValidationError, ReadError
from vinledger.models.record import LookupResult, NotFound, Record

router = APIRouter()


class AddRecordBody(BaseModel):
    vin: str
    make: str
    model: str
    year: int
    current_owner_name: Optional[str] = ""


def _record_to_dict(r: Record) -> dict:
    return {
        "index": r.index,
        "vin": r.vin,
        "make": r.make,
        "model": r.model,
        "year": r.year,
        "current_owner_name": r.current_owner_name,
        "created_at": r.created_at,
        "serviced": r.serviced,
    }


def _lookup_to_dict(result: LookupResult) -> dict:
    return {
        "status": result.status.value,
        "vin": result.vin,
        "record": _record_to_dict(result.record) if result.record else None,
        "error": result.error,
    }


@router.get("/lookup")
def lookup_by_vin(
    vin: str = "",
    refresh: bool = False,
    state: AppState = Depends(get_state),
):
    """Look up a record by VIN; empty VIN clears.

    The same VIN returns the cached answer unless refresh=true. A confirmed
    mutation re-reads only the summary, not this lookup, so after e.g.
    markServiced pass refresh=true to see the new record state.
    """
    return _lookup_to_dict(state.cache.set_search_key(vin, force=refresh))


@router.get("/{index}")
def get_record(index: int, state: AppState = Depends(get_state)):
    """Read one record by ledger index."""
    try:
        record = state.client.read_record_by_index(index)
    except LocalValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": "local_validation", "field": e.field, "message": e.message},
        )
    except ReadError as e:
        raise HTTPException(status_code=502, detail={"error": "read", "message": str(e)})
    if record is NotFound:
        raise HTTPException(status_code=404, detail="Record not found")
    return _record_to_dict(record)


@router.post("/", status_code=202)
def add_record(body: AddRecordBody, state: AppState = Depends(get_state)):
    """Submit addRecord; poll /api/operation for confirmation."""
    return run_submission(
        state,
        lambda: state.tracker.submit_add_record(
            body.vin, body.make, body.model, body.year, body.current_owner_name or "",
            exclusive=True,
        ),
    )


@router.post("/{index}/serviced", status_code=202)
def mark_serviced(index: int, state: AppState = Depends(get_state)):
    """Submit markServiced for the record at `index`."""
    return run_submission(state, lambda: state.tracker.submit_mark_serviced(index, exclusive=True))


@router.delete("/{index}", status_code=202)
def remove_record(index: int, state: AppState = Depends(get_state)):
    """Submit removeRecord for the record at `index`. Later indices may shift; re-read before reusing one."""
    return run_submission(state, lambda: state.tracker.submit_remove_record(index, exclusive=True))
