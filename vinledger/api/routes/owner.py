"""Change the ledger's administrative owner."""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from vinledger.api.routes.operation import run_submission
from vinledger.api.state import AppState, get_state

router = APIRouter()


class ChangeOwnerBody(BaseModel):
    new_owner: str


@router.post("/", status_code=202)
def change_owner(body: ChangeOwnerBody, state: AppState = Depends(get_state)):
    """Submit changeOwner; poll /api/operation for confirmation."""
    return run_submission(state, lambda: state.tracker.submit_change_owner(body.new_owner, exclusive=True))
