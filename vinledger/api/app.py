"""FastAPI app, CORS, and route registration."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(name)s: %(message)s",
)

from vinledger.api.state import AppState, get_state

# Import routes after state to avoid circular imports
from vinledger.api.routes import ledger, operation, owner, records

__all__ = ["app", "create_app", "AppState", "get_state"]

logger = logging.getLogger(__name__)


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """Build the API. `state` replaces the process-wide AppState (tests pass one with a fake transport)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        current = state or get_state()
        summary = current.cache.refresh()
        logger.info(
            "Initial ledger read: records=%s owner=%s loaded=%s",
            summary.records_count,
            summary.owner,
            summary.loaded,
        )
        yield
        status = current.tracker.status
        if status.in_flight:
            logger.warning("Shutting down with tx=%s still %s", status.tx_hash, status.state.value)

    app = FastAPI(
        title="VIN Ledger API",
        description="Submit and track vehicle record operations against the ledger contract",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if state is not None:
        app.dependency_overrides[get_state] = lambda: state

    app.include_router(ledger.router, prefix="/api/ledger", tags=["ledger"])
    app.include_router(records.router, prefix="/api/records", tags=["records"])
    app.include_router(owner.router, prefix="/api/owner", tags=["owner"])
    app.include_router(operation.router, prefix="/api", tags=["operation"])
    return app


app = create_app()
