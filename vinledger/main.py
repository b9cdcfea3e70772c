"""Run the vinledger HTTP API under uvicorn.

Logging is configured by `vinledger.api.app` on import. Set
VINLEDGER_API_RELOAD=1 for auto-reload during development.
"""
import logging

import uvicorn

from vinledger.api.app import app
from vinledger.config import API_HOST, API_PORT, API_RELOAD, CONTRACT_ADDRESS, RPC_URL

logger = logging.getLogger(__name__)


def main() -> None:
    logger.info("Ledger node %s, contract %s", RPC_URL, CONTRACT_ADDRESS)
    if API_RELOAD:
        # reload needs an import string so the worker can re-import the app
        uvicorn.run("vinledger.api.app:app", host=API_HOST, port=API_PORT, reload=True)
    else:
        uvicorn.run(app, host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
