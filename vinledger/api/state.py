"""Shared application state (injected into routes)."""
from typing import Optional

from vinledger.core.ledger_client import LedgerClient
from vinledger.core.ledger_transport import LedgerTransport, Web3LedgerTransport
from vinledger.core.operation_tracker import OperationTracker
from vinledger.core.read_cache import ReadCache


class AppState:
    def __init__(self, transport: Optional[LedgerTransport] = None) -> None:
        self._transport = transport
        self._client: Optional[LedgerClient] = None
        self._cache: Optional[ReadCache] = None
        self._tracker: Optional[OperationTracker] = None

    @property
    def client(self) -> LedgerClient:
        if self._client is None:
            if self._transport is None:
                self._transport = Web3LedgerTransport()
            self._client = LedgerClient(self._transport)
        return self._client

    @property
    def cache(self) -> ReadCache:
        if self._cache is None:
            self._cache = ReadCache(self.client)
        return self._cache

    @property
    def tracker(self) -> OperationTracker:
        if self._tracker is None:
            self._tracker = OperationTracker(self.client, self.cache)
        return self._tracker


_state = AppState()


def get_state() -> AppState:
    return _state
