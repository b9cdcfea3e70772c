"""Core services: ledger client, read cache, operation tracker."""
from vinledger.core.ledger_client import LedgerClient
from vinledger.core.operation_tracker import OperationTracker
from vinledger.core.read_cache import ReadCache

__all__ = ["LedgerClient", "OperationTracker", "ReadCache"]
