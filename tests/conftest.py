from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Tuple

import pytest

from vinledger.core.errors import LedgerRevert, LedgerTransportError
from vinledger.core.ledger_client import LedgerClient
from vinledger.core.operation_tracker import OperationTracker
from vinledger.core.read_cache import ReadCache
from vinledger.models.operation import TransactionReceipt

OWNER = "0x5381ffb9843842376f19cb2e14857dae9e39e192"
NEW_OWNER = "0x00000000219ab540356cbb839cbe05303d7705fa"
SENDER = "0x71c7656ec7ab88b098defb751b7401b5f6d8976f"

SEED_RECORDS = [
    ("JH4KA7561PC008269", "Acura", "Legend", 1993, "Bob"),
    ("1FTFW1ET1DFC10312", "Ford", "F-150", 2013, ""),
    ("WBA3A5C51CF256651", "BMW", "328i", 2012, "Carol"),
]


class FakeLedger:
    """In-memory stand-in for the vehicle record contract behind a LedgerTransport.

    Transactions are applied when their receipt is awaited. Clear `hold` to keep
    them pending; set `reject_dispatch`, `fail_confirmation`, `revert_on_mine`
    or `fail_reads` to script failures.
    """

    def __init__(self, owner: str = OWNER) -> None:
        self.owner = owner
        self.account: Optional[str] = SENDER
        self.records: List[Dict[str, Any]] = []
        self.calls: List[str] = []
        self.transactions: List[Tuple[str, tuple]] = []
        self.reject_dispatch: Optional[str] = None
        self.fail_confirmation: Optional[str] = None
        self.revert_on_mine = False
        self.fail_reads = False
        self.hold = threading.Event()
        self.hold.set()
        self.block = 100
        self.now = 1_700_000_000
        self._pending: Dict[str, Tuple[str, tuple]] = {}
        self._lock = threading.Lock()

    def seed(self, rows=SEED_RECORDS) -> "FakeLedger":
        for row in rows:
            self._apply("addRecord", row)
        return self

    def call_count(self, name: str) -> int:
        return self.calls.count(name)

    def call(self, function_name: str, *args: Any) -> Any:
        with self._lock:
            self.calls.append(function_name)
            if self.fail_reads:
                raise LedgerTransportError("connection refused")
            if function_name == "getRecordsCount":
                return len(self.records)
            if function_name == "owner":
                return self.owner
            if function_name == "getRecordByVIN":
                for i, r in enumerate(self.records):
                    if r["vin"] == args[0]:
                        return (i, r["make"], r["model"], r["year"], r["owner_name"], r["created_at"], r["serviced"])
                raise LedgerRevert("execution reverted: Record not found")
            if function_name == "getRecordByIndex":
                index = args[0]
                if index >= len(self.records):
                    raise LedgerRevert("execution reverted: Index out of bounds")
                r = self.records[index]
                return (r["vin"], r["make"], r["model"], r["year"], r["owner_name"], r["created_at"], r["serviced"])
        raise AssertionError(f"unexpected view call {function_name}")

    def transact(self, function_name: str, *args: Any) -> str:
        with self._lock:
            self.transactions.append((function_name, args))
            if self.reject_dispatch:
                raise LedgerTransportError(self.reject_dispatch)
            tx_hash = "0x%064x" % len(self.transactions)
            self._pending[tx_hash] = (function_name, args)
            return tx_hash

    def wait_for_receipt(self, tx_hash: str, timeout: float, poll_latency: float) -> TransactionReceipt:
        if not self.hold.wait(timeout):
            raise LedgerTransportError(f"no receipt for {tx_hash} after {timeout:.0f}s")
        with self._lock:
            if self.fail_confirmation:
                raise LedgerTransportError(self.fail_confirmation)
            function_name, args = self._pending.pop(tx_hash)
            self.block += 1
            if self.revert_on_mine or not self._apply(function_name, args):
                return TransactionReceipt(tx_hash=tx_hash, block_number=self.block, succeeded=False)
            return TransactionReceipt(tx_hash=tx_hash, block_number=self.block, succeeded=True)

    def _apply(self, function_name: str, args: tuple) -> bool:
        if function_name == "addRecord":
            vin, make, model, year, owner_name = args
            self.now += 12
            self.records.append(
                {
                    "vin": vin,
                    "make": make,
                    "model": model,
                    "year": year,
                    "owner_name": owner_name,
                    "created_at": self.now,
                    "serviced": False,
                }
            )
            return True
        if function_name in ("markServiced", "removeRecord"):
            index = args[0]
            if index >= len(self.records):
                return False
            if function_name == "markServiced":
                self.records[index]["serviced"] = True
            else:
                self.records.pop(index)
            return True
        if function_name == "changeOwner":
            self.owner = args[0]
            return True
        raise AssertionError(f"unexpected transaction {function_name}")


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger().seed()


@pytest.fixture
def client(ledger: FakeLedger) -> LedgerClient:
    return LedgerClient(ledger, confirmation_timeout=5.0, poll_latency=0.01)


@pytest.fixture
def cache(client: LedgerClient) -> ReadCache:
    return ReadCache(client)


@pytest.fixture
def tracker(client: LedgerClient, cache: ReadCache) -> OperationTracker:
    return OperationTracker(client, cache)
