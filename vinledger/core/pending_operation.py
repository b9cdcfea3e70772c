"""Handle for one dispatched transaction while its receipt is awaited."""
import logging
import threading
from typing import Callable, List, Optional

from vinledger.core.errors import ConfirmationError, LedgerTransportError
from vinledger.models.operation import OperationKind, TransactionReceipt

logger = logging.getLogger(__name__)

Callback = Callable[["PendingOperation"], None]


class PendingOperation:
    """Resolves exactly once, to a receipt or a ConfirmationError.

    The receipt is awaited on a daemon thread started by `start()`. Subscribers
    registered before resolution run on that thread; subscribers registered
    afterwards run immediately on the caller's thread. Stopping observation
    does not cancel the transaction, which is already on the ledger.
    """

    def __init__(
        self,
        kind: OperationKind,
        tx_hash: str,
        wait_receipt: Callable[[str], TransactionReceipt],
    ) -> None:
        self.kind = kind
        self.tx_hash = tx_hash
        self._wait_receipt = wait_receipt
        self._lock = threading.Lock()
        self._resolved = False
        self._done = threading.Event()
        self._receipt: Optional[TransactionReceipt] = None
        self._error: Optional[ConfirmationError] = None
        self._callbacks: List[Callback] = []
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start waiting for the receipt in the background. Idempotent."""
        with self._lock:
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._watch,
                name=f"receipt-{self.tx_hash[:10]}",
                daemon=True,
            )
        self._thread.start()

    def _watch(self) -> None:
        receipt: Optional[TransactionReceipt] = None
        error: Optional[ConfirmationError] = None
        try:
            receipt = self._wait_receipt(self.tx_hash)
        except LedgerTransportError as e:
            error = ConfirmationError(str(e), tx_hash=self.tx_hash, cause=e)
        except Exception as e:
            logger.exception("Receipt wait for %s crashed", self.tx_hash)
            error = ConfirmationError(f"receipt wait failed: {e}", tx_hash=self.tx_hash, cause=e)
        else:
            if not receipt.succeeded:
                error = ConfirmationError(
                    f"transaction reverted in block {receipt.block_number}",
                    tx_hash=self.tx_hash,
                )
        self._resolve(receipt, error)

    def _resolve(
        self,
        receipt: Optional[TransactionReceipt],
        error: Optional[ConfirmationError],
    ) -> None:
        with self._lock:
            self._receipt = receipt
            self._error = error
            self._resolved = True
            callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            self._run(cb)
        self._done.set()

    def _run(self, cb: Callback) -> None:
        try:
            cb(self)
        except Exception:
            logger.exception("Pending operation %s: subscriber failed", self.tx_hash)

    def subscribe(self, callback: Callback) -> None:
        """Call `callback(self)` once the operation reaches a terminal state."""
        with self._lock:
            if not self._resolved:
                self._callbacks.append(callback)
                return
        self._run(callback)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def receipt(self) -> Optional[TransactionReceipt]:
        return self._receipt

    @property
    def error(self) -> Optional[ConfirmationError]:
        return self._error

    def wait(self, timeout: Optional[float] = None) -> TransactionReceipt:
        """Block until resolved and subscribers have run.

        Raises ConfirmationError on failure, TimeoutError if still pending.
        """
        if not self._done.wait(timeout):
            raise TimeoutError(f"transaction {self.tx_hash} still pending")
        if self._error is not None:
            raise self._error
        receipt = self._receipt
        if receipt is None:
            raise ConfirmationError(f"transaction {self.tx_hash} resolved without a receipt", tx_hash=self.tx_hash)
        return receipt
