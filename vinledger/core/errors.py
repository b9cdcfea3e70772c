"""Ledger error types.

Transport-level errors (`LedgerRevert`, `LedgerTransportError`) are raised by a
ledger transport. `LedgerClient` turns them into the caller-facing kinds:
`LocalValidationError`, `DispatchError`, `ConfirmationError` and `ReadError`.
"""
from typing import Optional


class LedgerError(Exception):
    """Base for everything raised by the ledger layer."""


class LedgerTransportError(LedgerError):
    """Could not talk to the ledger node (connection, timeout, RPC error)."""


class LedgerRevert(LedgerError):
    """The ledger executed the call and rejected it."""


class LocalValidationError(LedgerError):
    """Input failed a client-side precondition; nothing was sent."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class DispatchError(LedgerError):
    """The mutation was rejected before finality tracking began."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConfirmationError(LedgerError):
    """The mutation was sent but did not finalize (revert, drop, timeout)."""

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash
        self.cause = cause


class ReadError(LedgerError):
    """A view call failed or returned data that could not be decoded."""


class OperationInFlightError(LedgerError):
    """An exclusive submission found another operation still in flight."""

    def __init__(self, status) -> None:
        super().__init__(f"operation {status.state.value} (tx={status.tx_hash})")
        self.status = status
