"""Typed calls to the vehicle record contract: input checks, request formatting, response decoding."""
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from web3 import Web3

from vinledger.config import (
    CONFIRMATION_TIMEOUT_SEC,
    MAX_RECORD_YEAR,
    MIN_RECORD_YEAR,
    RECEIPT_POLL_SEC,
)
from vinledger.core.errors import (
    DispatchError,
    LedgerRevert,
    LedgerTransportError,
    LocalValidationError,
    ReadError,
)
from vinledger.core.ledger_transport import LedgerTransport
from vinledger.core.pending_operation import PendingOperation
from vinledger.models.operation import OperationKind, TransactionReceipt
from vinledger.models.record import NotFound, NotFoundType, Record

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

RecordOrNotFound = Union[Record, NotFoundType]


@dataclass(frozen=True)
class PreparedCall:
    """A validated, encoded mutation that has not been sent yet."""
    kind: OperationKind
    function_name: str
    args: Tuple[Any, ...]


def _require_text(field: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise LocalValidationError(field, "must not be empty")
    return value.strip()


def _require_index(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise LocalValidationError("index", "must be an integer")
    if value < 0:
        raise LocalValidationError("index", "must be >= 0")
    return value


def _require_year(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise LocalValidationError("year", "must be an integer")
    if value < MIN_RECORD_YEAR:
        raise LocalValidationError("year", f"must be >= {MIN_RECORD_YEAR}")
    if value > MAX_RECORD_YEAR:
        raise LocalValidationError("year", f"must be <= {MAX_RECORD_YEAR}")
    return value


def _require_address(field: str, value: Any) -> str:
    text = _require_text(field, value)
    if not Web3.is_address(text):
        raise LocalValidationError(field, "not a valid address")
    checksummed = Web3.to_checksum_address(text)
    if checksummed == ZERO_ADDRESS:
        raise LocalValidationError(field, "must not be the zero address")
    return checksummed


def _uint(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{what} is not an unsigned integer: {value!r}")
    return value


def _decode_record(index: Any, vin: Any, fields: Any) -> Record:
    """Build a Record from (make, model, year, ownerName, createdAt, serviced)."""
    make, model, year, owner_name, created_at, serviced = fields
    if not all(isinstance(s, str) for s in (vin, make, model, owner_name)):
        raise ValueError("string field has wrong type")
    if not isinstance(serviced, bool):
        raise ValueError(f"serviced is not a bool: {serviced!r}")
    return Record(
        index=_uint(index, "index"),
        vin=vin,
        make=make,
        model=model,
        year=_uint(year, "year"),
        current_owner_name=owner_name,
        created_at=_uint(created_at, "createdAt"),
        serviced=serviced,
    )


class LedgerClient:
    """Stateless facade over a LedgerTransport.

    Reads return decoded values or raise ReadError. Mutations are split into
    `prepare_*` (local checks only, raises LocalValidationError) and `dispatch`
    (one state-changing call, raises DispatchError); `submit_*` does both.
    Nothing is retried.
    """

    def __init__(
        self,
        transport: LedgerTransport,
        confirmation_timeout: float = CONFIRMATION_TIMEOUT_SEC,
        poll_latency: float = RECEIPT_POLL_SEC,
    ) -> None:
        self._transport = transport
        self._confirmation_timeout = confirmation_timeout
        self._poll_latency = poll_latency

    @property
    def account(self) -> Optional[str]:
        return self._transport.account

    # Reads

    def _read(self, function_name: str, *args: Any) -> Any:
        try:
            return self._transport.call(function_name, *args)
        except (LedgerTransportError, LedgerRevert) as e:
            raise ReadError(f"{function_name}: {e}") from e

    def read_records_count(self) -> int:
        raw = self._read("getRecordsCount")
        try:
            return _uint(raw, "getRecordsCount")
        except ValueError as e:
            raise ReadError(str(e)) from e

    def read_owner(self) -> Optional[str]:
        """Administrative owner, or None when the ledger reports no owner."""
        raw = self._read("owner")
        if not isinstance(raw, str) or not Web3.is_address(raw):
            raise ReadError(f"owner: malformed address {raw!r}")
        owner = Web3.to_checksum_address(raw)
        return None if owner == ZERO_ADDRESS else owner

    def read_record_by_vin(self, vin: str) -> RecordOrNotFound:
        """Record for `vin`, or NotFound when the ledger has none (it reverts the lookup)."""
        vin = _require_text("vin", vin)
        try:
            raw = self._transport.call("getRecordByVIN", vin)
        except LedgerRevert:
            return NotFound
        except LedgerTransportError as e:
            raise ReadError(f"getRecordByVIN: {e}") from e
        try:
            return _decode_record(raw[0], vin, raw[1:])
        except (TypeError, ValueError, IndexError) as e:
            raise ReadError(f"getRecordByVIN: malformed response: {e}") from e

    def read_record_by_index(self, index: int) -> RecordOrNotFound:
        index = _require_index(index)
        try:
            raw = self._transport.call("getRecordByIndex", index)
        except LedgerRevert:
            return NotFound
        except LedgerTransportError as e:
            raise ReadError(f"getRecordByIndex: {e}") from e
        try:
            return _decode_record(index, raw[0], raw[1:])
        except (TypeError, ValueError, IndexError) as e:
            raise ReadError(f"getRecordByIndex: malformed response: {e}") from e

    # Mutations

    def prepare_add_record(
        self,
        vin: str,
        make: str,
        model: str,
        year: int,
        owner_name: str = "",
    ) -> PreparedCall:
        vin = _require_text("vin", vin)
        make = _require_text("make", make)
        model = _require_text("model", model)
        year = _require_year(year)
        if owner_name is None:
            owner_name = ""
        if not isinstance(owner_name, str):
            raise LocalValidationError("owner_name", "must be a string")
        return PreparedCall(
            OperationKind.ADD_RECORD,
            "addRecord",
            (vin, make, model, year, owner_name.strip()),
        )

    def prepare_mark_serviced(self, index: int) -> PreparedCall:
        return PreparedCall(OperationKind.MARK_SERVICED, "markServiced", (_require_index(index),))

    def prepare_remove_record(self, index: int) -> PreparedCall:
        return PreparedCall(OperationKind.REMOVE_RECORD, "removeRecord", (_require_index(index),))

    def prepare_change_owner(self, new_owner: str) -> PreparedCall:
        address = _require_address("new_owner", new_owner)
        return PreparedCall(OperationKind.CHANGE_OWNER, "changeOwner", (address,))

    def dispatch(self, call: PreparedCall) -> PendingOperation:
        """Send one prepared mutation and start watching for its receipt."""
        try:
            tx_hash = self._transport.transact(call.function_name, *call.args)
        except (LedgerTransportError, LedgerRevert) as e:
            logger.warning("Dispatch %s failed: %s", call.function_name, e)
            raise DispatchError(f"{call.function_name} was not sent: {e}", cause=e) from e
        logger.info("Dispatched %s tx=%s", call.function_name, tx_hash)
        pending = PendingOperation(call.kind, tx_hash, self._wait_receipt)
        pending.start()
        return pending

    def _wait_receipt(self, tx_hash: str) -> TransactionReceipt:
        return self._transport.wait_for_receipt(
            tx_hash,
            timeout=self._confirmation_timeout,
            poll_latency=self._poll_latency,
        )

    def submit_add_record(
        self,
        vin: str,
        make: str,
        model: str,
        year: int,
        owner_name: str = "",
    ) -> PendingOperation:
        return self.dispatch(self.prepare_add_record(vin, make, model, year, owner_name))

    def submit_mark_serviced(self, index: int) -> PendingOperation:
        return self.dispatch(self.prepare_mark_serviced(index))

    def submit_remove_record(self, index: int) -> PendingOperation:
        return self.dispatch(self.prepare_remove_record(index))

    def submit_change_owner(self, new_owner: str) -> PendingOperation:
        return self.dispatch(self.prepare_change_owner(new_owner))
