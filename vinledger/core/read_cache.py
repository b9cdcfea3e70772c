"""Ledger-derived values the UI renders: records count, owner, and one looked-up record."""
import logging
import threading
from typing import Dict, Optional

from vinledger.core.errors import ReadError
from vinledger.core.ledger_client import LedgerClient
from vinledger.models.record import (
    NOT_SEARCHED,
    LedgerSummary,
    LookupResult,
    LookupStatus,
    NotFound,
)

logger = logging.getLogger(__name__)


class ReadCache:
    """Holds the last known ledger summary and VIN lookup.

    A failed read keeps the previous value and records the error; it never
    clears what is already known. Values are written in completion order, so
    overlapping reads cannot leave the cache half-updated.
    """

    def __init__(self, client: LedgerClient) -> None:
        self._client = client
        self._lock = threading.Lock()
        self._records_count = 0
        self._owner: Optional[str] = None
        self._count_loaded = False
        self._owner_loaded = False
        self._errors: Dict[str, str] = {}
        self._active_reads = 0
        self._refresh_done: Optional[threading.Event] = None
        self._search_key = ""
        self._lookup: LookupResult = NOT_SEARCHED

    # Summary

    def summary(self) -> LedgerSummary:
        with self._lock:
            return LedgerSummary(
                records_count=self._records_count,
                owner=self._owner,
                loaded=self._count_loaded and self._owner_loaded,
                is_loading=self._active_reads > 0,
            )

    def read_errors(self) -> Dict[str, str]:
        """Last error per summary field, for fields whose latest read failed."""
        with self._lock:
            return dict(self._errors)

    def refresh(self) -> LedgerSummary:
        """Re-read count and owner. A caller arriving mid-refresh waits for that refresh instead of reading again."""
        with self._lock:
            done = self._refresh_done
            leader = done is None
            if leader:
                done = self._refresh_done = threading.Event()
        if not leader:
            done.wait()
            return self.summary()
        try:
            self._read_summary()
        finally:
            with self._lock:
                self._refresh_done = None
            done.set()
        return self.summary()

    def invalidate(self) -> LedgerSummary:
        """Re-read count and owner now, never joining a refresh that started before a mutation landed."""
        self._read_summary()
        return self.summary()

    def _read_summary(self) -> None:
        with self._lock:
            self._active_reads += 1
        try:
            self._read_count()
            self._read_owner()
        finally:
            with self._lock:
                self._active_reads -= 1

    def _read_count(self) -> None:
        try:
            count = self._client.read_records_count()
        except ReadError as e:
            logger.warning("Cache: records count read failed, keeping %s: %s", self._records_count, e)
            with self._lock:
                self._errors["records_count"] = str(e)
            return
        with self._lock:
            self._records_count = count
            self._count_loaded = True
            self._errors.pop("records_count", None)

    def _read_owner(self) -> None:
        try:
            owner = self._client.read_owner()
        except ReadError as e:
            logger.warning("Cache: owner read failed, keeping %s: %s", self._owner, e)
            with self._lock:
                self._errors["owner"] = str(e)
            return
        with self._lock:
            self._owner = owner
            self._owner_loaded = True
            self._errors.pop("owner", None)

    # Lookup by VIN

    @property
    def search_key(self) -> str:
        with self._lock:
            return self._search_key

    def lookup(self) -> LookupResult:
        with self._lock:
            return self._lookup

    def set_search_key(self, vin: Optional[str], force: bool = False) -> LookupResult:
        """Look up `vin` if it differs from the current key (or `force`). Empty clears without reading."""
        key = (vin or "").strip()
        with self._lock:
            if not key:
                self._search_key = ""
                self._lookup = NOT_SEARCHED
                return self._lookup
            previous = self._lookup if key == self._search_key else NOT_SEARCHED
            if (
                not force
                and key == self._search_key
                and previous.status in (LookupStatus.FOUND, LookupStatus.NOT_FOUND)
            ):
                return previous
            self._search_key = key

        try:
            found = self._client.read_record_by_vin(key)
        except ReadError as e:
            logger.warning("Cache: lookup %s failed: %s", key, e)
            result = LookupResult(
                status=LookupStatus.FAILED, vin=key, record=previous.record, error=str(e)
            )
        else:
            if found is NotFound:
                result = LookupResult(status=LookupStatus.NOT_FOUND, vin=key)
            else:
                result = LookupResult(status=LookupStatus.FOUND, vin=key, record=found)

        with self._lock:
            # Key changed while this read was in flight: the answer is for a search nobody wants now
            if self._search_key != key:
                return result
            self._lookup = result
        return result
