"""
Risk History: append-only log of computed risk samples.

Every accepted evaluation appends one entry; a day's "current" risk is the
latest same-day entry, nothing is overwritten. Entries older than the
retention horizon (default 5 days) are dropped on load and on append.
"""

import logging
import sqlite3
import threading
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from pydantic import ValidationError

from hydr8.config import RISK_RETENTION_DAYS
from hydr8.core.database import RISK_ENTRIES_KEY, DocumentStore
from hydr8.core.models import RISK_ENTRIES_ADAPTER, RiskEntry
from hydr8.core.risk_engine import clamp

log = logging.getLogger("hydr8.history")


class RiskHistory:

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = datetime.now,
        retention_days: int = RISK_RETENTION_DAYS,
    ):
        self._store = store
        self._clock = clock
        self._lock = threading.RLock()
        self.retention = timedelta(days=retention_days)
        self._entries: list[RiskEntry] = []
        self.load()

    def load(self) -> None:
        with self._lock:
            try:
                raw = self._store.get(RISK_ENTRIES_KEY)
            except sqlite3.Error as e:
                log.error("Could not read risk entries: %s", e)
                raw = None
            if raw is None:
                self._entries = []
                return
            try:
                self._entries = RISK_ENTRIES_ADAPTER.validate_json(raw)
            except (ValidationError, ValueError) as e:
                log.warning("Error decoding risk data, starting empty: %s", e)
                self._entries = []
            self.trim()

    def _persist(self) -> None:
        try:
            self._store.put(RISK_ENTRIES_KEY, RISK_ENTRIES_ADAPTER.dump_json(self._entries).decode())
        except sqlite3.Error as e:
            log.error("Error encoding risk data: %s", e)

    def trim(self, now: Optional[datetime] = None) -> int:
        now = now or self._clock()
        cutoff = now - self.retention
        with self._lock:
            kept = [e for e in self._entries if e.date >= cutoff]
            removed = len(self._entries) - len(kept)
            self._entries = kept
            self._persist()
        return removed

    def record(self, risk: float, now: Optional[datetime] = None) -> RiskEntry:
        """Append a sample stamped `now`, persist, then trim."""
        now = now or self._clock()
        entry = RiskEntry(date=now, risk=clamp(risk))
        with self._lock:
            self._entries.append(entry)
            self._persist()
            self.trim(now)
        log.debug("Risk entry %s: %.3f", entry.id, entry.risk)
        return entry

    def clear(self) -> None:
        """Empty the history and remove the persisted document."""
        with self._lock:
            self._entries = []
            try:
                self._store.delete(RISK_ENTRIES_KEY)
            except sqlite3.Error as e:
                log.error("Could not remove risk entries: %s", e)
        log.info("Risk history cleared")

    @property
    def entries(self) -> list[RiskEntry]:
        with self._lock:
            return list(self._entries)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._entries

    def latest(self) -> Optional[RiskEntry]:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def daily_averages(self, days: int = RISK_RETENTION_DAYS,
                       now: Optional[datetime] = None) -> list[tuple[date, float]]:
        """(day, mean risk) for each calendar day with samples, oldest first."""
        now = now or self._clock()
        first_day = (now - timedelta(days=days)).date()
        buckets: dict[date, list[float]] = {}
        for e in self.entries:
            day = e.date.date()
            if day < first_day:
                continue
            buckets.setdefault(day, []).append(e.risk)
        return [(day, sum(v) / len(v)) for day, v in sorted(buckets.items())]
