"""
Water Log: append-only store of intake events with rolling totals.

The decay-weighted exposure splits the lookback window into contiguous
segments measured backward from now:

  [0,12h) [12h,24h) [24h,48h) [48h,72h) [72h,96h) [96h,120h)

Each segment total is multiplied by its weight (default 0.50, 0.25, 0.13,
0.07, 0.035, 0.015, summing to ~1.0) so the result stays in ml and leans
on recent intake.
"""

import logging
import math
import sqlite3
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from pydantic import ValidationError

from hydr8.config import (
    WATER_RETENTION_DAYS,
    WATER_SEGMENT_HOURS,
    WATER_SEGMENT_WEIGHTS,
)
from hydr8.core.database import WATER_LOGS_KEY, DocumentStore
from hydr8.core.models import WATER_LOGS_ADAPTER, WaterLogEntry

log = logging.getLogger("hydr8.water")


def segment_bounds(segment_hours=WATER_SEGMENT_HOURS) -> list[tuple[timedelta, timedelta]]:
    """Age ranges [lo, hi) of each lookback segment."""
    bounds = []
    lo = timedelta(0)
    for hours in segment_hours:
        hi = lo + timedelta(hours=hours)
        bounds.append((lo, hi))
        lo = hi
    return bounds


class WaterLog:
    """
    Intake events, oldest first, trimmed to the retention horizon.

    Every mutation (append, trim) happens under one lock together with the
    save, so readers never see a half-trimmed list.
    """

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = datetime.now,
        retention_days: int = WATER_RETENTION_DAYS,
        segment_hours=WATER_SEGMENT_HOURS,
        segment_weights=WATER_SEGMENT_WEIGHTS,
    ):
        if len(segment_hours) != len(segment_weights):
            raise ValueError("segment_hours and segment_weights must have the same length")
        self._store = store
        self._clock = clock
        self._lock = threading.RLock()
        self.retention = timedelta(days=retention_days)
        self.segments = segment_bounds(segment_hours)
        self.weights = tuple(segment_weights)
        self._entries: list[WaterLogEntry] = []
        self.load()

    # --- Persistence ---

    def load(self) -> None:
        with self._lock:
            try:
                raw = self._store.get(WATER_LOGS_KEY)
            except sqlite3.Error as e:
                log.error("Could not read water logs: %s", e)
                raw = None
            if raw is None:
                log.info("No water logs found.")
                self._entries = []
                return
            try:
                entries = WATER_LOGS_ADAPTER.validate_json(raw)
            except (ValidationError, ValueError) as e:
                log.warning("Discarding malformed water logs: %s", e)
                entries = []
            self._entries = sorted(entries, key=lambda e: e.date)
            self.trim()

    def _save(self) -> None:
        try:
            self._store.put(WATER_LOGS_KEY, WATER_LOGS_ADAPTER.dump_json(self._entries).decode())
        except sqlite3.Error as e:
            log.error("Error saving water logs: %s", e)

    def trim(self, now: Optional[datetime] = None) -> int:
        """Drop entries older than the retention horizon. Returns count removed."""
        now = now or self._clock()
        cutoff = now - self.retention
        with self._lock:
            kept = [e for e in self._entries if e.date >= cutoff]
            removed = len(self._entries) - len(kept)
            self._entries = kept
            self._save()
        if removed:
            log.debug("Trimmed %d water entries older than %s", removed, cutoff.isoformat())
        return removed

    # --- Mutations ---

    def add_water(self, amount: float, now: Optional[datetime] = None) -> WaterLogEntry:
        """Append an intake event stamped `now`. Negative or non-finite amounts are rejected."""
        if not math.isfinite(amount):
            raise ValueError(f"water amount must be finite, got {amount}")
        if amount < 0:
            raise ValueError(f"water amount must be non-negative, got {amount}")
        now = now or self._clock()
        entry = WaterLogEntry(amount=float(amount), date=now)
        with self._lock:
            self._entries.append(entry)
            self.trim(now)
        log.info("Water entry added: %.0f ml at %s", entry.amount, entry.date.isoformat())
        return entry

    # --- Queries ---

    @property
    def entries(self) -> list[WaterLogEntry]:
        with self._lock:
            return list(self._entries)

    @property
    def last_log_date(self) -> Optional[datetime]:
        with self._lock:
            return self._entries[-1].date if self._entries else None

    def total_since(self, duration: timedelta, now: Optional[datetime] = None) -> float:
        now = now or self._clock()
        cutoff = now - duration
        return sum(e.amount for e in self.entries if e.date >= cutoff)

    def total_last_24h(self, now: Optional[datetime] = None) -> float:
        return self.total_since(timedelta(hours=24), now)

    def total_last_5_days(self, now: Optional[datetime] = None) -> float:
        return self.total_since(timedelta(days=5), now)

    def segment_totals(self, now: Optional[datetime] = None) -> list[float]:
        """Raw ml per lookback segment, most recent first."""
        now = now or self._clock()
        totals = [0.0] * len(self.segments)
        for e in self.entries:
            age = max(now - e.date, timedelta(0))
            for i, (lo, hi) in enumerate(self.segments):
                if lo <= age < hi:
                    totals[i] += e.amount
                    break
        return totals

    def weighted_exposure(self, now: Optional[datetime] = None) -> float:
        totals = self.segment_totals(now)
        return sum(w * t for w, t in zip(self.weights, totals))

    def daily_breakdown(self, days: int = WATER_RETENTION_DAYS,
                        now: Optional[datetime] = None) -> list[dict]:
        """
        Per-calendar-day totals over the last `days` days, oldest first.

        Each day carries hourly sub-totals for charting:
          {"date": "2025-02-14", "total": 750.0,
           "segments": [{"start": iso, "end": iso, "total": 250.0}, ...]}
        """
        now = now or self._clock()
        cutoff = now - timedelta(days=days)

        by_day: dict[datetime, dict[datetime, float]] = {}
        for e in self.entries:
            if e.date < cutoff:
                continue
            day = e.date.replace(hour=0, minute=0, second=0, microsecond=0)
            hour = e.date.replace(minute=0, second=0, microsecond=0)
            hours = by_day.setdefault(day, {})
            hours[hour] = hours.get(hour, 0.0) + e.amount

        details = []
        for day in sorted(by_day):
            hours = by_day[day]
            segments = [
                {
                    "start": h.isoformat(),
                    "end": (h + timedelta(hours=1)).isoformat(),
                    "total": hours[h],
                }
                for h in sorted(hours)
            ]
            details.append({
                "date": day.date().isoformat(),
                "total": sum(s["total"] for s in segments),
                "segments": segments,
            })
        return details
