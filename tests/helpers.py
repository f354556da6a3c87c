"""Test doubles shared by the fixtures and the test modules."""

from datetime import datetime, timedelta

from hydr8.core.database import WATER_LOGS_KEY, DocumentStore
from hydr8.core.models import WATER_LOGS_ADAPTER, WaterLogEntry

START = datetime(2025, 2, 17, 12, 0, 0)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return now


class RecordingAlertSink:
    def __init__(self):
        self.alerts: list[tuple[str, str]] = []

    def emit_alert(self, kind: str, message: str) -> None:
        self.alerts.append((kind, message))

    @property
    def kinds(self) -> list[str]:
        return [k for k, _ in self.alerts]


class FakeTimer:
    """threading.Timer look-alike that only records what was scheduled."""

    created: list["FakeTimer"] = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True


def seed_water(store: DocumentStore, now: datetime, items) -> None:
    """Write a WaterLogs document from (age_hours, amount) pairs."""
    entries = [
        WaterLogEntry(amount=amount, date=now - timedelta(hours=age))
        for age, amount in items
    ]
    store.put(WATER_LOGS_KEY, WATER_LOGS_ADAPTER.dump_json(entries).decode())
