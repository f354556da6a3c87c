"""
Shared test fixtures: temporary document store, controllable clock,
recording alert sink and a timer stand-in that never starts a thread.
"""

import pytest

from hydr8.core.alerts import InactivityReminder
from hydr8.core.database import DocumentStore
from hydr8.core.history import RiskHistory
from hydr8.core.orchestrator import UpdateOrchestrator
from hydr8.core.profile import ProfileStore
from hydr8.core.water_log import WaterLog
from tests.helpers import FakeClock, FakeTimer, RecordingAlertSink


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    s = DocumentStore(tmp_path / "hydr8.db")
    s.init_db()
    yield s
    s.close()


@pytest.fixture
def sink():
    return RecordingAlertSink()


@pytest.fixture
def timers():
    FakeTimer.created.clear()
    return FakeTimer.created


@pytest.fixture
def make_engine(store, clock, sink, timers):
    def _make(**kwargs):
        params = dict(
            store=store,
            water_log=WaterLog(store, clock=clock),
            history=RiskHistory(store, clock=clock),
            profiles=ProfileStore(store),
            alerts=sink,
            reminder=InactivityReminder(sink, timer_factory=FakeTimer),
            clock=clock,
            timer_factory=FakeTimer,
        )
        params.update(kwargs)
        return UpdateOrchestrator(**params)
    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()
