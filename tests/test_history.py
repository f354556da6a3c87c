"""
Tests for the risk history store: append-only recording, retention,
daily averages and reset.
"""

from datetime import date, datetime, timedelta

import pytest

from hydr8.core.database import RISK_ENTRIES_KEY
from hydr8.core.history import RiskHistory


class TestRecord:

    def test_record_appends_every_sample(self, store, clock):
        history = RiskHistory(store, clock=clock)
        history.record(0.3)
        clock.advance(minutes=10)
        history.record(0.4)

        # same day, two entries: nothing is overwritten
        assert [e.risk for e in history.entries] == [0.3, 0.4]
        assert history.latest().risk == 0.4
        assert len({e.id for e in history.entries}) == 2

    def test_record_clamps_out_of_range(self, store, clock):
        history = RiskHistory(store, clock=clock)
        assert history.record(1.7).risk == 1.0
        assert history.record(-0.2).risk == 0.0

    def test_trim_after_record(self, store, clock):
        history = RiskHistory(store, clock=clock)
        history.record(0.2)
        clock.advance(days=3)
        history.record(0.3)
        clock.advance(days=2, hours=1)
        history.record(0.4)

        cutoff = clock.now - timedelta(days=5)
        assert all(e.date >= cutoff for e in history.entries)
        assert [e.risk for e in history.entries] == [0.3, 0.4]

    def test_round_trip(self, store, clock):
        history = RiskHistory(store, clock=clock)
        for risk in (0.1, 0.55, 0.9):
            history.record(risk)
            clock.advance(hours=2)

        reloaded = RiskHistory(store, clock=clock)
        assert [e.risk for e in reloaded.entries] == [0.1, 0.55, 0.9]
        assert [e.id for e in reloaded.entries] == [e.id for e in history.entries]

    def test_load_trims_expired(self, store, clock):
        history = RiskHistory(store, clock=clock)
        history.record(0.5)
        clock.advance(days=6)

        reloaded = RiskHistory(store, clock=clock)
        assert reloaded.is_empty()


class TestDailyAverages:

    def test_groups_by_calendar_day(self, store, clock):
        history = RiskHistory(store, clock=clock)
        clock.set(datetime(2025, 2, 15, 9, 0))
        history.record(0.2)
        clock.set(datetime(2025, 2, 15, 18, 0))
        history.record(0.4)
        clock.set(datetime(2025, 2, 16, 23, 59))
        history.record(0.9)
        clock.set(datetime(2025, 2, 17, 0, 1))
        history.record(0.1)

        averages = history.daily_averages(5)

        assert [d for d, _ in averages] == [date(2025, 2, 15), date(2025, 2, 16), date(2025, 2, 17)]
        assert averages[0][1] == pytest.approx(0.3)
        assert averages[1][1] == pytest.approx(0.9)
        assert averages[2][1] == pytest.approx(0.1)

    def test_empty_history(self, store, clock):
        assert RiskHistory(store, clock=clock).daily_averages() == []


class TestResetAndFailures:

    def test_clear_removes_persisted_state(self, store, clock):
        history = RiskHistory(store, clock=clock)
        history.record(0.6)
        history.clear()

        assert history.is_empty()
        assert store.get(RISK_ENTRIES_KEY) is None
        assert RiskHistory(store, clock=clock).is_empty()

    def test_malformed_payload_starts_empty(self, store, clock):
        store.put(RISK_ENTRIES_KEY, '[{"id": "nope", "date": "yesterday", "risk": 3}]')
        history = RiskHistory(store, clock=clock)
        assert history.is_empty()
        history.record(0.2)
        assert len(history.entries) == 1
