"""
Tests for the background refresh scheduler.
"""

import asyncio
from datetime import timedelta

from hydr8.core.models import SignalSnapshot
from hydr8.core.orchestrator import Trigger
from hydr8.core.scheduler import REFRESH_JOB_ID, _periodic_refresh, start_scheduler, stop_scheduler
from hydr8.core.signals import StaticSignalSource


class TestScheduler:

    def test_registers_interval_refresh_job(self, engine):
        async def run():
            scheduler = start_scheduler(engine, interval_sec=900)
            try:
                job = scheduler.get_job(REFRESH_JOB_ID)
                return scheduler.running, job.trigger.interval
            finally:
                stop_scheduler(scheduler)

        running, interval = asyncio.run(run())
        assert running
        assert interval == timedelta(seconds=900)

    def test_refresh_without_source_is_periodic_tick(self, engine):
        asyncio.run(_periodic_refresh(engine))
        assert engine.last_result.trigger == Trigger.PERIODIC_REFRESH

    def test_refresh_with_source_pushes_signals(self, make_engine):
        engine = make_engine(signal_source=StaticSignalSource(SignalSnapshot(heart_rate=120)))
        asyncio.run(_periodic_refresh(engine))

        assert engine.last_result.trigger == Trigger.EXTERNAL_SIGNAL_UPDATE
        assert engine.last_result.hr_index == 0.5

    def test_refresh_errors_are_logged_not_raised(self, engine, monkeypatch, caplog):
        def boom():
            raise RuntimeError("db gone")

        monkeypatch.setattr(engine, "on_periodic_tick", boom)
        asyncio.run(_periodic_refresh(engine))
        assert "db gone" in caplog.text
