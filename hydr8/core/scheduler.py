"""Background scheduler for the periodic risk refresh."""

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from hydr8.config import HA_POLL_INTERVAL_SEC
from hydr8.core.orchestrator import UpdateOrchestrator

logger = logging.getLogger("hydr8.scheduler")

REFRESH_JOB_ID = "periodic_refresh"


def start_scheduler(engine: UpdateOrchestrator,
                    interval_sec: float = HA_POLL_INTERVAL_SEC) -> AsyncIOScheduler:
    """Start an interval job on the running event loop. Call from the app lifespan."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _periodic_refresh,
        "interval",
        seconds=interval_sec,
        args=[engine],
        id=REFRESH_JOB_ID,
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Background scheduler started (refresh every %ss)", interval_sec)
    return scheduler


async def _periodic_refresh(engine: UpdateOrchestrator):
    # Evaluation and HA polling block; keep them off the event loop
    try:
        if engine.signal_source is not None:
            snapshot = await asyncio.to_thread(engine.signal_source.fetch)
            await asyncio.to_thread(engine.record_external_signals, snapshot)
        else:
            await asyncio.to_thread(engine.on_periodic_tick)
    except Exception as e:
        logger.error("Periodic refresh job error: %s", e)


def stop_scheduler(scheduler: AsyncIOScheduler):
    scheduler.shutdown(wait=False)
