"""
Hydr8 service entry point.

hydr8                     (console script, see run())
uvicorn hydr8.main:app
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hydr8.config import DB_PATH, HA_POLL_INTERVAL_SEC, HA_TOKEN, HA_URL, HOST, PORT
from hydr8.core.alerts import HomeAssistantNotifier, InactivityReminder, LogAlertSink
from hydr8.core.database import DocumentStore
from hydr8.core.history import RiskHistory
from hydr8.core.orchestrator import UpdateOrchestrator
from hydr8.core.profile import ProfileStore
from hydr8.core.scheduler import start_scheduler, stop_scheduler
from hydr8.core.signals import HomeAssistantSignalSource
from hydr8.core.water_log import WaterLog

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger("hydr8")


def build_engine(db_path: Path = DB_PATH) -> UpdateOrchestrator:
    """Construct the process-wide collaborators and wire them together."""
    store = DocumentStore(db_path)
    store.init_db()

    if HA_URL and HA_TOKEN:
        alerts = HomeAssistantNotifier(HA_URL, HA_TOKEN)
        signal_source = HomeAssistantSignalSource(HA_URL, HA_TOKEN)
        logger.info("Home Assistant integration enabled (%s)", HA_URL)
    else:
        alerts = LogAlertSink()
        signal_source = None
        logger.info("Home Assistant not configured, alerts go to the log")

    return UpdateOrchestrator(
        store=store,
        water_log=WaterLog(store),
        history=RiskHistory(store),
        profiles=ProfileStore(store),
        alerts=alerts,
        reminder=InactivityReminder(alerts),
        signal_source=signal_source,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # The offending input may be inf/nan, which JSON cannot carry
    detail = [{k: v for k, v in err.items() if k != "input"} for err in exc.errors()]
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(detail)})


def create_app(engine: Optional[UpdateOrchestrator] = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.engine is None:
            app.state.engine = build_engine()
        eng: UpdateOrchestrator = app.state.engine
        logger.info("Hydr8 starting up...")
        await asyncio.to_thread(eng.on_app_launch)
        scheduler = start_scheduler(eng, HA_POLL_INTERVAL_SEC)
        logger.info("Hydr8 ready")

        yield

        stop_scheduler(scheduler)
        if eng.reminder is not None:
            eng.reminder.cancel()
        for collaborator in (eng.alerts, eng.signal_source):
            close = getattr(collaborator, "close", None)
            if close is not None:
                close()
        logger.info("Hydr8 shut down")

    app = FastAPI(
        title="Hydr8 API",
        description="Dehydration risk engine driven by water intake logs and wearable signals",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    from hydr8.api.routes import router
    app.include_router(router)
    return app


app = create_app()


def run():
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    run()
