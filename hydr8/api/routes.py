"""
FastAPI API routes for the hydration risk engine.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field

from hydr8.config import API_KEY, RISK_RETENTION_DAYS, WATER_RETENTION_DAYS
from hydr8.core.models import SignalSnapshot, UserProfile
from hydr8.core.orchestrator import UpdateOrchestrator
from hydr8.core.risk_engine import recommended_water, recommended_water_for_risk

log = logging.getLogger("hydr8.api")

router = APIRouter(prefix="/api")


# --- Auth ---

def verify_api_key(x_api_key: str = Header(default="")):
    if API_KEY and x_api_key != API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_engine(request: Request) -> UpdateOrchestrator:
    return request.app.state.engine


# --- Models ---

class WaterRequest(BaseModel):
    amount: float = Field(..., ge=0, allow_inf_nan=False, description="ml")


class NotificationActionRequest(BaseModel):
    action: str = Field(..., min_length=1)


# --- Water ---

@router.post("/water", dependencies=[Depends(verify_api_key)])
def add_water(req: WaterRequest, engine: UpdateOrchestrator = Depends(get_engine)):
    """Log a water intake and re-evaluate risk."""
    entry, result = engine.add_water(req.amount)
    return {"entry": entry, "evaluation": result, "status": "ok"}


@router.get("/water", dependencies=[Depends(verify_api_key)])
def get_water(
    days: int = Query(default=WATER_RETENTION_DAYS, ge=1, le=30),
    engine: UpdateOrchestrator = Depends(get_engine),
):
    """Rolling totals, weighted exposure and per-day breakdown."""
    water_log = engine.water_log
    return {
        "last_24h_ml": water_log.total_last_24h(),
        "last_5_days_ml": water_log.total_last_5_days(),
        "weighted_exposure_ml": water_log.weighted_exposure(),
        "segment_totals_ml": water_log.segment_totals(),
        "daily": water_log.daily_breakdown(days),
        "entries": len(water_log.entries),
    }


# --- Trigger endpoints ---

@router.post("/signals", dependencies=[Depends(verify_api_key)])
def post_signals(snapshot: SignalSnapshot, engine: UpdateOrchestrator = Depends(get_engine)):
    """Push a (partial) physiological/activity snapshot."""
    return engine.record_external_signals(snapshot)


@router.post("/launch", dependencies=[Depends(verify_api_key)])
def post_launch(engine: UpdateOrchestrator = Depends(get_engine)):
    return engine.on_app_launch()


@router.post("/tick", dependencies=[Depends(verify_api_key)])
def post_tick(engine: UpdateOrchestrator = Depends(get_engine)):
    return engine.on_periodic_tick()


@router.post("/notification/action", dependencies=[Depends(verify_api_key)])
def notification_action(req: NotificationActionRequest,
                        engine: UpdateOrchestrator = Depends(get_engine)):
    """Response to a reminder. LOG_<ml> logs water, anything else is acknowledged."""
    try:
        result = engine.handle_notification_action(req.action)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"action": req.action, "handled": result is not None, "evaluation": result}


# --- Risk ---

@router.get("/risk", dependencies=[Depends(verify_api_key)])
def get_risk(engine: UpdateOrchestrator = Depends(get_engine)):
    """Latest evaluation. Reading never triggers (or records) a new one."""
    if engine.last_result is None:
        raise HTTPException(status_code=404, detail="No evaluation yet")
    return engine.last_result


@router.get("/risk/history", dependencies=[Depends(verify_api_key)])
def get_risk_history(
    days: int = Query(default=RISK_RETENTION_DAYS, ge=1, le=30),
    engine: UpdateOrchestrator = Depends(get_engine),
):
    averages = engine.history.daily_averages(days)
    return {
        "days": days,
        "daily": [{"date": d.isoformat(), "risk": round(r, 4)} for d, r in averages],
        "entries": engine.history.entries,
    }


@router.delete("/risk/history", dependencies=[Depends(verify_api_key)])
def clear_risk_history(engine: UpdateOrchestrator = Depends(get_engine)):
    engine.history.clear()
    return {"status": "ok"}


# --- Profile ---

@router.get("/profile", dependencies=[Depends(verify_api_key)])
def get_profile(engine: UpdateOrchestrator = Depends(get_engine)):
    profile = engine.profiles.profile
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.put("/profile", dependencies=[Depends(verify_api_key)])
def put_profile(profile: UserProfile, engine: UpdateOrchestrator = Depends(get_engine)):
    engine.profiles.save(profile)
    log.info("Profile saved (weight %.1f lb)", profile.weight)
    return profile


@router.get("/recommendation", dependencies=[Depends(verify_api_key)])
def get_recommendation(engine: UpdateOrchestrator = Depends(get_engine)):
    profile = engine.profiles.profile
    return {
        "daily_ml": recommended_water(profile),
        "risk_horizon_ml": recommended_water_for_risk(profile, engine.water_log.weights),
        "has_profile": profile is not None,
    }


# --- Debug overrides ---

@router.put("/debug/signals", dependencies=[Depends(verify_api_key)])
def put_debug_signals(snapshot: SignalSnapshot, engine: UpdateOrchestrator = Depends(get_engine)):
    engine.set_overrides(snapshot)
    return {"overrides": snapshot, "signals": engine.current_signals()}


@router.delete("/debug/signals", dependencies=[Depends(verify_api_key)])
def delete_debug_signals(engine: UpdateOrchestrator = Depends(get_engine)):
    engine.set_overrides(None)
    return {"overrides": None, "signals": engine.current_signals()}


@router.get("/status")
def status(request: Request):
    """Health check endpoint."""
    engine: Optional[UpdateOrchestrator] = getattr(request.app.state, "engine", None)
    last = engine.last_result if engine else None
    return {
        "service": "hydr8",
        "status": "ok",
        "version": "1.0.0",
        "last_evaluation": last.timestamp.isoformat() if last else None,
        "model": "hybrid-risk-v1",
    }
