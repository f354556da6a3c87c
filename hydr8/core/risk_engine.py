"""
Risk Engine: hybrid dehydration risk score.

  risk = W_water    × waterDeficit
       + W_activity × activityIndex
       + W_hr       × hrIndex
       + W_temp     × tempIndex
       + W_delta    × delta
  clamped to [0, 1]

  waterDeficit  = 1 - clamp(intake / recommended, 0, 1)
  tempIndex     = clamp((T - T_normal) / (T_max - T_normal), 0, 1)
  activityIndex = mean of steps/10000, distance/5000 m, energy/500 kcal,
                  exercise/30 min, each clamped to [0, 1]
  hrIndex       = clamp((HR - 60) / (180 - 60), 0, 1)

Recommended water: weight_lb × 0.453592 × 35 ml/kg, or 2000 ml without a
profile. The risk denominator scales that by w1+..+w5 of the water log
segment weights (the oldest segment is excluded).

The score has no diagnostic meaning beyond this formula.
"""

from typing import NamedTuple, Optional

from hydr8.config import (
    ACTIVITY_DISTANCE_NORM_M,
    ACTIVITY_ENERGY_NORM_KCAL,
    ACTIVITY_EXERCISE_NORM_MIN,
    ACTIVITY_STEPS_NORM,
    LB_TO_KG,
    MAX_BODY_TEMP_C,
    MAX_HR_BPM,
    NORMAL_BODY_TEMP_C,
    RESTING_HR_BPM,
    RISK_HIGH_THRESHOLD,
    RISK_MID_THRESHOLD,
    RISK_W_ACTIVITY,
    RISK_W_DELTA,
    RISK_W_HR,
    RISK_W_TEMP,
    RISK_W_WATER,
    WATER_DEFAULT_GOAL_ML,
    WATER_ML_PER_KG,
    WATER_RISK_DENOMINATOR_SEGMENTS,
    WATER_SEGMENT_WEIGHTS,
)
from hydr8.core.models import UserProfile


class RiskWeights(NamedTuple):
    water: float = RISK_W_WATER
    activity: float = RISK_W_ACTIVITY
    hr: float = RISK_W_HR
    temp: float = RISK_W_TEMP
    delta: float = RISK_W_DELTA


DEFAULT_RISK_WEIGHTS = RiskWeights()


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(value, hi))


# ── Recommendation ───────────────────────────────────────────────────

def recommended_water(profile: Optional[UserProfile],
                      fallback: float = WATER_DEFAULT_GOAL_ML) -> float:
    """Daily target in ml from body weight (lb), or `fallback` without a profile."""
    if profile is None:
        return fallback
    return profile.weight * LB_TO_KG * WATER_ML_PER_KG


def recommended_water_for_risk(
    profile: Optional[UserProfile],
    segment_weights=WATER_SEGMENT_WEIGHTS,
    segments: int = WATER_RISK_DENOMINATOR_SEGMENTS,
    fallback: float = WATER_DEFAULT_GOAL_ML,
) -> float:
    """Denominator for the weighted 5-day exposure: daily target × (w1+..+w5)."""
    return recommended_water(profile, fallback) * sum(segment_weights[:segments])


# ── Signal indices ───────────────────────────────────────────────────

def activity_index(
    step_count: Optional[float] = None,
    distance: Optional[float] = None,
    active_energy: Optional[float] = None,
    exercise_minutes: Optional[float] = None,
) -> float:
    """Mean of the four normalised activity signals. Missing values count as 0."""
    parts = [
        clamp((step_count or 0.0) / ACTIVITY_STEPS_NORM),
        clamp((distance or 0.0) / ACTIVITY_DISTANCE_NORM_M),
        clamp((active_energy or 0.0) / ACTIVITY_ENERGY_NORM_KCAL),
        clamp((exercise_minutes or 0.0) / ACTIVITY_EXERCISE_NORM_MIN),
    ]
    return sum(parts) / len(parts)


def hr_index(heart_rate: Optional[float] = None,
             resting_hr: float = RESTING_HR_BPM,
             max_hr: float = MAX_HR_BPM) -> float:
    """Heart rate position between resting and max. Missing HR reads as resting."""
    if heart_rate is None:
        heart_rate = resting_hr
    if max_hr <= resting_hr:
        return 1.0 if heart_rate > resting_hr else 0.0
    return clamp((heart_rate - resting_hr) / (max_hr - resting_hr))


def temp_index(body_temp: float,
               normal_temp: float = NORMAL_BODY_TEMP_C,
               max_temp: float = MAX_BODY_TEMP_C) -> float:
    if max_temp <= normal_temp:
        return 1.0 if body_temp > normal_temp else 0.0
    return clamp((body_temp - normal_temp) / (max_temp - normal_temp))


def water_deficit(water_intake: float, recommended: float) -> float:
    """0 when intake meets the target, 1 when nothing was drunk.

    A non-positive target counts as a full deficit.
    """
    if recommended <= 0:
        return 1.0
    return 1.0 - clamp(water_intake / recommended)


# ── Hybrid risk ──────────────────────────────────────────────────────

def hybrid_risk(
    water_intake: float,
    recommended: float,
    activity: float,
    hr: float,
    body_temp: float = NORMAL_BODY_TEMP_C,
    normal_temp: float = NORMAL_BODY_TEMP_C,
    max_temp: float = MAX_BODY_TEMP_C,
    delta: float = 0.0,
    weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
) -> float:
    """
    Weighted sum of deficit, activity, HR, temperature and trend, clamped to [0, 1].

    `activity` and `hr` are expected already normalised (see activity_index,
    hr_index). Never raises for finite inputs.
    """
    risk = (
        weights.water * water_deficit(water_intake, recommended)
        + weights.activity * activity
        + weights.hr * hr
        + weights.temp * temp_index(body_temp, normal_temp, max_temp)
        + weights.delta * delta
    )
    return clamp(risk)


def risk_breakdown(
    water_intake: float,
    recommended: float,
    activity: float,
    hr: float,
    body_temp: float = NORMAL_BODY_TEMP_C,
    delta: float = 0.0,
    weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
) -> dict:
    """
    Per-term view of hybrid_risk for display.

    Returns {"risk": float, "terms": {name: {index, weighted, share}}} where
    share is the term's fraction of the overall risk (0 when risk is 0).
    """
    indices = {
        "water": water_deficit(water_intake, recommended),
        "activity": activity,
        "hr": hr,
        "temp": temp_index(body_temp),
        "delta": delta,
    }
    risk = hybrid_risk(water_intake, recommended, activity, hr,
                       body_temp=body_temp, delta=delta, weights=weights)
    terms = {}
    for name, index in indices.items():
        weighted = getattr(weights, name) * index
        terms[name] = {
            "index": round(index, 4),
            "weighted": round(weighted, 4),
            "share": round(weighted / risk, 4) if risk > 0 else 0.0,
        }
    return {"risk": risk, "terms": terms}


def risk_level(risk: float,
               mid: float = RISK_MID_THRESHOLD,
               high: float = RISK_HIGH_THRESHOLD) -> str:
    """low / medium / high band for a risk fraction."""
    if risk >= high:
        return "high"
    if risk >= mid:
        return "medium"
    return "low"
