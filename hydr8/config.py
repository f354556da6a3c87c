"""
Hydr8 Configuration.
All settings via environment variables with sensible defaults.
"""

import os
from pathlib import Path


def _floats(name: str, default: str) -> tuple[float, ...]:
    return tuple(float(v) for v in os.getenv(name, default).split(","))


# --- Paths ---
DATA_DIR = Path(os.getenv("HYDR8_DATA_DIR", "/data"))
DB_PATH = DATA_DIR / "hydr8.db"

# --- Auth ---
API_KEY = os.getenv("HYDR8_API_KEY", "")

# --- Server ---
HOST = os.getenv("HYDR8_HOST", "0.0.0.0")
PORT = int(os.getenv("HYDR8_PORT", "8000"))

# --- Home Assistant ---
HA_URL = os.getenv("HA_URL", "")
HA_TOKEN = os.getenv("HA_TOKEN", "")
HA_POLL_INTERVAL_SEC = int(os.getenv("HA_POLL_INTERVAL_SEC", "900"))  # 15 min
HA_TIMEOUT_SEC = float(os.getenv("HA_TIMEOUT_SEC", "10"))
HA_NOTIFY_SERVICE = os.getenv("HA_NOTIFY_SERVICE", "notify.notify")

# --- HA Sensor entity IDs (snapshot field -> entity) ---
HA_SENSORS = {
    "heart_rate": os.getenv("HA_SENSOR_HEART_RATE", "sensor.watch_heart_rate"),
    "step_count": os.getenv("HA_SENSOR_STEPS", "sensor.watch_daily_steps"),
    "active_energy": os.getenv("HA_SENSOR_ACTIVE_ENERGY", "sensor.watch_active_calories_burned"),
    "exercise_minutes": os.getenv("HA_SENSOR_EXERCISE", "sensor.watch_exercise_minutes"),
    "distance": os.getenv("HA_SENSOR_DISTANCE", "sensor.watch_daily_distance"),
    "body_temperature": os.getenv("HA_SENSOR_BODY_TEMP", "sensor.watch_body_temperature"),
}

# --- Water log ---
# Lookback segments measured backward from now: 0-12h, 12-24h, day 2 .. day 5
WATER_SEGMENT_HOURS = _floats("WATER_SEGMENT_HOURS", "12,12,24,24,24,24")
WATER_SEGMENT_WEIGHTS = _floats("WATER_SEGMENT_WEIGHTS", "0.50,0.25,0.13,0.07,0.035,0.015")
WATER_RETENTION_DAYS = int(os.getenv("WATER_RETENTION_DAYS", "5"))

# --- Recommendation ---
WATER_DEFAULT_GOAL_ML = float(os.getenv("WATER_DEFAULT_GOAL_ML", "2000"))
WATER_ML_PER_KG = float(os.getenv("WATER_ML_PER_KG", "35.0"))
LB_TO_KG = 0.453592
# Risk denominator = daily recommendation x (w1 + .. + w5). The oldest
# segment is left out on purpose; keep this at 5 for compatible scores.
WATER_RISK_DENOMINATOR_SEGMENTS = int(os.getenv("WATER_RISK_DENOMINATOR_SEGMENTS", "5"))

# --- Inactivity reminder ---
WATER_INACTIVITY_THRESHOLD_SEC = float(os.getenv("WATER_INACTIVITY_THRESHOLD_SEC", str(6 * 3600)))
WATER_INACTIVITY_MIN_DELAY_SEC = float(os.getenv("WATER_INACTIVITY_MIN_DELAY_SEC", "60"))

# --- Risk formula weights ---
RISK_W_WATER = float(os.getenv("RISK_W_WATER", "0.6"))
RISK_W_ACTIVITY = float(os.getenv("RISK_W_ACTIVITY", "0.2"))
RISK_W_HR = float(os.getenv("RISK_W_HR", "0.15"))
RISK_W_TEMP = float(os.getenv("RISK_W_TEMP", "0.0"))    # disabled, term stays wired
RISK_W_DELTA = float(os.getenv("RISK_W_DELTA", "0.05"))

NORMAL_BODY_TEMP_C = float(os.getenv("NORMAL_BODY_TEMP_C", "37.0"))
MAX_BODY_TEMP_C = float(os.getenv("MAX_BODY_TEMP_C", "39.0"))

# --- Risk thresholds / history ---
RISK_MID_THRESHOLD = float(os.getenv("RISK_MID_THRESHOLD", "0.5"))
RISK_HIGH_THRESHOLD = float(os.getenv("RISK_HIGH_THRESHOLD", "0.8"))
RISK_RETENTION_DAYS = int(os.getenv("RISK_RETENTION_DAYS", "5"))
RISK_THROTTLE_MINUTES = float(os.getenv("RISK_THROTTLE_MINUTES", "30"))

# --- Signal normalisation ---
RESTING_HR_BPM = float(os.getenv("RESTING_HR_BPM", "60"))
MAX_HR_BPM = float(os.getenv("MAX_HR_BPM", "180"))
ACTIVITY_STEPS_NORM = float(os.getenv("ACTIVITY_STEPS_NORM", "10000"))
ACTIVITY_DISTANCE_NORM_M = float(os.getenv("ACTIVITY_DISTANCE_NORM_M", "5000"))
ACTIVITY_ENERGY_NORM_KCAL = float(os.getenv("ACTIVITY_ENERGY_NORM_KCAL", "500"))
ACTIVITY_EXERCISE_NORM_MIN = float(os.getenv("ACTIVITY_EXERCISE_NORM_MIN", "30"))

# --- Orchestration ---
SETTLE_DELAY_SEC = float(os.getenv("SETTLE_DELAY_SEC", "0.5"))
RISK_ANIMATION_SEC = float(os.getenv("RISK_ANIMATION_SEC", "1.5"))
WATER_ANIMATION_SEC = float(os.getenv("WATER_ANIMATION_SEC", "1.75"))
