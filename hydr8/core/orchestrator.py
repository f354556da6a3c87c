"""
Update Orchestrator: one evaluation per trigger.

Per trigger (all serialised under one lock):
  1. water totals: 24h (display) and weighted 5-day exposure (risk)
  2. activity and HR indices from the latest signals (neutral when missing)
  3. hybrid risk against the 5-day-scaled recommendation,
     water fraction against the daily recommendation
  4. persist a risk sample, subject to the per-trigger throttle:
       IntakeLogged                          -> always
       AppLaunch / ExternalSignalUpdate /
       PeriodicRefresh                       -> once per 30 min window,
                                                or whenever history is empty
     The last-recorded time per trigger kind survives restarts.
  5. threshold crossing -> one alert per threshold crossed, upward only
  6. publish an EvaluationResult to subscribers
"""

import logging
import sqlite3
import threading
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ValidationError

from hydr8.config import (
    NORMAL_BODY_TEMP_C,
    RISK_ANIMATION_SEC,
    RISK_HIGH_THRESHOLD,
    RISK_MID_THRESHOLD,
    RISK_THROTTLE_MINUTES,
    SETTLE_DELAY_SEC,
    WATER_ANIMATION_SEC,
)
from hydr8.core.alerts import HIGH_RISK, MEDIUM_RISK, AlertSink, InactivityReminder
from hydr8.core.database import RISK_THROTTLE_KEY, DocumentStore
from hydr8.core.history import RiskHistory
from hydr8.core.models import THROTTLE_ADAPTER, SignalSnapshot, WaterLogEntry
from hydr8.core.profile import ProfileStore
from hydr8.core.risk_engine import (
    DEFAULT_RISK_WEIGHTS,
    RiskWeights,
    activity_index,
    clamp,
    hr_index,
    hybrid_risk,
    recommended_water,
    recommended_water_for_risk,
    risk_breakdown,
    risk_level,
)
from hydr8.core.signals import SignalSource
from hydr8.core.water_log import WaterLog

log = logging.getLogger("hydr8.orchestrator")


class Trigger(str, Enum):
    APP_LAUNCH = "AppLaunch"
    PERIODIC_REFRESH = "PeriodicRefresh"
    EXTERNAL_SIGNAL_UPDATE = "ExternalSignalUpdate"
    INTAKE_LOGGED = "IntakeLogged"


UNTHROTTLED = {Trigger.INTAKE_LOGGED}


class EvaluationResult(BaseModel):
    trigger: Trigger
    timestamp: datetime
    risk: float
    risk_level: str
    water_fraction: float
    display_water_ml: float
    risk_water_ml: float
    recommended_ml: float
    recommended_risk_ml: float
    activity_index: float
    hr_index: float
    recorded: bool
    alerts: list[str] = []
    breakdown: dict = {}
    risk_transition_sec: float = RISK_ANIMATION_SEC
    water_transition_sec: float = WATER_ANIMATION_SEC


class UpdateOrchestrator:

    def __init__(
        self,
        store: DocumentStore,
        water_log: WaterLog,
        history: RiskHistory,
        profiles: ProfileStore,
        alerts: AlertSink,
        reminder: Optional[InactivityReminder] = None,
        signal_source: Optional[SignalSource] = None,
        clock: Callable[[], datetime] = datetime.now,
        weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
        mid_threshold: float = RISK_MID_THRESHOLD,
        high_threshold: float = RISK_HIGH_THRESHOLD,
        throttle_minutes: float = RISK_THROTTLE_MINUTES,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self._store = store
        self.water_log = water_log
        self.history = history
        self.profiles = profiles
        self.alerts = alerts
        self.reminder = reminder
        self.signal_source = signal_source
        self._clock = clock
        self.weights = weights
        self.mid_threshold = mid_threshold
        self.high_threshold = high_threshold
        self.throttle_window = timedelta(minutes=throttle_minutes)
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._subscribers: list[Callable[[EvaluationResult], None]] = []
        self.signals = SignalSnapshot()
        self._signals_day: Optional[date] = None
        self.overrides: Optional[SignalSnapshot] = None
        self.previous_risk: Optional[float] = None
        self.last_result: Optional[EvaluationResult] = None
        self._throttle: dict[str, datetime] = self._load_throttle()

    # --- Throttle persistence ---

    def _load_throttle(self) -> dict[str, datetime]:
        try:
            raw = self._store.get(RISK_THROTTLE_KEY)
        except sqlite3.Error as e:
            log.error("Could not read throttle marks: %s", e)
            return {}
        if raw is None:
            return {}
        try:
            return THROTTLE_ADAPTER.validate_json(raw)
        except (ValidationError, ValueError) as e:
            log.warning("Discarding malformed throttle marks: %s", e)
            return {}

    def _save_throttle(self) -> None:
        try:
            self._store.put(RISK_THROTTLE_KEY, THROTTLE_ADAPTER.dump_json(self._throttle).decode())
        except sqlite3.Error as e:
            log.error("Error saving throttle marks: %s", e)

    def last_recorded(self, trigger: Trigger) -> Optional[datetime]:
        return self._throttle.get(trigger.value)

    def _should_record(self, trigger: Trigger, now: datetime) -> bool:
        if trigger in UNTHROTTLED or self.history.is_empty():
            return True
        last = self._throttle.get(trigger.value)
        return last is None or now - last >= self.throttle_window

    # --- Subscribers ---

    def subscribe(self, callback: Callable[[EvaluationResult], None]) -> Callable[[], None]:
        """Register for evaluation results. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        return unsubscribe

    def _publish(self, result: EvaluationResult) -> None:
        for callback in list(self._subscribers):
            try:
                callback(result)
            except Exception:
                log.exception("Subscriber %r failed", callback)

    # --- Threshold crossing ---

    def _crossing_alerts(self, risk: float) -> list[tuple[str, str]]:
        """Upward crossings since the previous evaluation, mid before high."""
        prev = self.previous_risk
        mid, high = self.mid_threshold, self.high_threshold
        if prev is None:
            if risk >= high:
                return [(HIGH_RISK, "High dehydration risk detected. Please hydrate!")]
            if risk >= mid:
                return [(MEDIUM_RISK, "Dehydration risk rising. Consider hydrating.")]
            return []
        crossed = []
        if prev < mid <= risk:
            crossed.append((MEDIUM_RISK, "Your dehydration risk has increased to MEDIUM. Consider drinking water."))
        if prev < high <= risk:
            crossed.append((HIGH_RISK, "Your dehydration risk has increased to HIGH. Hydrate immediately!"))
        return crossed

    # --- Evaluation ---

    def _roll_signals_day(self, now: datetime) -> None:
        day = now.date()
        if self._signals_day is not None and day != self._signals_day:
            log.info("New day %s: clearing daily activity totals", day.isoformat())
            self.signals = self.signals.without_daily_totals()
        self._signals_day = day

    def current_signals(self) -> SignalSnapshot:
        return self.signals.merged(self.overrides)

    def evaluate(self, trigger: Trigger) -> EvaluationResult:
        with self._lock:
            now = self._clock()
            self._roll_signals_day(now)
            snapshot = self.current_signals()
            profile = self.profiles.profile

            display_water = self.water_log.total_last_24h(now)
            risk_water = self.water_log.weighted_exposure(now)
            daily_target = recommended_water(profile)
            risk_target = recommended_water_for_risk(profile, self.water_log.weights)

            act = activity_index(
                step_count=snapshot.step_count,
                distance=snapshot.distance,
                active_energy=snapshot.active_energy,
                exercise_minutes=snapshot.exercise_minutes,
            )
            hr = hr_index(snapshot.heart_rate)
            body_temp = snapshot.body_temperature
            if body_temp is None:
                body_temp = NORMAL_BODY_TEMP_C

            risk = hybrid_risk(risk_water, risk_target, act, hr,
                               body_temp=body_temp, delta=0.0, weights=self.weights)
            water_fraction = clamp(display_water / daily_target) if daily_target > 0 else 0.0
            log.info(
                "%s: HR=%s steps=%s AE=%s EX=%s dist=%s water24h=%.0f riskWater=%.1f -> risk=%.3f water=%.3f",
                trigger.value, snapshot.heart_rate, snapshot.step_count, snapshot.active_energy,
                snapshot.exercise_minutes, snapshot.distance, display_water, risk_water,
                risk, water_fraction,
            )

            recorded = self._should_record(trigger, now)
            if recorded:
                self.history.record(risk, now)
                if trigger not in UNTHROTTLED:
                    self._throttle[trigger.value] = now
                    self._save_throttle()
            else:
                log.debug("%s throttled (last recorded %s)", trigger.value,
                          self._throttle.get(trigger.value))

            emitted = []
            for kind, message in self._crossing_alerts(risk):
                self.alerts.emit_alert(kind, message)
                emitted.append(kind)
            self.previous_risk = risk

            result = EvaluationResult(
                trigger=trigger,
                timestamp=now,
                risk=risk,
                risk_level=risk_level(risk, self.mid_threshold, self.high_threshold),
                water_fraction=water_fraction,
                display_water_ml=display_water,
                risk_water_ml=risk_water,
                recommended_ml=daily_target,
                recommended_risk_ml=risk_target,
                activity_index=act,
                hr_index=hr,
                recorded=recorded,
                alerts=emitted,
                breakdown=risk_breakdown(risk_water, risk_target, act, hr,
                                         body_temp=body_temp, weights=self.weights)["terms"],
            )
            self.last_result = result
            self._publish(result)
            return result

    # --- Trigger entry points ---

    def add_water(self, amount: float) -> tuple[WaterLogEntry, EvaluationResult]:
        with self._lock:
            entry = self.water_log.add_water(amount, self._clock())
            if self.reminder is not None:
                self.reminder.reset()
            return entry, self.evaluate(Trigger.INTAKE_LOGGED)

    def record_external_signals(self, snapshot: SignalSnapshot) -> EvaluationResult:
        """Merge a (possibly partial) signal update and evaluate."""
        with self._lock:
            self._roll_signals_day(self._clock())
            self.signals = self.signals.merged(snapshot)
            return self.evaluate(Trigger.EXTERNAL_SIGNAL_UPDATE)

    def refresh_signals(self) -> SignalSnapshot:
        if self.signal_source is not None:
            fetched = self.signal_source.fetch()
            with self._lock:
                self._roll_signals_day(self._clock())
                self.signals = self.signals.merged(fetched)
        return self.signals

    def on_app_launch(self, settle_delay: Optional[float] = SETTLE_DELAY_SEC) -> EvaluationResult:
        """Launch evaluation plus one deferred refresh after `settle_delay` seconds."""
        if self.reminder is not None:
            self.reminder.schedule_from_last_log(self.water_log.last_log_date, self._clock())
        self.refresh_signals()
        result = self.evaluate(Trigger.APP_LAUNCH)
        if settle_delay is not None:
            timer = self._timer_factory(settle_delay, self.on_periodic_tick)
            timer.daemon = True
            timer.start()
        return result

    def on_periodic_tick(self) -> EvaluationResult:
        self.refresh_signals()
        return self.evaluate(Trigger.PERIODIC_REFRESH)

    def handle_notification_action(self, action_id: str) -> Optional[EvaluationResult]:
        """LOG_<amount> quick actions add water; any other action is ignored."""
        if not action_id.startswith("LOG_"):
            log.info("Notification action %s ignored", action_id)
            return None
        amount = int(action_id[len("LOG_"):])
        log.info("User selected to log %d ml of water.", amount)
        _, result = self.add_water(amount)
        return result

    # --- Debug overrides ---

    def set_overrides(self, snapshot: Optional[SignalSnapshot]) -> None:
        with self._lock:
            self.overrides = snapshot
