"""
Alerting collaborator.

emit_alert(kind, message) is the only call the engine makes. Kinds:
  mediumRisk  : risk crossed the mid threshold upward
  highRisk    : risk crossed the high threshold upward
  inactivity  : no intake logged for a while (repeating reminder)
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional, Protocol

import httpx

from hydr8.config import (
    HA_NOTIFY_SERVICE,
    HA_TIMEOUT_SEC,
    WATER_INACTIVITY_MIN_DELAY_SEC,
    WATER_INACTIVITY_THRESHOLD_SEC,
)

log = logging.getLogger("hydr8.alerts")

MEDIUM_RISK = "mediumRisk"
HIGH_RISK = "highRisk"
INACTIVITY = "inactivity"

ALERT_TITLES = {
    MEDIUM_RISK: "Hydration Reminder",
    HIGH_RISK: "Hydration Reminder",
    INACTIVITY: "Hydration Reminder",
}


class AlertSink(Protocol):
    def emit_alert(self, kind: str, message: str) -> None: ...


class LogAlertSink:
    """Writes alerts to the log. Used when no notifier is configured."""

    def emit_alert(self, kind: str, message: str) -> None:
        log.warning("[%s] %s", kind, message)


class HomeAssistantNotifier:
    """
    Sends alerts through a Home Assistant notify service.
    POST {HA_URL}/api/services/<domain>/<service>  {"title", "message", "data"}
    """

    def __init__(self, base_url: str, token: str,
                 service: str = HA_NOTIFY_SERVICE,
                 client: Optional[httpx.Client] = None):
        domain, _, name = service.partition(".")
        self.url = f"{base_url.rstrip('/')}/api/services/{domain}/{name or 'notify'}"
        self._client = client or httpx.Client(timeout=HA_TIMEOUT_SEC)
        self._headers = {"Authorization": f"Bearer {token}"}

    def emit_alert(self, kind: str, message: str) -> None:
        payload = {
            "title": ALERT_TITLES.get(kind, "Hydration Reminder"),
            "message": message,
            "data": {"tag": kind},
        }
        try:
            r = self._client.post(self.url, json=payload, headers=self._headers)
            r.raise_for_status()
            log.info("Alert %s delivered: %s", kind, message)
        except httpx.HTTPError as e:
            log.error("Error delivering %s alert: %s", kind, e)

    def close(self):
        self._client.close()


class InactivityReminder:
    """
    Repeating "you haven't logged water in a while" reminder.

    Reset on every logged intake. The default period is half the inactivity
    threshold and never shorter than the minimum delay.
    """

    def __init__(
        self,
        sink: AlertSink,
        threshold_sec: float = WATER_INACTIVITY_THRESHOLD_SEC,
        min_delay_sec: float = WATER_INACTIVITY_MIN_DELAY_SEC,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self._sink = sink
        self.threshold_sec = threshold_sec
        self.min_delay_sec = min_delay_sec
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self.delay_sec: Optional[float] = None

    def schedule(self, delay_sec: Optional[float] = None) -> float:
        delay = self.threshold_sec / 2 if delay_sec is None else delay_sec
        delay = max(delay, self.min_delay_sec)
        with self._lock:
            self._cancel_locked()
            self.delay_sec = delay
            self._timer = self._timer_factory(delay, self._fire)
            self._timer.daemon = True
            self._timer.start()
        log.info("Water inactivity reminder scheduled every %.0f seconds.", delay)
        return delay

    def schedule_from_last_log(self, last_log: Optional[datetime], now: datetime) -> float:
        """Startup scheduling: wait out what is left of the threshold."""
        if last_log is not None:
            elapsed = (now - last_log).total_seconds()
            if elapsed < self.threshold_sec:
                return self.schedule(self.threshold_sec - elapsed)
        return self.schedule(1)

    def reset(self) -> float:
        self.cancel()
        return self.schedule()

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            log.debug("Water inactivity reminder cancelled.")

    def _fire(self):
        self._sink.emit_alert(
            INACTIVITY,
            "You haven't logged water consumption in a while. Please log your water intake.",
        )
        with self._lock:
            if self._timer is None or self.delay_sec is None:
                return
            self._timer = self._timer_factory(self.delay_sec, self._fire)
            self._timer.daemon = True
            self._timer.start()
