"""
External health-signal collaborator.

The engine only needs fetch() -> SignalSnapshot. The Home Assistant source
reads one sensor entity per snapshot field; anything unavailable comes back
as None and is later replaced by a neutral default (resting HR, zero
activity, normal temperature).
"""

import logging
import math
from typing import Optional, Protocol

import httpx

from hydr8.config import HA_SENSORS, HA_TIMEOUT_SEC
from hydr8.core.models import SignalSnapshot

log = logging.getLogger("hydr8.signals")


class SignalSource(Protocol):
    def fetch(self) -> SignalSnapshot: ...


class StaticSignalSource:
    """Returns whatever snapshot was last handed to it."""

    def __init__(self, snapshot: Optional[SignalSnapshot] = None):
        self.snapshot = snapshot or SignalSnapshot()

    def fetch(self) -> SignalSnapshot:
        return self.snapshot


def _parse_state(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw in ("unknown", "unavailable", ""):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


class HomeAssistantSignalSource:
    """GET {HA_URL}/api/states/<entity_id> for each configured sensor."""

    def __init__(self, base_url: str, token: str,
                 sensors: Optional[dict] = None,
                 client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.sensors = sensors if sensors is not None else HA_SENSORS
        self._client = client or httpx.Client(timeout=HA_TIMEOUT_SEC)
        self._headers = {"Authorization": f"Bearer {token}"}

    def _read(self, entity_id: str) -> Optional[float]:
        try:
            r = self._client.get(f"{self.base_url}/api/states/{entity_id}", headers=self._headers)
            r.raise_for_status()
            return _parse_state(r.json().get("state"))
        except httpx.HTTPError as e:
            log.warning("HA sensor %s unavailable: %s", entity_id, e)
        except ValueError as e:
            log.warning("HA sensor %s returned invalid JSON: %s", entity_id, e)
        return None

    def fetch(self) -> SignalSnapshot:
        values = {field: self._read(entity) for field, entity in self.sensors.items()}
        snapshot = SignalSnapshot(**values)
        log.debug("HA snapshot: %s", snapshot.model_dump(exclude_none=True))
        return snapshot

    def close(self):
        self._client.close()
