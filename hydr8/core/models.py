"""
Persisted document shapes and the ephemeral signal snapshot.

WaterLogs:   [ {amount, date} ]
RiskEntries: [ {id, date, risk} ]
UserProfile: {age, weight, sex, location}
"""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class WaterLogEntry(BaseModel):
    """One intake event. amount in ml, date is local time."""
    model_config = ConfigDict(frozen=True)

    amount: float = Field(..., ge=0, allow_inf_nan=False)
    date: datetime


class RiskEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    date: datetime
    risk: float = Field(..., ge=0.0, le=1.0, allow_inf_nan=False)


class UserProfile(BaseModel):
    age: int = Field(..., gt=0)
    weight: float = Field(..., gt=0, allow_inf_nan=False)  # lb
    sex: Literal["male", "female"]
    location: str = ""

    @field_validator("sex", mode="before")
    @classmethod
    def _lower_sex(cls, v):
        # Onboarding stored "Male" / "Female"
        return v.lower() if isinstance(v, str) else v


# Cumulative "today" counters; they restart at local midnight
DAILY_TOTAL_FIELDS = ("step_count", "active_energy", "exercise_minutes", "distance")


class SignalSnapshot(BaseModel):
    """Latest physiological/activity readings. Any field may be missing."""
    model_config = ConfigDict(allow_inf_nan=False)

    heart_rate: Optional[float] = None        # bpm
    step_count: Optional[float] = None        # steps today
    active_energy: Optional[float] = None     # kcal today
    exercise_minutes: Optional[float] = None  # min today
    distance: Optional[float] = None          # m today
    body_temperature: Optional[float] = None  # °C

    def merged(self, override: Optional["SignalSnapshot"]) -> "SignalSnapshot":
        """Return a copy where every non-null field of `override` wins."""
        if override is None:
            return self
        return self.model_copy(update=override.model_dump(exclude_none=True))

    def without_daily_totals(self) -> "SignalSnapshot":
        """Copy with the per-day counters cleared (new calendar day)."""
        return self.model_copy(update={name: None for name in DAILY_TOTAL_FIELDS})


WATER_LOGS_ADAPTER = TypeAdapter(list[WaterLogEntry])
RISK_ENTRIES_ADAPTER = TypeAdapter(list[RiskEntry])
THROTTLE_ADAPTER = TypeAdapter(dict[str, datetime])
