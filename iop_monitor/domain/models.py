"""
Domain models for intraocular-pressure monitoring.

These models represent the core measurement concepts and are framework-agnostic.
They use Pydantic for validation but could be swapped to dataclasses if needed.
"""

import math
from datetime import UTC, datetime
from enum import Enum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator


class RiskTier(str, Enum):
    """Coarse clinical classification of a single reading."""

    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"


class ScanState(str, Enum):
    """States of a measurement session."""

    IDLE = "idle"
    ACQUIRING = "acquiring"
    SCANNING = "scanning"
    ANALYZING = "analyzing"
    RESULT = "result"
    DISCARDED = "discarded"


class TrendDirection(str, Enum):
    """Direction of pressure change across a trend window."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class Reading(BaseModel):
    """One timestamped IOP value in mmHg."""

    model_config = ConfigDict(frozen=True)  # Immutable once created

    timestamp: AwareDatetime = Field(default_factory=lambda: datetime.now(UTC))
    value: float = Field(description="Intraocular pressure in mmHg")

    @field_validator("value")
    @classmethod
    def value_must_be_finite_and_non_negative(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("pressure value must be finite")
        if v < 0:
            raise ValueError("pressure value must be non-negative")
        return v


class TrendSummary(BaseModel):
    """Derived statistics for a window of readings."""

    model_config = ConfigDict(frozen=True)

    direction: TrendDirection
    change: float = Field(description="Latest minus earliest value in mmHg")
    earliest: Reading
    latest: Reading
    latest_out_of_range: bool
    minimum: float
    maximum: float
    average: float
    count: int = Field(gt=0)
