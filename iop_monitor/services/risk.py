"""
Risk classification of single IOP readings.

Closed-open intervals: a value exactly at a threshold belongs to the higher tier.
"""

import math
from numbers import Real

from iop_monitor.config import RiskThresholds
from iop_monitor.domain.errors import InvalidMeasurement
from iop_monitor.domain.models import Reading, RiskTier


def ensure_valid_measurement(value: object) -> float:
    """Return ``value`` as a float or raise ``InvalidMeasurement``."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidMeasurement(f"pressure value must be numeric, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidMeasurement(f"pressure value must be finite, got {value!r}")
    if value < 0:
        raise InvalidMeasurement(f"pressure value must be non-negative, got {value!r}")
    return value


def classify(value: float, moderate_threshold: float, high_threshold: float) -> RiskTier:
    """Map a pressure value to its risk tier."""
    value = ensure_valid_measurement(value)

    if value >= high_threshold:
        return RiskTier.HIGH
    if value >= moderate_threshold:
        return RiskTier.MODERATE
    return RiskTier.LOW


class RiskClassifier:
    """Classifier bound to a set of calibrated thresholds."""

    def __init__(self, thresholds: RiskThresholds | None = None) -> None:
        self.thresholds = thresholds or RiskThresholds()

    def classify(self, value: float | Reading) -> RiskTier:
        if isinstance(value, Reading):
            value = value.value
        return classify(value, self.thresholds.moderate, self.thresholds.high)
