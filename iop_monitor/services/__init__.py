"""
Core services for the IOP monitor.

This package contains the measurement state machine, risk classification,
trend aggregation and the reading history. The service facade lives in
``iop_monitor.services.monitor`` and is imported from there directly.
"""

from .measurement import MeasurementSession
from .reading_store import ReadingStore, seed_history
from .risk import RiskClassifier, classify
from .scheduling import ManualScheduler, Scheduler, Ticket
from .sensor import PressureSensor
from .trends import TrendAggregator, full_history, recent_window, summarize_trend

__all__ = [
    "MeasurementSession",
    "ReadingStore",
    "seed_history",
    "RiskClassifier",
    "classify",
    "ManualScheduler",
    "Scheduler",
    "Ticket",
    "PressureSensor",
    "TrendAggregator",
    "full_history",
    "recent_window",
    "summarize_trend",
]
