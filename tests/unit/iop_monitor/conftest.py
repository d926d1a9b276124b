"""Shared test doubles for the IOP monitor core."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

import pytest

from iop_monitor.config import AppConfig, ScanTiming
from iop_monitor.domain.errors import AcquisitionDenied
from iop_monitor.domain.models import Reading
from iop_monitor.services.measurement import MeasurementSession
from iop_monitor.services.reading_store import ReadingStore
from iop_monitor.services.scheduling import ManualScheduler

START = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


class ScriptedSensor:
    """Test double that implements the PressureSensor protocol with scripted values."""

    def __init__(
        self,
        values: Iterable[float] = (26.4,),
        available: bool = True,
        read_error: Exception | None = None,
    ) -> None:
        self.values = list(values)
        self.available = available
        self.read_error = read_error
        self.acquired: list[object] = []
        self.released: list[object] = []

    def acquire(self) -> object:
        if not self.available:
            raise AcquisitionDenied("camera permission refused")
        handle = object()
        self.acquired.append(handle)
        return handle

    def read_pressure(self, handle: object) -> float:
        assert handle in self.acquired
        if self.read_error is not None:
            raise self.read_error
        return self.values.pop(0)

    def release(self, handle: object) -> None:
        self.released.append(handle)


class StepClock:
    """Clock that advances one minute per call."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current += timedelta(minutes=1)
        return now


def readings_at(values: Iterable[float], start: datetime = START) -> list[Reading]:
    """Readings one day apart starting at ``start``."""
    return [Reading(timestamp=start + timedelta(days=i), value=v) for i, v in enumerate(values)]


@pytest.fixture
def timing() -> ScanTiming:
    return ScanTiming()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def sensor() -> ScriptedSensor:
    return ScriptedSensor()


@pytest.fixture
def clock() -> StepClock:
    return StepClock(START + timedelta(days=30))


@pytest.fixture
def store() -> ReadingStore:
    return ReadingStore()


@pytest.fixture
def session(
    sensor: ScriptedSensor, scheduler: ManualScheduler, timing: ScanTiming, clock: StepClock
) -> MeasurementSession:
    return MeasurementSession(sensor, scheduler, timing, clock=clock)


@pytest.fixture
def app_config() -> AppConfig:
    """Defaults only; never reads the environment."""
    return AppConfig()
