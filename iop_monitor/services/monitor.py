"""
Service facade wiring the measurement core to its collaborators.

This is the caller the core expects:
1. Open a measurement session (one active session per store)
2. Run it on a scheduler until it produces a candidate reading
3. Commit or discard the candidate
4. Derive dashboard data, narrative insight and report from the store
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

import structlog
from pydantic import BaseModel, ConfigDict

from iop_monitor.adapters.asyncio_scheduler import AsyncioScheduler
from iop_monitor.adapters.tonometer import SimulatedTonometer
from iop_monitor.config import AppConfig, get_config
from iop_monitor.domain.errors import SessionStateError
from iop_monitor.domain.models import Reading, RiskTier, ScanState, TrendSummary
from iop_monitor.services.insight import InsightGenerator, NarrativeInsight
from iop_monitor.services.measurement import MeasurementSession
from iop_monitor.services.reading_store import ReadingStore
from iop_monitor.services.report import IOPReport, build_report
from iop_monitor.services.risk import RiskClassifier
from iop_monitor.services.scheduling import Scheduler
from iop_monitor.services.sensor import PressureSensor
from iop_monitor.services.trends import TrendAggregator

logger = structlog.get_logger(__name__)


class DashboardSnapshot(BaseModel):
    """Display data derived from the store's current contents."""

    model_config = ConfigDict(frozen=True)

    latest: Reading | None
    risk: RiskTier | None
    window: list[Reading]
    trend: TrendSummary | None
    reading_count: int


class IOPMonitorService:
    """
    Owns a ReadingStore and hands out measurement sessions against it.

    Concurrency contract: at most one active session per store. The service
    holds a single slot: opening a session claims it, and a session that
    returns to IDLE or ends gives it up. A session restarted later must win
    the slot back before it may touch the sensor.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        store: ReadingStore | None = None,
        sensor: PressureSensor | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] | None = None,
        insight_generator: InsightGenerator | None = None,
    ) -> None:
        self.config = config or get_config()
        self.store = store if store is not None else ReadingStore()
        self.sensor = sensor if sensor is not None else SimulatedTonometer(self.config.sensor)
        self.scheduler = scheduler
        self.clock = clock
        self.logger = logger.bind(component="iop_monitor_service")

        self.classifier = RiskClassifier(self.config.risk)
        self.aggregator = TrendAggregator(self.config.trend)
        self.insight_generator = insight_generator or InsightGenerator(
            self.config.insight,
            normal_range=self.config.trend.normal_range,
            stable_epsilon=self.config.trend.stable_epsilon,
        )

        self._active_session: MeasurementSession | None = None

    @property
    def active_session(self) -> MeasurementSession | None:
        return self._active_session

    def new_session(self, scheduler: Scheduler | None = None) -> MeasurementSession:
        """Open a session bound to this service's sensor, scheduler and timing."""
        if self.active_session is not None:
            raise SessionStateError(
                f"session {self._active_session.session_id} is still active for this store"
            )

        scheduler = scheduler or self.scheduler or AsyncioScheduler()
        session = MeasurementSession(
            self.sensor, scheduler, self.config.timing, clock=self.clock, admission=self._admit
        )
        session.add_listener(self._on_session_change)
        self._active_session = session
        self.logger.info("session_opened", session_id=session.session_id)
        return session

    async def measure(self, timeout_seconds: float | None = None) -> MeasurementSession:
        """
        Run a fresh session until it holds a candidate reading.

        Returns the session in RESULT; the caller decides to commit or discard.
        The session is aborted if the wait is cancelled or times out.
        """
        session = self.new_session()
        settled = asyncio.Event()

        def on_change(s: MeasurementSession) -> None:
            if s.state in (ScanState.RESULT, ScanState.DISCARDED):
                settled.set()

        session.add_listener(on_change)
        try:
            session.request_sensor_access()
            session.begin_measurement()
            await asyncio.wait_for(settled.wait(), timeout=timeout_seconds)
        except BaseException:
            self.abort(session)
            raise
        finally:
            session.remove_listener(on_change)

        if session.state is ScanState.DISCARDED and session.error is not None:
            raise session.error
        return session

    def commit(self, session: MeasurementSession) -> Reading:
        reading = session.commit(self.store)
        self._release_slot(session)
        return reading

    def discard(self, session: MeasurementSession) -> None:
        session.discard()
        self._release_slot(session)

    def abort(self, session: MeasurementSession) -> None:
        session.abort()
        self._release_slot(session)

    def classify_latest(self) -> RiskTier | None:
        latest = self.store.latest()
        return self.classifier.classify(latest) if latest is not None else None

    def dashboard(self) -> DashboardSnapshot:
        window = self.aggregator.recent_window(self.store)
        return DashboardSnapshot(
            latest=self.store.latest(),
            risk=self.classify_latest(),
            window=window,
            trend=self.aggregator.summarize(window),
            reading_count=len(self.store),
        )

    async def insight(self) -> NarrativeInsight:
        return await self.insight_generator.generate(self.aggregator.full_history(self.store))

    def report(self, insight: str | None = None) -> IOPReport:
        return build_report(
            self.aggregator.full_history(self.store),
            insight=insight,
            classifier=self.classifier,
            normal_range=self.config.trend.normal_range,
        )

    def _admit(self, session: MeasurementSession) -> None:
        if self._active_session is not None and self._active_session is not session:
            raise SessionStateError(
                f"session {self._active_session.session_id} is still active for this store"
            )
        if self._active_session is None:
            self._active_session = session
            self.logger.info("session_slot_reclaimed", session_id=session.session_id)

    def _on_session_change(self, session: MeasurementSession) -> None:
        if session.state in (ScanState.IDLE, ScanState.DISCARDED):
            self._release_slot(session)

    def _release_slot(self, session: MeasurementSession) -> None:
        if self._active_session is session:
            self._active_session = None
            self.logger.info("session_closed", session_id=session.session_id, state=session.state.value)
