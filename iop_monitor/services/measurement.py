"""
Timed measurement session state machine.

A session walks one measurement from sensor acquisition to a candidate reading:

    IDLE -> ACQUIRING -> SCANNING -> ANALYZING -> RESULT -> IDLE
                 \\           \\            \\          \\
                  +-----------+------------+----------+--> DISCARDED (abort / sensor error)

Key design decisions:
- Explicit state object with caller-invoked commands (start, commit, discard, abort)
- Timing comes from an injected Scheduler, never from a UI render cycle
- Every progression step (tick or deferred completion) is atomic and non-reentrant
- The sensor handle is a scoped resource released exactly once on every exit path

Concurrency contract: at most one active session per ReadingStore. The session
does not defend against a caller running two at once.
"""

import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

import structlog

from iop_monitor.config import ScanTiming
from iop_monitor.domain.errors import (
    AcquisitionDenied,
    SessionStateError,
    TimerLeak,
)
from iop_monitor.domain.models import Reading, ScanState
from iop_monitor.services.reading_store import ReadingStore
from iop_monitor.services.risk import ensure_valid_measurement
from iop_monitor.services.scheduling import Scheduler, Ticket
from iop_monitor.services.sensor import PressureSensor, SensorHandle

logger = structlog.get_logger(__name__)

SessionListener = Callable[["MeasurementSession"], None]
AdmissionCheck = Callable[["MeasurementSession"], None]

ACTIVE_STATES = frozenset(
    {ScanState.ACQUIRING, ScanState.SCANNING, ScanState.ANALYZING, ScanState.RESULT}
)


class MeasurementSession:
    """
    One run of the acquisition-to-result workflow.

    The session mutates only through its own scheduled steps and the explicit
    commands below. It produces exactly one candidate reading per successful
    run, rounded to one decimal place.
    """

    def __init__(
        self,
        sensor: PressureSensor,
        scheduler: Scheduler,
        timing: ScanTiming | None = None,
        clock: Callable[[], datetime] | None = None,
        admission: AdmissionCheck | None = None,
    ) -> None:
        self.sensor = sensor
        self.scheduler = scheduler
        self.timing = timing or ScanTiming()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._admission = admission

        self.session_id = uuid.uuid4().hex[:8]
        self.logger = logger.bind(component="measurement_session", session_id=self.session_id)

        self.state = ScanState.IDLE
        self.progress = 0
        self.result: Reading | None = None
        self.error: Exception | None = None

        self._handle: SensorHandle | None = None
        self._tick_ticket: Ticket | None = None
        self._analysis_ticket: Ticket | None = None
        self._in_step = False
        self._listeners: list[SessionListener] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def pending_timers(self) -> int:
        return int(self._tick_ticket is not None) + int(self._analysis_ticket is not None)

    @property
    def holds_sensor(self) -> bool:
        return self._handle is not None

    def add_listener(self, listener: SessionListener) -> None:
        """Register a callback invoked after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def request_sensor_access(self) -> None:
        """
        IDLE -> ACQUIRING. Raises AcquisitionDenied and stays IDLE on refusal.

        The admission check, when given, runs before the sensor is touched and
        may refuse the run by raising.
        """
        self._require(ScanState.IDLE, "request_sensor_access")
        if self._admission is not None:
            self._admission(self)

        self.progress = 0
        self.result = None
        self.error = None

        try:
            handle = self.sensor.acquire()
        except AcquisitionDenied as e:
            self.error = e
            self.logger.warning("sensor_access_denied", error=str(e))
            raise
        except OSError as e:
            denied = AcquisitionDenied(f"sensor access failed: {e}")
            self.error = denied
            self.logger.warning("sensor_access_denied", error=str(e))
            raise denied from e

        self._handle = handle
        self._set_state(ScanState.ACQUIRING)

    def begin_measurement(self) -> None:
        """ACQUIRING -> SCANNING. Starts the periodic progress tick."""
        self._require(ScanState.ACQUIRING, "begin_measurement")
        if self._tick_ticket is not None:
            raise TimerLeak(f"session {self.session_id} already has an active tick")

        self._tick_ticket = self.scheduler.schedule_periodic(
            self.timing.tick_interval_ms, self._tick
        )
        self.logger.info(
            "scan_started",
            tick_interval_ms=self.timing.tick_interval_ms,
            progress_step=self.timing.progress_step,
        )
        self._set_state(ScanState.SCANNING)

    def commit(self, store: ReadingStore) -> Reading:
        """
        RESULT -> IDLE, appending the candidate to ``store``.

        If the store rejects the reading the session stays in RESULT so the
        caller can still discard it.
        """
        self._require(ScanState.RESULT, "commit")
        reading = self.result
        if reading is None:
            raise SessionStateError(f"session {self.session_id} has no candidate reading")

        store.append(reading)

        self.result = None
        self._release_sensor()
        self.logger.info("reading_committed", value=reading.value)
        self._set_state(ScanState.IDLE)
        return reading

    def discard(self) -> None:
        """RESULT -> IDLE, throwing the candidate away."""
        self._require(ScanState.RESULT, "discard")

        value = self.result.value if self.result else None
        self.result = None
        self._release_sensor()
        self.logger.info("reading_discarded", value=value)
        self._set_state(ScanState.IDLE)

    def abort(self) -> None:
        """
        Forcibly terminate the session from any state.

        Cancels pending timers and releases the sensor. Aborting in RESULT
        throws the uncommitted candidate away. Safe to call repeatedly and
        after the session has ended; a no-op once nothing is held.
        """
        was_active = self.is_active

        self._cancel_tick()
        self._cancel_analysis()
        self._release_sensor()

        if was_active:
            self.result = None
            self.logger.info("session_aborted", progress=self.progress)
            self._set_state(ScanState.DISCARDED)

    # ------------------------------------------------------------------
    # Scheduled steps
    # ------------------------------------------------------------------

    def _tick(self) -> None:
        if self.state is not ScanState.SCANNING:
            return

        with self._step("tick"):
            self.progress = min(100, self.progress + self.timing.progress_step)
            if self.progress < 100:
                return

            self._cancel_tick()
            if self._analysis_ticket is not None:
                raise TimerLeak(f"session {self.session_id} already has a pending analysis")
            self._analysis_ticket = self.scheduler.schedule_once(
                self.timing.analysis_delay_ms, self._complete_analysis
            )
            self.logger.info("scan_progress_complete", analysis_delay_ms=self.timing.analysis_delay_ms)
            self._set_state(ScanState.ANALYZING)

    def _complete_analysis(self) -> None:
        self._analysis_ticket = None
        if self.state is not ScanState.ANALYZING:
            return

        with self._step("analysis"):
            try:
                raw = self.sensor.read_pressure(self._handle)
                value = round(ensure_valid_measurement(raw), 1)
            except Exception as e:
                self.error = e
                self.logger.error("sensor_read_failed", error=str(e))
                self._release_sensor()
                self._set_state(ScanState.DISCARDED)
                raise

            self.result = Reading(timestamp=self._clock(), value=value)
            self.logger.info("scan_completed", value=value)
            self._set_state(ScanState.RESULT)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _step(self, name: str) -> Iterator[None]:
        if self._in_step:
            raise TimerLeak(f"{name} step re-entered while another step of {self.session_id} runs")
        self._in_step = True
        try:
            yield
        finally:
            self._in_step = False

    def _require(self, expected: ScanState, command: str) -> None:
        if self.state is not expected:
            raise SessionStateError(
                f"{command}() requires state {expected.value}, session is {self.state.value}"
            )

    def _set_state(self, new_state: ScanState) -> None:
        old_state = self.state
        self.state = new_state
        self.logger.debug(
            "session_state_changed",
            from_state=old_state.value,
            to_state=new_state.value,
            progress=self.progress,
        )
        for listener in list(self._listeners):
            listener(self)

    def _cancel_tick(self) -> None:
        ticket, self._tick_ticket = self._tick_ticket, None
        if ticket is not None:
            self.scheduler.cancel(ticket)

    def _cancel_analysis(self) -> None:
        ticket, self._analysis_ticket = self._analysis_ticket, None
        if ticket is not None:
            self.scheduler.cancel(ticket)

    def _release_sensor(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            self.sensor.release(handle)
