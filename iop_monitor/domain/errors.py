"""
Error taxonomy for the IOP monitor core.

Every error is reported to the immediate caller. The core never retries;
retry/backoff around sensor access is a caller-level policy.
"""


class IOPMonitorError(Exception):
    """Base class for all errors raised by the monitor core."""


class AcquisitionDenied(IOPMonitorError, ConnectionError):
    """The pressure sensor is unavailable or access was refused."""


class InvalidMeasurement(IOPMonitorError, ValueError):
    """A pressure value is non-numeric, non-finite or negative."""


class OutOfOrderReading(IOPMonitorError, ValueError):
    """A reading's timestamp precedes the last reading already stored."""

    def __init__(self, message: str, *, last_timestamp=None, rejected_timestamp=None) -> None:
        super().__init__(message)
        self.last_timestamp = last_timestamp
        self.rejected_timestamp = rejected_timestamp


class TimerLeak(IOPMonitorError, RuntimeError):
    """More than one periodic tick or deferred action exists for a session."""


class SessionStateError(IOPMonitorError, RuntimeError):
    """A session command was issued in a state that does not accept it."""
