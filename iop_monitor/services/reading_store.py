"""
Append-only, chronologically ordered reading history.

Concurrency contract: at most one active measurement session writes to a store.
The store itself defines no concurrent writers and takes no locks.
"""

from collections.abc import Iterable, Iterator
from datetime import UTC, datetime, timedelta

import structlog

from iop_monitor.domain.errors import OutOfOrderReading
from iop_monitor.domain.models import Reading

logger = structlog.get_logger(__name__)

# (days ago, mmHg) of the demo history shipped with the device app
SEED_HISTORY: tuple[tuple[int, float], ...] = (
    (14, 18.0),
    (12, 19.0),
    (10, 18.0),
    (7, 20.0),
    (5, 21.0),
    (3, 20.0),
    (1, 22.0),
)


class ReadingStore:
    """
    Ordered collection of readings with non-decreasing timestamps.

    History is an audit trail of device measurements: entries are only ever
    appended, never updated or removed.
    """

    def __init__(self) -> None:
        self._readings: list[Reading] = []
        self.logger = logger.bind(component="reading_store")

    @classmethod
    def from_readings(cls, readings: Iterable[Reading]) -> "ReadingStore":
        store = cls()
        for reading in readings:
            store.append(reading)
        return store

    def append(self, reading: Reading) -> None:
        """Add ``reading`` to the end of the history."""
        last = self.latest()
        if last is not None and reading.timestamp < last.timestamp:
            self.logger.warning(
                "out_of_order_reading_rejected",
                last_timestamp=last.timestamp.isoformat(),
                rejected_timestamp=reading.timestamp.isoformat(),
            )
            raise OutOfOrderReading(
                f"reading at {reading.timestamp.isoformat()} precedes "
                f"last stored reading at {last.timestamp.isoformat()}",
                last_timestamp=last.timestamp,
                rejected_timestamp=reading.timestamp,
            )

        self._readings.append(reading)
        self.logger.debug("reading_appended", value=reading.value, count=len(self._readings))

    def latest(self) -> Reading | None:
        return self._readings[-1] if self._readings else None

    @property
    def readings(self) -> tuple[Reading, ...]:
        """Snapshot of the history in insertion order."""
        return tuple(self._readings)

    def __len__(self) -> int:
        return len(self._readings)

    def __iter__(self) -> Iterator[Reading]:
        return iter(tuple(self._readings))

    def __bool__(self) -> bool:
        return bool(self._readings)


def seed_history(now: datetime | None = None) -> list[Reading]:
    """Demo readings from the past two weeks, oldest first."""
    now = now or datetime.now(UTC)
    return [Reading(timestamp=now - timedelta(days=days), value=value) for days, value in SEED_HISTORY]
