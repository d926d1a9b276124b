"""
Simulated tonometer.

Stands in for the wearable's pressure sensor. The RNG lives behind the same
seam as acquisition so a seeded or scripted double can replace it.
In production: this would wrap the device SDK's sensor session.
"""

import random
from dataclasses import dataclass

import structlog

from iop_monitor.config import SensorConfig
from iop_monitor.domain.errors import AcquisitionDenied

logger = structlog.get_logger(__name__)


@dataclass
class TonometerHandle:
    """Handle for one acquired sensor session."""

    handle_id: int
    released: bool = False


class SimulatedTonometer:
    """
    Simulated IOP sensor drawing readings uniformly from a configured range.

    Set ``available = False`` to simulate a device that is disconnected or a
    camera permission that was refused.
    """

    def __init__(
        self,
        config: SensorConfig | None = None,
        rng: random.Random | None = None,
        available: bool = True,
    ) -> None:
        self.config = config or SensorConfig()
        self.rng = rng or random.Random(self.config.seed)
        self.available = available
        self.logger = logger.bind(component="simulated_tonometer")

        self.acquire_count = 0
        self.release_count = 0
        self._next_id = 1
        self._active: TonometerHandle | None = None

    def acquire(self) -> TonometerHandle:
        if not self.available:
            self.logger.warning("sensor_unavailable")
            raise AcquisitionDenied("tonometer is not connected")
        if self._active is not None:
            raise AcquisitionDenied("tonometer is already in use by another session")

        handle = TonometerHandle(handle_id=self._next_id)
        self._next_id += 1
        self._active = handle
        self.acquire_count += 1
        self.logger.info("sensor_acquired", handle_id=handle.handle_id)
        return handle

    def read_pressure(self, handle: TonometerHandle) -> float:
        if handle.released or handle is not self._active:
            raise AcquisitionDenied(f"handle {handle.handle_id} is not active")
        value = self.rng.uniform(self.config.min_value, self.config.max_value)
        self.logger.debug("sensor_read", handle_id=handle.handle_id, raw_value=value)
        return value

    def release(self, handle: TonometerHandle) -> None:
        if handle.released:
            return
        handle.released = True
        if self._active is handle:
            self._active = None
        self.release_count += 1
        self.logger.info("sensor_released", handle_id=handle.handle_id)
