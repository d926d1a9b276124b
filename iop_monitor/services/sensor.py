"""
Pressure sensor boundary.

The core never inspects raw sensor frames. It needs acquisition success or
failure, a releasable handle, and one pressure value per completed scan.
"""

from typing import Any, Protocol

SensorHandle = Any


class PressureSensor(Protocol):
    """
    Protocol for the tonometer / camera resource used during a session.

    ``acquire`` raises ``AcquisitionDenied`` when the resource is unavailable.
    ``release`` must tolerate being called for a handle that was already released.
    """

    def acquire(self) -> SensorHandle: ...

    def read_pressure(self, handle: SensorHandle) -> float: ...

    def release(self, handle: SensorHandle) -> None: ...
