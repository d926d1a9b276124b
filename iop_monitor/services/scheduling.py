"""
Scheduler abstraction used by measurement sessions.

The session never owns a clock or an event loop. Any timer facility that can
run a callback periodically or once, and cancel it, satisfies the protocol.
Cancellation is idempotent on every implementation.
"""

import heapq
import itertools
from collections.abc import Callable
from typing import Protocol

Callback = Callable[[], None]


class Ticket(Protocol):
    """Handle for a scheduled callback."""

    @property
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Timer facility injected into a measurement session."""

    def schedule_periodic(self, interval_ms: int, callback: Callback) -> Ticket: ...

    def schedule_once(self, delay_ms: int, callback: Callback) -> Ticket: ...

    def cancel(self, ticket: Ticket) -> None: ...


class ManualTicket:
    """Ticket issued by ``ManualScheduler``."""

    def __init__(self, ticket_id: int, interval_ms: int | None, callback: Callback) -> None:
        self.ticket_id = ticket_id
        self.interval_ms = interval_ms
        self.callback = callback
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def periodic(self) -> bool:
        return self.interval_ms is not None

    def __repr__(self) -> str:
        kind = "periodic" if self.periodic else "once"
        return f"ManualTicket(id={self.ticket_id}, {kind}, cancelled={self._cancelled})"


class ManualScheduler:
    """
    Virtual-clock scheduler driven explicitly by ``advance()``.

    Callbacks run synchronously inside ``advance`` in due-time order, so tests
    and replays are fully deterministic. Exceptions raised by a callback
    propagate out of ``advance``.
    """

    def __init__(self) -> None:
        self.now_ms = 0
        self._queue: list[tuple[int, int, ManualTicket]] = []
        self._ids = itertools.count(1)

    def schedule_periodic(self, interval_ms: int, callback: Callback) -> ManualTicket:
        if interval_ms <= 0:
            raise ValueError("periodic interval must be positive")
        ticket = ManualTicket(next(self._ids), interval_ms, callback)
        self._push(self.now_ms + interval_ms, ticket)
        return ticket

    def schedule_once(self, delay_ms: int, callback: Callback) -> ManualTicket:
        if delay_ms < 0:
            raise ValueError("delay must be non-negative")
        ticket = ManualTicket(next(self._ids), None, callback)
        self._push(self.now_ms + delay_ms, ticket)
        return ticket

    def cancel(self, ticket: ManualTicket) -> None:
        ticket._cancelled = True

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not been cancelled."""
        return len({t.ticket_id for _, _, t in self._queue if not t.cancelled})

    def advance(self, ms: int) -> None:
        """Move the virtual clock forward, running every callback that falls due."""
        if ms < 0:
            raise ValueError("cannot move the clock backwards")
        target = self.now_ms + ms

        while self._queue and self._queue[0][0] <= target:
            due, _, ticket = heapq.heappop(self._queue)
            if ticket.cancelled:
                continue
            self.now_ms = due
            if ticket.periodic:
                self._push(due + ticket.interval_ms, ticket)
            else:
                ticket._cancelled = True
            ticket.callback()

        self.now_ms = target

    def run_until_idle(self, limit_ms: int = 60_000) -> None:
        """Advance until nothing is pending or ``limit_ms`` of virtual time passes."""
        deadline = self.now_ms + limit_ms
        while self.pending and self.now_ms < deadline:
            next_due = min(due for due, _, t in self._queue if not t.cancelled)
            self.advance(max(0, min(next_due, deadline) - self.now_ms))

    def _push(self, due: int, ticket: ManualTicket) -> None:
        heapq.heappush(self._queue, (due, next(self._ids), ticket))
