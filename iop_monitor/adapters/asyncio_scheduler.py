"""
Scheduler backed by an asyncio event loop.

Each callback runs as a plain loop callback, so two callbacks of the same
session can never interleave.
"""

import asyncio

from iop_monitor.services.scheduling import Callback


class AsyncioTicket:
    """Ticket wrapping the currently armed ``asyncio.TimerHandle``."""

    def __init__(self, interval_ms: int | None) -> None:
        self.interval_ms = interval_ms
        self.handle: asyncio.TimerHandle | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _cancel(self) -> None:
        self._cancelled = True
        if self.handle is not None:
            self.handle.cancel()
            self.handle = None


class AsyncioScheduler:
    """Scheduler using ``loop.call_later``; periodic callbacks re-arm themselves."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._tickets: set[AsyncioTicket] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tickets if not t.cancelled)

    def schedule_periodic(self, interval_ms: int, callback: Callback) -> AsyncioTicket:
        if interval_ms <= 0:
            raise ValueError("periodic interval must be positive")
        ticket = AsyncioTicket(interval_ms)

        def fire() -> None:
            if ticket.cancelled:
                return
            ticket.handle = self.loop.call_later(interval_ms / 1000, fire)
            callback()

        ticket.handle = self.loop.call_later(interval_ms / 1000, fire)
        self._tickets.add(ticket)
        return ticket

    def schedule_once(self, delay_ms: int, callback: Callback) -> AsyncioTicket:
        if delay_ms < 0:
            raise ValueError("delay must be non-negative")
        ticket = AsyncioTicket(None)

        def fire() -> None:
            if ticket.cancelled:
                return
            ticket._cancelled = True
            ticket.handle = None
            self._tickets.discard(ticket)
            callback()

        ticket.handle = self.loop.call_later(delay_ms / 1000, fire)
        self._tickets.add(ticket)
        return ticket

    def cancel(self, ticket: AsyncioTicket) -> None:
        ticket._cancel()
        self._tickets.discard(ticket)
