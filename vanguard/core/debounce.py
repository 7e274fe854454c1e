"""Asyncio debounce primitive for free-text search input."""

from __future__ import annotations

import asyncio
from typing import Callable, Generic, List, Optional, TypeVar

from vanguard.core.logging import get_logger

log = get_logger("debounce")

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Emits only the last pushed value after ``delay_ms`` of inactivity.

    Every ``push`` cancels the pending emission and restarts the timer, so a
    burst of values collapses into a single emission of the final one. The
    timer is an event-loop ``call_later`` handle; emission runs on the loop
    thread, never in parallel with the caller.

    Usage:
        debouncer = Debouncer(300, on_emit=view.set_search)
        debouncer.push("bit")
        debouncer.push("bitcoin")   # "bit" is never emitted
        value = await debouncer.wait()
    """

    def __init__(self, delay_ms: int, on_emit: Optional[Callable[[T], None]] = None):
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        self.delay_ms = delay_ms
        self.on_emit = on_emit
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending: Optional[T] = None
        self._waiters: List[asyncio.Future] = []
        self.last_emitted: Optional[T] = None

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: T) -> None:
        """Record a raw value and restart the quiet-window timer."""
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._pending = value
        self._handle = loop.call_later(self.delay_seconds, self._fire)

    def cancel(self) -> None:
        """Drop the pending value, if any, without emitting it.

        Anyone blocked in ``wait()`` gets ``asyncio.CancelledError``.
        """
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending = None

        waiters, self._waiters = self._waiters, []
        for future in waiters:
            if not future.done():
                future.cancel()

    async def wait(self) -> T:
        """Wait for the next emission and return the emitted value."""
        future = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        return await future

    def _fire(self) -> None:
        value = self._pending
        self._handle = None
        self._pending = None
        self.last_emitted = value
        log.debug(f"Debounced value settled: {value!r}")

        if self.on_emit is not None:
            self.on_emit(value)

        waiters, self._waiters = self._waiters, []
        for future in waiters:
            if not future.done():
                future.set_result(value)
