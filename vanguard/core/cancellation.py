"""Cancellation tokens for superseded listing loads."""

from __future__ import annotations

from typing import Optional


class CancellationToken:
    """Marks one in-flight load; results are applied only while it is live."""

    def __init__(self, generation: int):
        self.generation = generation
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "live"
        return f"CancellationToken(generation={self.generation}, {state})"


class FetchSequencer:
    """Issues tokens so that a newer load always invalidates older ones."""

    def __init__(self):
        self._generation = 0
        self._current: Optional[CancellationToken] = None

    @property
    def current(self) -> Optional[CancellationToken]:
        return self._current

    def begin(self) -> CancellationToken:
        """Invalidate the in-flight token (if any) and start a new one."""
        if self._current is not None:
            self._current.cancel()
        self._generation += 1
        self._current = CancellationToken(self._generation)
        return self._current

    def is_current(self, token: CancellationToken) -> bool:
        return token is self._current and not token.cancelled

    def close(self) -> None:
        """Invalidate the in-flight token on shutdown."""
        if self._current is not None:
            self._current.cancel()
