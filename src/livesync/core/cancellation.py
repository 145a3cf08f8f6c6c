"""
LiveSync cancellation support.

Provides a cooperative cancellation token carrying an optional deadline,
used to bound a whole sync cycle and every network operation inside it.
"""

from __future__ import annotations

import threading
import time

from livesync.core.errors import SyncCancelledError


class CancellationToken:
    """Cancellation flag with an optional deadline and parent token."""

    def __init__(
        self,
        timeout: float | None = None,
        parent: CancellationToken | None = None,
    ) -> None:
        self._cancelled = threading.Event()
        self._parent = parent
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @property
    def is_cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.is_cancelled

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled.set()

    def check_cancelled(self) -> None:
        """Raise SyncCancelledError if cancelled or past the deadline."""
        if self.is_cancelled:
            raise SyncCancelledError("Sync cycle was cancelled")

    def remaining(self) -> float | None:
        """Seconds left before the nearest deadline, or None if unbounded."""
        remaining: float | None = None
        if self._deadline is not None:
            remaining = max(0.0, self._deadline - time.monotonic())
        if self._parent is not None:
            parent_remaining = self._parent.remaining()
            if parent_remaining is not None:
                remaining = (
                    parent_remaining if remaining is None else min(remaining, parent_remaining)
                )
        return remaining

    def bounded(self, limit: float) -> float:
        """
        Timeout for a single operation: the smaller of `limit` and the time
        left on this token. Raises if nothing is left.
        """
        self.check_cancelled()
        remaining = self.remaining()
        if remaining is None:
            return limit
        if remaining <= 0:
            raise SyncCancelledError("Sync cycle deadline exceeded")
        return min(limit, remaining)

    def child(self, timeout: float | None = None) -> CancellationToken:
        """Create a linked token, cancelled whenever this one is."""
        return CancellationToken(timeout=timeout, parent=self)

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`, waking early on cancel. Returns is_cancelled."""
        self._cancelled.wait(seconds)
        return self.is_cancelled
