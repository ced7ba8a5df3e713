"""Cancellation token threaded through a single logical call.

A ``CallContext`` is created per call (or shared by calls that should be
cancelled together). It fires either when ``cancel()`` is invoked from any
thread or when its optional deadline passes.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from courier.domain.errors import CancelledError, DeadlineExceededError


class CallContext:
    """Cancellation token with an optional deadline"""

    def __init__(self, timeout: Optional[float] = None):
        """Initialize context

        Args:
            timeout: Seconds until the context expires (None = no deadline)
        """
        self._event = threading.Event()
        self._deadline: Optional[float] = None
        if timeout is not None:
            self._deadline = time.monotonic() + max(timeout, 0.0)

    @classmethod
    def background(cls) -> "CallContext":
        """Context that never fires on its own"""
        return cls()

    def cancel(self) -> None:
        self._event.set()

    def _expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self._expired()

    def err(self) -> Optional[CancelledError]:
        """Error describing why the context fired, or None if it has not"""
        if self._event.is_set():
            return CancelledError()
        if self._expired():
            return DeadlineExceededError()
        return None

    def remaining(self, default: float) -> float:
        """Seconds left before the deadline, capped at ``default``"""
        if self._deadline is None:
            return default
        return max(0.0, min(default, self._deadline - time.monotonic()))

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True as soon as the context fires.

        The deadline counts as firing, so a wait that would outlast it is cut
        short at the deadline.
        """
        end = time.monotonic() + max(seconds, 0.0)
        if self._deadline is not None:
            end = min(end, self._deadline)
        while not self.cancelled:
            left = end - time.monotonic()
            if left <= 0:
                return self.cancelled
            self._event.wait(left)
        return True
