"""External cancellation signal checked between polls."""

from __future__ import annotations

import threading

from resilact.clock import SYSTEM_CLOCK, Clock
from resilact.errors import CancelledError


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = ""
        self._deadline_ms: float | None = None
        self._clock: Clock = SYSTEM_CLOCK

    @classmethod
    def after(cls, milliseconds: float, clock: Clock | None = None) -> CancellationToken:
        """Token that reports cancellation once ``milliseconds`` have passed."""
        token = cls()
        token._clock = clock or SYSTEM_CLOCK
        token._deadline_ms = token._clock.now_ms() + milliseconds
        return token

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline_ms is not None and self._clock.now_ms() >= self._deadline_ms:
            self.cancel("cancellation deadline reached")
            return True
        return False

    @property
    def reason(self) -> str:
        return self._reason

    def to_error(self) -> CancelledError:
        return CancelledError(self._reason or "cancelled")
