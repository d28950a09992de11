"""Monotonic time and suspension primitives used by the executor."""

from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> float: ...

    def sleep(self, milliseconds: float) -> None: ...

    async def sleep_async(self, milliseconds: float) -> None: ...


class SystemClock:
    """Wall clock backed by ``time.monotonic``.

    ``sleep`` blocks the calling thread; ``sleep_async`` yields to the running
    event loop. A zero duration still yields (``time.sleep(0)`` releases the
    GIL, ``asyncio.sleep(0)`` runs one loop iteration).
    """

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def sleep(self, milliseconds: float) -> None:
        time.sleep(max(0.0, milliseconds) / 1000.0)

    async def sleep_async(self, milliseconds: float) -> None:
        await asyncio.sleep(max(0.0, milliseconds) / 1000.0)


SYSTEM_CLOCK = SystemClock()


def elapsed_ms(clock: Clock, started_ms: float) -> float:
    return clock.now_ms() - started_ms
