from __future__ import annotations

from pathlib import Path

import pytest

from resilact.config import TIMEOUT_OVERRIDE_ENV


class FakeClock:
    """Virtual clock: ``sleep`` advances time instantly and records durations."""

    def __init__(self, start_ms: float = 0.0, *, tick_ms: float = 0.0) -> None:
        self.now = start_ms
        self.tick_ms = tick_ms
        self.sleeps: list[float] = []

    def now_ms(self) -> float:
        return self.now

    def advance(self, milliseconds: float) -> None:
        self.now += milliseconds

    def sleep(self, milliseconds: float) -> None:
        self.sleeps.append(milliseconds)
        self.now += max(milliseconds, self.tick_ms)

    async def sleep_async(self, milliseconds: float) -> None:
        self.sleep(milliseconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _clear_timeout_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(TIMEOUT_OVERRIDE_ENV, raising=False)


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))
        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)


@pytest.fixture
def make_clock() -> type[FakeClock]:
    return FakeClock
