"""Tri-state readiness results and probe builders."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from resilact.errors import ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class NotReady:
    """Condition does not hold yet; keep polling."""

    kind = ErrorKind.NOT_READY


@dataclass(frozen=True)
class Ready(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failed:
    """Condition can never hold; the executor aborts without retrying."""

    error: BaseException


ProbeResult = Union[NotReady, Ready[T], Failed]
Probe = Callable[[], ProbeResult]
AsyncProbe = Callable[[], Union[ProbeResult, Awaitable[ProbeResult]]]

_NOT_READY = NotReady()


def not_ready() -> NotReady:
    return _NOT_READY


def ready(value: T) -> Ready[T]:
    return Ready(value)


def failed(error: BaseException | str) -> Failed:
    if isinstance(error, str):
        error = RuntimeError(error)
    return Failed(error)


def always_ready(value: Any = None) -> Probe:
    def _probe() -> ProbeResult:
        return Ready(value)

    return _probe


def from_predicate(check: Callable[[], object]) -> Probe:
    """Ready with the truthy value returned by ``check``; NotReady otherwise."""

    def _probe() -> ProbeResult:
        result = check()
        if result:
            return Ready(result)
        return _NOT_READY

    return _probe


def from_value(getter: Callable[[], T | None]) -> Probe:
    """Ready as soon as ``getter`` returns something other than ``None``."""

    def _probe() -> ProbeResult:
        value = getter()
        if value is None:
            return _NOT_READY
        return Ready(value)

    return _probe


def count_equals(counter: Callable[[], int], expected: int) -> Probe:
    if expected < 0:
        raise ValueError(f"Expected count must be non-negative: {expected}")

    def _probe() -> ProbeResult:
        count = counter()
        if count == expected:
            return Ready(count)
        return _NOT_READY

    return _probe


def all_of(*probes: Probe) -> Probe:
    """Ready with a tuple of values once every probe is ready.

    Probes are checked in order and the first Failed or NotReady result is
    returned as-is, so later probes are not called on that tick.
    """
    if not probes:
        raise ValueError("all_of() needs at least one probe")

    def _probe() -> ProbeResult:
        values: list[Any] = []
        for probe in probes:
            result = probe()
            if not isinstance(result, Ready):
                return result
            values.append(result.value)
        return Ready(tuple(values))

    return _probe
