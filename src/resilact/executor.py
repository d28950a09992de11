"""Resilient action executor: poll a probe, act on readiness, retry on failure."""

from __future__ import annotations

import inspect
import logging as py_logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar, Union

from resilact.cancellation import CancellationToken
from resilact.clock import SYSTEM_CLOCK, Clock
from resilact.errors import ErrorKind, FatalError
from resilact.logging import outcome_level
from resilact.outcome import Aborted, ExhaustedRetries, Outcome, Success, TimedOut
from resilact.policy import RetryPolicy
from resilact.probe import AsyncProbe, Failed, NotReady, Probe, ProbeResult, Ready

logger = py_logging.getLogger(__name__)

R = TypeVar("R")

Action = Callable[[Any], R]
AsyncAction = Callable[[Any], Union[R, Awaitable[R]]]


class ExecutorState(str, Enum):
    POLLING = "polling"
    ACTING = "acting"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    ABORTED = "aborted"
    EXHAUSTED_RETRIES = "exhausted_retries"


_TERMINAL_STATES = {
    Success: ExecutorState.SUCCEEDED,
    TimedOut: ExecutorState.TIMED_OUT,
    Aborted: ExecutorState.ABORTED,
    ExhaustedRetries: ExecutorState.EXHAUSTED_RETRIES,
}


class _Invocation:
    """Per-call bookkeeping shared by the blocking and cooperative loops."""

    def __init__(
        self,
        policy: RetryPolicy,
        clock: Clock,
        cancel: CancellationToken | None,
        label: str,
    ) -> None:
        self.policy = policy
        self.clock = clock
        self.cancel = cancel
        self.label = label
        self.attempt = 0
        self.interval = float(policy.poll_interval_ms)
        self.state = ExecutorState.POLLING
        self.started_ms = clock.now_ms()

    def _move(self, state: ExecutorState) -> None:
        if state is not self.state:
            logger.debug("%s: %s -> %s", self.label, self.state.value, state.value)
            self.state = state

    def _finish(self, outcome: Outcome) -> Outcome:
        self._move(_TERMINAL_STATES[type(outcome)])
        logger.log(outcome_level(outcome), "%s %s", self.label, outcome.describe())
        return outcome

    def remaining_ms(self) -> float:
        return self.policy.timeout_ms - (self.clock.now_ms() - self.started_ms)

    def check_bounds(self) -> Outcome | None:
        if self.cancel is not None and self.cancel.cancelled:
            return self._finish(Aborted(self.cancel.to_error(), ErrorKind.CANCELLED))
        if self.remaining_ms() <= 0:
            return self._finish(TimedOut(self.attempt))
        return None

    def call_probe(self, probe: Callable[[], Any]) -> Any:
        try:
            return probe()
        except Exception as exc:
            logger.debug("%s probe raised %r", self.label, exc)
            return Failed(exc)

    def on_probe(self, result: ProbeResult) -> Outcome | Ready | None:
        """Terminal outcome, the Ready result, or None to keep polling."""
        if isinstance(result, Failed):
            return self._finish(Aborted(result.error))
        if isinstance(result, NotReady):
            logger.debug("%s %s", self.label, result.kind.value)
            self._move(ExecutorState.POLLING)
            return None
        if isinstance(result, Ready):
            self.attempt += 1
            self._move(ExecutorState.ACTING)
            logger.debug(
                "%s attempt %s/%s", self.label, self.attempt, self.policy.max_attempts
            )
            return result
        raise TypeError(f"Probe returned {type(result).__name__}, expected a probe result")

    def on_action_error(self, exc: Exception) -> Outcome | None:
        if isinstance(exc, FatalError):
            return self._finish(Aborted(exc, ErrorKind.ACTION_FAILED))
        if self.attempt >= self.policy.max_attempts:
            return self._finish(ExhaustedRetries(exc, self.attempt))
        logger.info(
            "%s attempt %s failed, re-probing: %s", self.label, self.attempt, exc
        )
        self._move(ExecutorState.POLLING)
        return None

    def on_success(self, value: Any) -> Outcome:
        return self._finish(Success(value, self.attempt))

    def take_interval(self) -> float:
        """Sleep duration for this wait, clipped to the remaining budget."""
        duration = min(self.interval, max(0.0, self.remaining_ms()))
        self.interval = self.policy.next_interval(self.interval)
        return duration


def execute(
    probe: Probe,
    action: Action[R],
    *,
    policy: RetryPolicy,
    clock: Clock | None = None,
    cancel: CancellationToken | None = None,
    label: str = "action",
) -> Outcome:
    """Poll ``probe`` until ready, then run ``action`` under ``policy``.

    Blocks the calling thread between polls. The action fails by raising:
    ``FatalError`` aborts, any other ``Exception`` is retried after the probe
    reports ready again. Always returns exactly one outcome.
    """
    clock = clock or SYSTEM_CLOCK
    run = _Invocation(policy, clock, cancel, label)
    while True:
        terminal = run.check_bounds()
        if terminal is not None:
            return terminal

        decision = run.on_probe(run.call_probe(probe))
        if decision is None:
            clock.sleep(run.take_interval())
            continue
        if not isinstance(decision, Ready):
            return decision

        try:
            value = action(decision.value)
        except Exception as exc:
            terminal = run.on_action_error(exc)
            if terminal is not None:
                return terminal
            clock.sleep(run.take_interval())
            continue
        return run.on_success(value)


async def execute_async(
    probe: AsyncProbe,
    action: AsyncAction[R],
    *,
    policy: RetryPolicy,
    clock: Clock | None = None,
    cancel: CancellationToken | None = None,
    label: str = "action",
) -> Outcome:
    """Cooperative variant of :func:`execute`.

    ``probe`` and ``action`` may be plain callables or coroutine functions.
    Waits yield to the event loop instead of blocking the thread.
    """
    clock = clock or SYSTEM_CLOCK
    run = _Invocation(policy, clock, cancel, label)
    while True:
        terminal = run.check_bounds()
        if terminal is not None:
            return terminal

        try:
            result = probe()
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.debug("%s probe raised %r", label, exc)
            result = Failed(exc)

        decision = run.on_probe(result)
        if decision is None:
            await clock.sleep_async(run.take_interval())
            continue
        if not isinstance(decision, Ready):
            return decision

        try:
            value = action(decision.value)
            if inspect.isawaitable(value):
                value = await value
        except Exception as exc:
            terminal = run.on_action_error(exc)
            if terminal is not None:
                return terminal
            await clock.sleep_async(run.take_interval())
            continue
        return run.on_success(value)
