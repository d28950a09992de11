"""Retry/backoff helpers for recoverable operations."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from resilact.cancellation import CancellationToken
from resilact.clock import Clock
from resilact.errors import RecoverableError
from resilact.executor import execute
from resilact.outcome import Aborted, ExhaustedRetries, Outcome, Success
from resilact.policy import RetryPolicy
from resilact.probe import always_ready, count_equals, from_predicate

T = TypeVar("T")

RETRY_UNTIL_POLICY = RetryPolicy(max_attempts=5, poll_interval_ms=1000, timeout_ms=30_000)
WAIT_POLICY = RetryPolicy(max_attempts=1, poll_interval_ms=100, timeout_ms=10_000)


def _result_or_raise(outcome: Outcome) -> T:
    if isinstance(outcome, Success):
        return outcome.result
    if isinstance(outcome, ExhaustedRetries):
        raise outcome.last_error
    if isinstance(outcome, Aborted) and not outcome.cancelled:
        raise outcome.error
    return outcome.unwrap()


def run_with_retry(
    operation: Callable[[], T],
    *,
    policy: RetryPolicy,
    clock: Clock | None = None,
    cancel: CancellationToken | None = None,
) -> T:
    """Call ``operation`` until it returns, re-raising its last error.

    ``FatalError`` stops immediately. Timeouts and cancellation raise
    :class:`OutcomeError`.
    """
    outcome = execute(
        always_ready(),
        lambda _: operation(),
        policy=policy,
        clock=clock,
        cancel=cancel,
        label=getattr(operation, "__name__", "operation"),
    )
    return _result_or_raise(outcome)


def retry_until(
    operation: Callable[[], object],
    condition: Callable[[], T],
    *,
    policy: RetryPolicy = RETRY_UNTIL_POLICY,
    clock: Clock | None = None,
    cancel: CancellationToken | None = None,
) -> T:
    """Run ``operation`` then check ``condition``, repeating while it is falsy.

    Any non-success outcome raises :class:`OutcomeError` chained to its cause.
    """

    def _attempt(_: object) -> T:
        operation()
        result = condition()
        if not result:
            raise RecoverableError("Condition not met after operation.")
        return result

    outcome = execute(
        always_ready(),
        _attempt,
        policy=policy,
        clock=clock,
        cancel=cancel,
        label="retry_until",
    )
    return outcome.unwrap()


def wait_until(
    condition: Callable[[], T],
    *,
    policy: RetryPolicy = WAIT_POLICY,
    clock: Clock | None = None,
    cancel: CancellationToken | None = None,
) -> T:
    """Poll ``condition`` until it returns a truthy value and return it."""
    outcome = execute(
        from_predicate(condition),
        lambda value: value,
        policy=policy,
        clock=clock,
        cancel=cancel,
        label="wait_until",
    )
    return outcome.unwrap()


def wait_for_count(
    counter: Callable[[], int],
    expected: int,
    *,
    policy: RetryPolicy = WAIT_POLICY,
    clock: Clock | None = None,
    cancel: CancellationToken | None = None,
) -> int:
    """Poll ``counter`` until it reports exactly ``expected`` items."""
    outcome = execute(
        count_equals(counter, expected),
        lambda count: count,
        policy=policy,
        clock=clock,
        cancel=cancel,
        label=f"wait_for_count({expected})",
    )
    return outcome.unwrap()
