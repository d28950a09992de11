"""Resilient UI/service action executor."""

from .cancellation import CancellationToken
from .clock import Clock, SystemClock
from .errors import CancelledError, ErrorKind, FatalError, RecoverableError, ResilactError
from .executor import ExecutorState, execute, execute_async
from .outcome import Aborted, ExhaustedRetries, Outcome, OutcomeError, OutcomeKind, Success, TimedOut
from .policy import RetryPolicy
from .probe import Failed, NotReady, Ready, failed, not_ready, ready
from .retry import retry_until, run_with_retry, wait_for_count, wait_until

__all__ = [
    "Aborted",
    "CancellationToken",
    "CancelledError",
    "Clock",
    "ErrorKind",
    "execute",
    "execute_async",
    "ExecutorState",
    "ExhaustedRetries",
    "Failed",
    "failed",
    "FatalError",
    "not_ready",
    "NotReady",
    "Outcome",
    "OutcomeError",
    "OutcomeKind",
    "Ready",
    "ready",
    "RecoverableError",
    "ResilactError",
    "retry_until",
    "RetryPolicy",
    "run_with_retry",
    "Success",
    "SystemClock",
    "TimedOut",
    "wait_for_count",
    "wait_until",
]
