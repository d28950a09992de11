"""Terminal results of one executor invocation.

Callers branch on the four-way outcome instead of catching exceptions::

    match execute(probe, action, policy=policy):
        case Success(result):
            ...
        case TimedOut(attempts_used):
            ...
        case ExhaustedRetries(last_error):
            ...
        case Aborted(error):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

from resilact.errors import CancelledError, ErrorKind, ExitCode, ResilactError

R = TypeVar("R")


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    TIMED_OUT = "timed_out"
    EXHAUSTED_RETRIES = "exhausted_retries"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Success(Generic[R]):
    result: R
    attempts: int = 1

    kind = OutcomeKind.SUCCESS
    ok = True
    error_kind = None

    def unwrap(self) -> R:
        return self.result

    def describe(self) -> str:
        return f"succeeded after {self.attempts} attempt(s)"


@dataclass(frozen=True)
class TimedOut:
    attempts_used: int

    kind = OutcomeKind.TIMED_OUT
    ok = False
    error_kind = ErrorKind.TIMED_OUT

    def unwrap(self) -> object:
        raise OutcomeError(self)

    def describe(self) -> str:
        return f"timed out after {self.attempts_used} attempt(s)"


@dataclass(frozen=True)
class ExhaustedRetries:
    last_error: BaseException
    attempts: int = 0

    kind = OutcomeKind.EXHAUSTED_RETRIES
    ok = False
    error_kind = ErrorKind.ACTION_FAILED

    def unwrap(self) -> object:
        raise OutcomeError(self) from self.last_error

    def describe(self) -> str:
        return f"gave up after {self.attempts} attempt(s): {self.last_error}"


@dataclass(frozen=True)
class Aborted:
    error: BaseException
    error_kind: ErrorKind = ErrorKind.PROBE_FAILED

    kind = OutcomeKind.ABORTED
    ok = False

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, CancelledError)

    def unwrap(self) -> object:
        raise OutcomeError(self) from self.error

    def describe(self) -> str:
        if self.cancelled:
            return f"cancelled: {self.error}"
        return f"aborted: {self.error}"


Outcome = Union[Success[R], TimedOut, ExhaustedRetries, Aborted]

_EXIT_CODES = {
    OutcomeKind.SUCCESS: ExitCode.SUCCESS,
    OutcomeKind.TIMED_OUT: ExitCode.TIMED_OUT,
    OutcomeKind.EXHAUSTED_RETRIES: ExitCode.EXHAUSTED,
    OutcomeKind.ABORTED: ExitCode.ABORTED,
}


class OutcomeError(ResilactError):
    """Raised when a non-success outcome is unwrapped."""

    def __init__(self, outcome: TimedOut | ExhaustedRetries | Aborted) -> None:
        super().__init__(f"Operation {outcome.describe()}", exit_code_for(outcome))
        self.outcome = outcome

    @property
    def kind(self) -> OutcomeKind:
        return self.outcome.kind

    @property
    def error_kind(self) -> ErrorKind:
        return self.outcome.error_kind


def exit_code_for(outcome: Outcome) -> ExitCode:
    return _EXIT_CODES[outcome.kind]
