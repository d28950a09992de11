"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    TIMED_OUT = 5
    EXHAUSTED = 6
    ABORTED = 7
    VALIDATION_ERROR = 8


class ErrorKind(str, Enum):
    NOT_READY = "not_ready"
    PROBE_FAILED = "probe_failed"
    ACTION_FAILED = "action_failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass
class ResilactError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


class PolicyError(ResilactError):
    """Retry policy values out of range."""

    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(message, ExitCode.VALIDATION_ERROR, hint)


class ConfigError(ResilactError):
    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(message, ExitCode.CONFIG_ERROR, hint)


class RecoverableError(Exception):
    """Transient failure that can be retried."""


class FatalError(Exception):
    """Non-recoverable failure that should stop immediately."""


class CancelledError(Exception):
    """External cancellation observed by the executor."""

    kind = ErrorKind.CANCELLED

    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(reason)
        self.reason = reason


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
