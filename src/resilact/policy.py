"""Immutable retry/backoff configuration."""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import asdict, dataclass, replace

from resilact.errors import PolicyError


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    poll_interval_ms: int = 100
    timeout_ms: int = 10_000
    backoff_multiplier: float = 1.0
    max_interval_ms: int | None = None

    def __post_init__(self) -> None:
        for name in ("max_attempts", "poll_interval_ms", "timeout_ms"):
            value = getattr(self, name)
            if not _is_int(value):
                raise PolicyError(f"{name} must be an integer: {value!r}")
        if self.max_interval_ms is not None and not _is_int(self.max_interval_ms):
            raise PolicyError(f"max_interval_ms must be an integer: {self.max_interval_ms!r}")
        if isinstance(self.backoff_multiplier, bool) or not isinstance(
            self.backoff_multiplier, (int, float)
        ):
            raise PolicyError(f"backoff_multiplier must be a number: {self.backoff_multiplier!r}")
        if self.max_attempts < 1:
            raise PolicyError(
                f"Invalid max_attempts: {self.max_attempts}",
                hint="Use a positive attempt count.",
            )
        if self.poll_interval_ms < 0:
            raise PolicyError(
                f"Invalid poll_interval_ms: {self.poll_interval_ms}",
                hint="Use zero or a positive interval.",
            )
        if self.timeout_ms <= 0:
            raise PolicyError(
                f"Invalid timeout_ms: {self.timeout_ms}",
                hint="Use a positive timeout.",
            )
        if not math.isfinite(self.backoff_multiplier) or self.backoff_multiplier < 1.0:
            raise PolicyError(
                f"Invalid backoff_multiplier: {self.backoff_multiplier}",
                hint="Use a multiplier of 1.0 or greater.",
            )
        if self.max_interval_ms is not None and self.max_interval_ms < self.poll_interval_ms:
            raise PolicyError(
                f"Invalid max_interval_ms: {self.max_interval_ms}",
                hint="The interval cap cannot be lower than poll_interval_ms.",
            )

    def next_interval(self, current_ms: float) -> float:
        grown = current_ms * self.backoff_multiplier
        if self.max_interval_ms is not None:
            return min(grown, float(self.max_interval_ms))
        return grown

    def intervals(self) -> Iterator[float]:
        current = float(self.poll_interval_ms)
        while True:
            yield current
            current = self.next_interval(current)

    def replace(self, **changes: object) -> RetryPolicy:
        return replace(self, **changes)  # type: ignore[arg-type]

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        if self.max_interval_ms is None:
            payload.pop("max_interval_ms")
        return payload
