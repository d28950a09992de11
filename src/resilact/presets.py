"""Named retry policies for common UI and service waits."""

from __future__ import annotations

from resilact.errors import PolicyError
from resilact.policy import RetryPolicy

DEFAULT_PRESET = "click"

PRESETS: dict[str, RetryPolicy] = {
    # Visible/enabled check before each click, three tries inside the command timeout.
    "click": RetryPolicy(max_attempts=3, poll_interval_ms=100, timeout_ms=10_000),
    "retry_click": RetryPolicy(max_attempts=3, poll_interval_ms=1000, timeout_ms=10_000),
    "retry_until": RetryPolicy(max_attempts=5, poll_interval_ms=1000, timeout_ms=30_000),
    "element_count": RetryPolicy(max_attempts=1, poll_interval_ms=100, timeout_ms=10_000),
    "page_load": RetryPolicy(max_attempts=1, poll_interval_ms=250, timeout_ms=30_000),
    "network": RetryPolicy(
        max_attempts=5,
        poll_interval_ms=500,
        timeout_ms=60_000,
        backoff_multiplier=2.0,
        max_interval_ms=8000,
    ),
}


def preset_names() -> tuple[str, ...]:
    return tuple(sorted(PRESETS))


def get_preset(name: str) -> RetryPolicy:
    normalized = name.strip().lower().replace("-", "_")
    try:
        return PRESETS[normalized]
    except KeyError:
        raise PolicyError(
            f"Unknown policy preset: {name}",
            hint=f"Use one of: {', '.join(preset_names())}.",
        ) from None
