"""XDG config loading/saving for named retry policies."""

from __future__ import annotations

import os
import sys
from contextlib import suppress
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing_extensions import TypedDict

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from resilact.errors import ConfigError, PolicyError
from resilact.logging import normalize_level
from resilact.policy import RetryPolicy
from resilact.presets import DEFAULT_PRESET, PRESETS, get_preset

DEFAULT_CONFIG_PATH = Path("~/.config/resilact/config.toml").expanduser()
TIMEOUT_OVERRIDE_ENV = "RESILACT_TIMEOUT_MS"

_INT_FIELDS = ("max_attempts", "poll_interval_ms", "timeout_ms", "max_interval_ms")


class _PolicyFields(TypedDict):
    max_attempts: int
    poll_interval_ms: int
    timeout_ms: int
    backoff_multiplier: float


class PolicyConfig(_PolicyFields, total=False):
    max_interval_ms: int


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    default_policy: str = DEFAULT_PRESET
    log_level: str = "INFO"
    policies: dict[str, PolicyConfig] = Field(default_factory=dict)

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = normalize_level(value)
        if normalized is None:
            raise ValueError(f"Invalid log level: {value}")
        return normalized


def policy_key(name: str) -> str:
    return name.strip().lower().replace("-", "_")


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _toml_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Unsupported TOML scalar type: {type(value)!r}")


def policy_from_mapping(payload: dict[str, object]) -> RetryPolicy:
    defaults = RetryPolicy()
    values: dict[str, object] = {}
    for name in _INT_FIELDS:
        raw = payload.get(name)
        if raw is None:
            continue
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise PolicyError(f"{name} must be an integer: {raw!r}")
        values[name] = raw
    multiplier = payload.get("backoff_multiplier", defaults.backoff_multiplier)
    if isinstance(multiplier, bool) or not isinstance(multiplier, (int, float)):
        raise PolicyError(f"backoff_multiplier must be a number: {multiplier!r}")
    values["backoff_multiplier"] = float(multiplier)
    return RetryPolicy(**values)  # type: ignore[arg-type]


def _to_policy_config(policy: RetryPolicy) -> PolicyConfig:
    entry = PolicyConfig(
        max_attempts=policy.max_attempts,
        poll_interval_ms=policy.poll_interval_ms,
        timeout_ms=policy.timeout_ms,
        backoff_multiplier=policy.backoff_multiplier,
    )
    if policy.max_interval_ms is not None:
        entry["max_interval_ms"] = policy.max_interval_ms
    return entry


def _normalize_policies(value: object) -> dict[str, PolicyConfig]:
    if not isinstance(value, dict):
        return {}
    normalized: dict[str, PolicyConfig] = {}
    for name, payload in value.items():
        if not isinstance(name, str) or not isinstance(payload, dict):
            continue
        key = policy_key(name)
        if not key:
            continue
        try:
            policy = policy_from_mapping(payload)
        except PolicyError:
            continue
        normalized[key] = _to_policy_config(policy)
    return normalized


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()
    cfg.policies = _normalize_policies(raw.get("policies", {}))

    default_policy = raw.get("default_policy", cfg.default_policy)
    if isinstance(default_policy, str):
        key = policy_key(default_policy)
        if key in cfg.policies or key in PRESETS:
            cfg.default_policy = key

    log_level = raw.get("log_level", cfg.log_level)
    if isinstance(log_level, str) and normalize_level(log_level) is not None:
        cfg.log_level = log_level

    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return AppConfig()
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()
    return _sanitize(raw)


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        f"default_policy = {_toml_scalar(config.default_policy)}",
        f"log_level = {_toml_scalar(config.log_level)}",
    ]
    for name, payload in sorted(_normalize_policies(dict(config.policies)).items()):
        lines.extend(["", f'[policies."{_escape(name)}"]'])
        for key, value in payload.items():
            lines.append(f"{key} = {_toml_scalar(value)}")

    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with suppress(OSError):
        resolved.chmod(0o600)
    return resolved


def _timeout_override() -> int | None:
    raw = os.getenv(TIMEOUT_OVERRIDE_ENV, "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(
            f"Invalid {TIMEOUT_OVERRIDE_ENV}: {raw}",
            hint="Set it to a positive number of milliseconds.",
        ) from exc
    if value <= 0:
        raise ConfigError(
            f"Invalid {TIMEOUT_OVERRIDE_ENV}: {raw}",
            hint="Set it to a positive number of milliseconds.",
        )
    return value


def resolve_policy(name: str | None = None, config: AppConfig | None = None) -> RetryPolicy:
    """Look up a policy by name: configured policies first, then presets."""
    cfg = config or AppConfig()
    key = policy_key(name or cfg.default_policy)
    if key in cfg.policies:
        policy = policy_from_mapping(dict(cfg.policies[key]))
    else:
        policy = get_preset(key)

    timeout_ms = _timeout_override()
    if timeout_ms is not None:
        policy = policy.replace(timeout_ms=timeout_ms)
    return policy


def save_policy(name: str, policy: RetryPolicy, path: str | Path | None = None) -> AppConfig:
    config = load_config(path)
    policies = dict(config.policies)
    policies[policy_key(name)] = _to_policy_config(policy)
    config.policies = policies
    save_config(config, path)
    return config
