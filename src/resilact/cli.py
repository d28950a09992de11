"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import shlex
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .clock import SYSTEM_CLOCK, Clock, elapsed_ms
from .config import AppConfig, load_config, resolve_policy
from .errors import ExitCode, ResilactError, user_facing_error
from .executor import execute
from .logging import LOG_LEVELS, configure_logging, default_log_path, normalize_level
from .outcome import Outcome, exit_code_for
from .policy import RetryPolicy
from .presets import PRESETS
from .probe import always_ready
from .probes import (
    HTTP_TIMEOUT_SECONDS,
    HttpStatusRequester,
    http_status,
    path_exists,
    run_command,
)

_MIN_CALL_BUDGET_MS = 1.0


def _positive_int(flag: str) -> Callable[[str], int]:
    def _parse(value: str) -> int:
        try:
            number = int(value)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"{flag} must be an integer") from exc
        if number < 1:
            raise argparse.ArgumentTypeError(f"{flag} must be a positive integer")
        return number

    return _parse


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--poll-interval-ms must be an integer") from exc
    if number < 0:
        raise argparse.ArgumentTypeError("--poll-interval-ms cannot be negative")
    return number


def _backoff_type(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--backoff must be a number") from exc
    if not number >= 1.0:
        raise argparse.ArgumentTypeError("--backoff must be 1.0 or greater")
    return number


def _log_level_type(value: str) -> str:
    normalized = normalize_level(value)
    if normalized is None:
        accepted = ", ".join(LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _policy_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("--policy", default=None, help="Preset or configured policy name")
    parent.add_argument("--timeout-ms", type=_positive_int("--timeout-ms"), default=None)
    parent.add_argument("--max-attempts", type=_positive_int("--max-attempts"), default=None)
    parent.add_argument("--poll-interval-ms", type=_non_negative_int, default=None)
    parent.add_argument("--backoff", type=_backoff_type, default=None)
    return parent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="resilact")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default=None)
    parser.add_argument("--log-file", type=Path, default=None)

    commands = parser.add_subparsers(dest="command", required=True)
    policy_options = _policy_parent()

    commands.add_parser("policies", help="List preset and configured policies")

    wait_path = commands.add_parser(
        "wait-path", parents=[policy_options], help="Wait until a path exists"
    )
    wait_path.add_argument("path", type=Path)

    wait_url = commands.add_parser(
        "wait-url", parents=[policy_options], help="Wait until a URL answers with a status"
    )
    wait_url.add_argument("url")
    wait_url.add_argument("--status", type=_positive_int("--status"), default=200)

    run = commands.add_parser(
        "run", parents=[policy_options], help="Run a shell command until it succeeds"
    )
    run.add_argument("cmd", nargs=argparse.REMAINDER)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def policy_from_namespace(namespace: argparse.Namespace, config: AppConfig) -> RetryPolicy:
    policy = resolve_policy(namespace.policy, config)
    overrides: dict[str, object] = {}
    if namespace.timeout_ms is not None:
        overrides["timeout_ms"] = namespace.timeout_ms
    if namespace.max_attempts is not None:
        overrides["max_attempts"] = namespace.max_attempts
    if namespace.poll_interval_ms is not None:
        overrides["poll_interval_ms"] = namespace.poll_interval_ms
        if policy.max_interval_ms is not None and policy.max_interval_ms < namespace.poll_interval_ms:
            overrides["max_interval_ms"] = namespace.poll_interval_ms
    if namespace.backoff is not None:
        overrides["backoff_multiplier"] = namespace.backoff
    if overrides:
        policy = policy.replace(**overrides)
    return policy


def _format_policy(name: str, policy: RetryPolicy) -> str:
    fields = " ".join(f"{key}={value}" for key, value in policy.to_dict().items())
    return f"{name}: {fields}"


def list_policies(config: AppConfig) -> list[str]:
    lines = [_format_policy(name, policy) for name, policy in sorted(PRESETS.items())]
    for name in sorted(config.policies):
        lines.append(_format_policy(f"{name} (config)", resolve_policy(name, config)))
    return lines


def run_command_flow(
    namespace: argparse.Namespace,
    config: AppConfig,
    *,
    clock: Clock | None = None,
    requester: HttpStatusRequester | None = None,
    runner: Callable[..., object] | None = None,
) -> Outcome:
    policy = policy_from_namespace(namespace, config)
    logger = py_logging.getLogger("resilact.cli")
    logger.debug("Running %s with %s", namespace.command, policy)

    run_clock = clock or SYSTEM_CLOCK
    started_ms = run_clock.now_ms()

    def remaining_seconds() -> float:
        remaining = policy.timeout_ms - elapsed_ms(run_clock, started_ms)
        return max(remaining, _MIN_CALL_BUDGET_MS) / 1000.0

    if namespace.command == "wait-path":
        return execute(
            path_exists(namespace.path),
            lambda path: path,
            policy=policy,
            clock=run_clock,
            label=f"wait-path {namespace.path}",
        )
    if namespace.command == "wait-url":
        return execute(
            http_status(
                namespace.url,
                expected_status=namespace.status,
                timeout_seconds=lambda: min(HTTP_TIMEOUT_SECONDS, remaining_seconds()),
                requester=requester,
            ),
            lambda status: status,
            policy=policy,
            clock=run_clock,
            label=f"wait-url {namespace.url}",
        )

    argv = list(namespace.cmd)
    if argv and argv[0] == "--":
        argv = argv[1:]
    if not argv:
        raise ResilactError(
            "No command given.",
            code=ExitCode.INVALID_ARGS,
            hint="Pass the command after '--', e.g. resilact run -- make test.",
        )
    command = shlex.join(argv)
    kwargs = {"runner": runner} if runner is not None else {}
    return execute(
        always_ready(),
        lambda _: run_command(command, timeout_seconds=remaining_seconds(), **kwargs),
        policy=policy,
        clock=run_clock,
        label=f"run {command}",
    )


def main(
    argv: Sequence[str] | None = None,
    *,
    clock: Clock | None = None,
    requester: HttpStatusRequester | None = None,
    runner: Callable[..., object] | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()

    try:
        config = load_config(namespace.config)
        logger = configure_logging(
            level=namespace.log_level or config.log_level, log_file=log_path
        )

        if namespace.command == "policies":
            for line in list_policies(config):
                print(line)
            return int(ExitCode.SUCCESS)

        outcome = run_command_flow(
            namespace, config, clock=clock, requester=requester, runner=runner
        )
        code = exit_code_for(outcome)
        if outcome.ok:
            print(outcome.describe())
        else:
            print(user_facing_error(f"{namespace.command} {outcome.describe()}"), file=sys.stderr)
        return int(code)
    except ResilactError as exc:
        logger.error(
            "Handled ResilactError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        try:
            hint = f"Inspect logs: {log_path}"
            print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        except Exception:
            pass
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
