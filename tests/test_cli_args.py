from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from resilact import cli
from resilact.config import TIMEOUT_OVERRIDE_ENV
from resilact.errors import ExitCode


@pytest.fixture
def log_args(tmp_path: Path) -> list[str]:
    return ["--log-file", str(tmp_path / "resilact.log")]


def _runner(*returncodes: int):
    codes = iter(returncodes)
    calls: list[list[str]] = []
    timeouts: list[float | None] = []

    def runner(argv, **kwargs):
        calls.append(argv)
        timeouts.append(kwargs.get("timeout"))
        return subprocess.CompletedProcess(argv, next(codes), stdout="", stderr="")

    runner.calls = calls
    runner.timeouts = timeouts
    return runner


def test_cli_help_includes_public_commands() -> None:
    help_text = cli.build_parser().format_help()
    for command in ("policies", "wait-path", "wait-url", "run"):
        assert command in help_text
    assert "--log-level" in help_text


def test_missing_command_returns_invalid_args(log_args) -> None:
    assert cli.main(log_args) == int(ExitCode.INVALID_ARGS)


def test_policies_lists_presets(log_args, capsys) -> None:
    code = cli.main([*log_args, "policies"])

    assert code == 0
    out = capsys.readouterr().out
    assert "retry_until: max_attempts=5 poll_interval_ms=1000 timeout_ms=30000" in out


def test_policies_include_configured_entries(log_args, tmp_path: Path, capsys) -> None:
    config = tmp_path / "config.toml"
    config.write_text("[policies.checkout]\nmax_attempts = 9\n", encoding="utf-8")

    code = cli.main([*log_args, "--config", str(config), "policies"])

    assert code == 0
    assert "checkout (config): max_attempts=9" in capsys.readouterr().out


def test_wait_path_succeeds_for_existing_file(log_args, tmp_path: Path, capsys) -> None:
    target = tmp_path / "ready.flag"
    target.write_text("", encoding="utf-8")

    code = cli.main([*log_args, "wait-path", str(target)])

    assert code == 0
    assert "succeeded after 1 attempt(s)" in capsys.readouterr().out


def test_wait_path_times_out(log_args, tmp_path: Path, clock, capsys) -> None:
    code = cli.main(
        [*log_args, "wait-path", str(tmp_path / "never"), "--timeout-ms", "50", "--poll-interval-ms", "10"],
        clock=clock,
    )

    assert code == int(ExitCode.TIMED_OUT)
    assert clock.now == 50
    assert "timed out after 0 attempt(s)" in capsys.readouterr().err


def test_wait_url_uses_requester(log_args, clock) -> None:
    statuses = iter([503, 503, 200])

    code = cli.main(
        [*log_args, "wait-url", "http://localhost:9000/health"],
        clock=clock,
        requester=lambda url, timeout: next(statuses),
    )

    assert code == 0
    assert len(clock.sleeps) == 2


def test_wait_url_wrong_status_times_out(log_args, clock) -> None:
    code = cli.main(
        [*log_args, "wait-url", "http://localhost:9000/", "--status", "204", "--timeout-ms", "300"],
        clock=clock,
        requester=lambda url, timeout: 200,
    )

    assert code == int(ExitCode.TIMED_OUT)


def test_wait_url_invalid_url_is_validation_error(log_args, capsys) -> None:
    code = cli.main([*log_args, "wait-url", "not-a-url"])

    assert code == int(ExitCode.VALIDATION_ERROR)
    assert "Next step" in capsys.readouterr().err


def test_run_retries_until_command_succeeds(log_args, clock) -> None:
    runner = _runner(1, 1, 0)

    code = cli.main([*log_args, "run", "--max-attempts", "3", "--", "make", "test"], clock=clock, runner=runner)

    assert code == 0
    assert runner.calls == [["bash", "-lc", "make test"]] * 3


def test_run_exhausts_attempts(log_args, clock, capsys) -> None:
    runner = _runner(1, 1)

    code = cli.main([*log_args, "run", "--max-attempts", "2", "--", "false"], clock=clock, runner=runner)

    assert code == int(ExitCode.EXHAUSTED)
    assert len(runner.calls) == 2
    assert "gave up after 2 attempt(s)" in capsys.readouterr().err


def test_run_missing_executable_aborts(log_args, clock) -> None:
    runner = _runner(127)

    code = cli.main([*log_args, "run", "nosuchcommand"], clock=clock, runner=runner)

    assert code == int(ExitCode.ABORTED)
    assert len(runner.calls) == 1


def test_run_keeps_argument_quoting(log_args, clock) -> None:
    runner = _runner(0)

    code = cli.main(
        [*log_args, "run", "--max-attempts", "1", "--", "test", "a b", "=", "a b"],
        clock=clock,
        runner=runner,
    )

    assert code == 0
    assert runner.calls == [["bash", "-lc", "test 'a b' = 'a b'"]]


def test_run_bounds_each_command_by_remaining_budget(log_args, clock) -> None:
    runner = _runner(1, 0)

    code = cli.main(
        [*log_args, "run", "--timeout-ms", "300", "--poll-interval-ms", "100", "--", "make", "test"],
        clock=clock,
        runner=runner,
    )

    assert code == 0
    assert runner.timeouts == [pytest.approx(0.3), pytest.approx(0.2)]


def test_run_hung_command_counts_as_failed_attempt(log_args, clock, capsys) -> None:
    seen: list[float] = []

    def runner(argv, **kwargs):
        seen.append(kwargs["timeout"])
        raise subprocess.TimeoutExpired(argv, kwargs["timeout"])

    code = cli.main(
        [*log_args, "run", "--timeout-ms", "300", "--max-attempts", "1", "--", "sleep", "3"],
        clock=clock,
        runner=runner,
    )

    assert code == int(ExitCode.EXHAUSTED)
    assert seen == [pytest.approx(0.3)]
    assert "Command timed out: sleep 3" in capsys.readouterr().err


def test_wait_url_request_timeout_follows_policy(log_args, clock) -> None:
    timeouts: list[float] = []

    def requester(url: str, timeout: float) -> int:
        timeouts.append(timeout)
        return 200

    for budget in ("2000", "60000"):
        code = cli.main(
            [*log_args, "wait-url", "http://localhost:9000/", "--timeout-ms", budget],
            clock=clock,
            requester=requester,
        )
        assert code == 0
    assert timeouts == [pytest.approx(2.0), pytest.approx(10.0)]


def test_run_without_command_is_invalid(log_args) -> None:
    assert cli.main([*log_args, "run"]) == int(ExitCode.INVALID_ARGS)


def test_unknown_policy_is_validation_error(log_args, tmp_path: Path) -> None:
    code = cli.main([*log_args, "wait-path", str(tmp_path), "--policy", "hover"])
    assert code == int(ExitCode.VALIDATION_ERROR)


def test_policy_overrides_are_applied(tmp_path: Path) -> None:
    namespace = cli.parse_args(
        ["wait-path", str(tmp_path), "--policy", "network", "--poll-interval-ms", "9000", "--backoff", "1.5"]
    )
    policy = cli.policy_from_namespace(namespace, cli.load_config(tmp_path / "missing.toml"))

    assert policy.poll_interval_ms == 9000
    assert policy.max_interval_ms == 9000
    assert policy.backoff_multiplier == 1.5
    assert policy.max_attempts == 5


def test_invalid_timeout_override_env_is_config_error(log_args, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(TIMEOUT_OVERRIDE_ENV, "later")

    code = cli.main([*log_args, "wait-path", str(tmp_path)])

    assert code == int(ExitCode.CONFIG_ERROR)


def test_log_level_flag_is_accepted(log_args, tmp_path: Path) -> None:
    assert cli.main([*log_args, "--log-level", "DEBUG", "wait-path", str(tmp_path)]) == 0


def test_warning_alias_for_log_level_is_accepted(log_args, tmp_path: Path) -> None:
    assert cli.main([*log_args, "--log-level", "warning", "wait-path", str(tmp_path)]) == 0
