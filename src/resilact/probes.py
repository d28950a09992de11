"""Ready-made probes and actions for filesystem, HTTP and process readiness."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from resilact.errors import ExitCode, FatalError, RecoverableError, ResilactError
from resilact.probe import Probe, ProbeResult, not_ready, ready

logger = py_logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 10.0
COMMAND_NOT_EXECUTABLE = 126
COMMAND_NOT_FOUND = 127


def path_exists(path: str | Path) -> Probe:
    target = Path(path).expanduser()

    def _probe() -> ProbeResult:
        if target.exists():
            return ready(target)
        return not_ready()

    return _probe


class HttpStatusRequester(Protocol):
    def __call__(self, url: str, timeout: float) -> int: ...


def _validate_http_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ResilactError(
            f"Invalid URL: {url}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Use an absolute http:// or https:// address.",
        )


def _default_status_requester(url: str, timeout: float) -> int:
    request = Request(url, method="GET")
    try:
        with urlopen(request, timeout=timeout) as response:  # nosec B310
            return int(getattr(response, "status", response.getcode()))
    except HTTPError as exc:
        return int(exc.code)


def http_status(
    url: str,
    *,
    expected_status: int = 200,
    timeout_seconds: float | Callable[[], float] = HTTP_TIMEOUT_SECONDS,
    requester: HttpStatusRequester | None = None,
) -> Probe:
    """Ready once a GET on ``url`` answers with ``expected_status``.

    Connection failures and other statuses count as not ready yet.
    ``timeout_seconds`` may be a callable, read before every request.
    """
    _validate_http_url(url)
    request_status = requester or _default_status_requester

    def _probe() -> ProbeResult:
        try:
            timeout = timeout_seconds() if callable(timeout_seconds) else timeout_seconds
            status = request_status(url, timeout)
        except (URLError, OSError) as exc:
            logger.debug("GET %s not reachable: %s", url, exc)
            return not_ready()
        if status == expected_status:
            return ready(status)
        logger.debug("GET %s returned %s, waiting for %s", url, status, expected_status)
        return not_ready()

    return _probe


@dataclass(frozen=True)
class CommandResult:
    command: str
    returncode: int
    output: str


def run_command(
    command: str,
    *,
    timeout_seconds: float | None = None,
    runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
) -> CommandResult:
    """Run ``command`` through bash once, classifying failures for the executor.

    A non-zero exit raises :class:`RecoverableError`; exit codes 126/127
    (not executable, not found) raise :class:`FatalError` since a retry
    cannot fix them.
    """
    argv = ["bash", "-lc", command]
    logger.debug("Executing command: %s", command)
    try:
        completed = runner(
            argv,
            shell=False,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise RecoverableError(f"Command timed out: {command}") from exc
    except FileNotFoundError as exc:
        raise FatalError("bash is not available on PATH") from exc

    output = f"{completed.stdout or ''}{completed.stderr or ''}".strip()
    if completed.returncode in (COMMAND_NOT_EXECUTABLE, COMMAND_NOT_FOUND):
        raise FatalError(f"Command cannot run (exit {completed.returncode}): {command}")
    if completed.returncode != 0:
        raise RecoverableError(f"Command failed (exit {completed.returncode}): {command}")
    return CommandResult(command=command, returncode=completed.returncode, output=output)
