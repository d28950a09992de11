from __future__ import annotations

import threading

from resilact.cancellation import CancellationToken


def test_new_token_is_not_cancelled() -> None:
    token = CancellationToken()
    assert not token.cancelled
    assert token.reason == ""


def test_first_cancel_reason_wins() -> None:
    token = CancellationToken()
    token.cancel("user stop")
    token.cancel("second")

    assert token.cancelled
    assert token.to_error().reason == "user stop"


def test_cancel_from_another_thread() -> None:
    token = CancellationToken()
    worker = threading.Thread(target=token.cancel, args=("worker",))
    worker.start()
    worker.join()

    assert token.cancelled
    assert token.reason == "worker"


def test_deadline_token_fires_once_clock_passes(clock) -> None:
    token = CancellationToken.after(100, clock=clock)
    clock.advance(99)
    assert not token.cancelled

    clock.advance(1)
    assert token.cancelled
    assert token.reason == "cancellation deadline reached"
