from __future__ import annotations

import json

import httpx
import pytest

from vehnt.domain.errors import SchedulerUnavailableError, StakingErrorCode
from vehnt.services.retry import RetryPolicy
from vehnt.services.scheduler import HttpTriggerScheduler


def _scheduler(handler, *, max_attempts: int = 3, slept: list[float] | None = None):
    client = httpx.Client(base_url="https://scheduler.test", transport=httpx.MockTransport(handler))
    return HttpTriggerScheduler(
        base_url="https://scheduler.test",
        retry_policy=RetryPolicy(max_attempts=max_attempts, base_delay_ms=10, max_delay_ms=50),
        client=client,
        sleep_fn=(slept.append if slept is not None else lambda _s: None),
    )


def test_upsert_puts_one_shot_non_skippable_trigger() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    _scheduler(handler).upsert_trigger("trg:abc", "0 30 0 1 3 * 2024")

    assert len(seen) == 1
    assert seen[0].method == "PUT"
    assert seen[0].url.path == "/triggers/trg:abc"
    assert json.loads(seen[0].content) == {"schedule": "0 30 0 1 3 * 2024", "skippable": False}


def test_upsert_retries_server_errors_and_honours_retry_after() -> None:
    responses = iter(
        [
            httpx.Response(503),
            httpx.Response(429, headers={"Retry-After": "0.02"}),
            httpx.Response(204),
        ]
    )
    slept: list[float] = []

    _scheduler(lambda _request: next(responses), slept=slept).upsert_trigger("k", "expr")

    assert len(slept) == 2
    assert slept[1] == pytest.approx(0.02)


def test_upsert_retries_transport_errors_then_gives_up() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SchedulerUnavailableError) as exc_info:
        _scheduler(handler, max_attempts=3).upsert_trigger("k", "expr")

    assert calls["n"] == 3
    assert exc_info.value.code == StakingErrorCode.SCHEDULER_UNAVAILABLE


def test_client_errors_are_not_retried() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(422, text="bad schedule")

    with pytest.raises(SchedulerUnavailableError) as exc_info:
        _scheduler(handler).upsert_trigger("k", "expr")

    assert calls["n"] == 1
    assert exc_info.value.details["status_code"] == 422
