from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from vehnt.services.retry import RetryPolicy, parse_retry_after_seconds, retry_with_backoff


class _RateError(Exception):
    pass


def test_parse_retry_after_seconds_supports_http_date() -> None:
    dt = datetime.now(UTC) + timedelta(seconds=2)
    value = parse_retry_after_seconds(dt.strftime("%a, %d %b %Y %H:%M:%S GMT"))
    assert value is not None
    assert 0 <= value <= 2.5


def test_parse_retry_after_seconds_rejects_garbage() -> None:
    assert parse_retry_after_seconds(None) is None
    assert parse_retry_after_seconds(" ") is None
    assert parse_retry_after_seconds("-1") is None
    assert parse_retry_after_seconds("soon") is None


def test_retry_stops_after_max_attempts() -> None:
    calls = {"n": 0}

    def _fn() -> None:
        calls["n"] += 1
        raise _RateError("x")

    with pytest.raises(_RateError):
        retry_with_backoff(
            _fn,
            policy=RetryPolicy(max_attempts=3, base_delay_ms=1, max_delay_ms=2),
            retry_on_exceptions=(_RateError,),
            sleep_fn=lambda _x: None,
        )
    assert calls["n"] == 3


def test_non_retryable_errors_propagate_immediately() -> None:
    calls = {"n": 0}

    def _fn() -> None:
        calls["n"] += 1
        raise KeyError("x")

    with pytest.raises(KeyError):
        retry_with_backoff(
            _fn,
            policy=RetryPolicy(max_attempts=5),
            retry_on_exceptions=(_RateError,),
            sleep_fn=lambda _x: None,
        )
    assert calls["n"] == 1


def test_retry_after_header_takes_priority() -> None:
    calls = {"n": 0}
    slept: list[float] = []

    def _fn() -> str:
        calls["n"] += 1
        if calls["n"] == 1:
            raise _RateError("429")
        return "ok"

    out = retry_with_backoff(
        _fn,
        policy=RetryPolicy(max_attempts=3, base_delay_ms=100, max_delay_ms=5000, jitter_seed=3),
        retry_on_exceptions=(_RateError,),
        sleep_fn=slept.append,
        retry_after_getter=lambda _exc: "2",
    )

    assert out == "ok"
    assert slept == [2.0]


def test_policy_validates_bounds() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(base_delay_ms=-1)
