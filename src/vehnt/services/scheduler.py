from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import httpx

from vehnt.domain.errors import SchedulerUnavailableError
from vehnt.services.retry import RetryAttempt, RetryPolicy, retry_with_backoff

logger = logging.getLogger(__name__)


class TriggerScheduler(Protocol):
    """Store-and-fire-later capability.

    ``upsert_trigger`` replaces whatever expression is stored under ``key``; the trigger
    fires once and is never skipped.
    """

    def upsert_trigger(self, key: str, expression: str) -> None: ...


@dataclass(frozen=True)
class TriggerUpdate:
    key: str
    expression: str


class InMemoryTriggerScheduler:
    def __init__(self) -> None:
        self.triggers: dict[str, str] = {}
        self.updates: list[TriggerUpdate] = []

    def upsert_trigger(self, key: str, expression: str) -> None:
        self.triggers[key] = expression
        self.updates.append(TriggerUpdate(key=key, expression=expression))


class _RetryableSchedulerError(Exception):
    def __init__(self, message: str, *, retry_after: str | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class HttpTriggerScheduler:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        client: httpx.Client | None = None,
        sleep_fn: Callable[[float], None] | None = None,
    ) -> None:
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = client or httpx.Client(
            base_url=base_url, timeout=httpx.Timeout(timeout_seconds)
        )
        self._sleep_fn = sleep_fn

    def close(self) -> None:
        self._client.close()

    def upsert_trigger(self, key: str, expression: str) -> None:
        payload = {"schedule": expression, "skippable": False}

        def _call() -> None:
            try:
                response = self._client.put(f"/triggers/{key}", json=payload)
            except httpx.TransportError as exc:
                raise _RetryableSchedulerError(f"transport error: {exc}") from exc
            if response.status_code == 429 or response.status_code >= 500:
                raise _RetryableSchedulerError(
                    f"scheduler returned {response.status_code}",
                    retry_after=response.headers.get("Retry-After"),
                )
            if response.status_code >= 400:
                raise SchedulerUnavailableError(
                    "scheduler rejected trigger update",
                    trigger_key=key,
                    status_code=response.status_code,
                    body=response.text[:512],
                )

        def _on_retry(attempt: RetryAttempt) -> None:
            logger.warning(
                "scheduler_retry",
                extra={
                    "extra": {
                        "trigger_key": key,
                        "attempt": attempt.attempt,
                        "delay_ms": attempt.delay_ms,
                        "error_type": attempt.error_type,
                    }
                },
            )

        try:
            retry_with_backoff(
                _call,
                policy=self.retry_policy,
                retry_on_exceptions=(_RetryableSchedulerError,),
                sleep_fn=self._sleep_fn,
                on_retry=_on_retry,
                retry_after_getter=lambda exc: getattr(exc, "retry_after", None),
            )
        except _RetryableSchedulerError as exc:
            raise SchedulerUnavailableError(
                "scheduler unavailable after retries",
                trigger_key=key,
                attempts=self.retry_policy.max_attempts,
            ) from exc
        logger.info(
            "trigger_upserted",
            extra={"extra": {"trigger_key": key, "schedule": expression}},
        )
