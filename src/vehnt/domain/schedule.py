from __future__ import annotations

import hashlib
from datetime import UTC, datetime, timedelta

from vehnt.domain.errors import ScheduleBuildError

PURGE_FOLLOWUP_OFFSET_SECONDS = 60 * 60
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def build_schedule(execution_ts: int, offset_seconds: int) -> str:
    """One-shot cron expression firing in the UTC minute of ``execution_ts + offset_seconds``.

    Fields are ``sec min hour day-of-month month day-of-week year``; the day-of-week is left
    open so the expression only ever matches a single minute.
    """
    try:
        fire_at = _UNIX_EPOCH + timedelta(seconds=execution_ts + offset_seconds)
    except OverflowError as exc:
        raise ScheduleBuildError(
            "execution time is not a representable calendar instant",
            execution_ts=execution_ts,
            offset_seconds=offset_seconds,
        ) from exc
    return f"0 {fire_at.minute} {fire_at.hour} {fire_at.day} {fire_at.month} * {fire_at.year}"


def short_hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def purge_trigger_label(deposit_entry_index: int) -> str:
    return f"purge-{deposit_entry_index}"


def purge_trigger_key(position_id: str, deposit_entry_index: int) -> str:
    return f"trg:{short_hash(f'{position_id}:{purge_trigger_label(deposit_entry_index)}')}"
