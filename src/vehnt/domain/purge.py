from __future__ import annotations

from dataclasses import dataclass

from vehnt.domain.errors import PositionAlreadyFinalizedError
from vehnt.domain.ledger import LedgerDelta, PoolLedger
from vehnt.domain.lockup import LockupView
from vehnt.domain.numeric import checked_mul_u64
from vehnt.domain.positions import StakePosition
from vehnt.domain.schedule import (
    PURGE_FOLLOWUP_OFFSET_SECONDS,
    build_schedule,
    purge_trigger_key,
)


@dataclass(frozen=True)
class Reschedule:
    """Lockup still running: move the purge trigger to the current expiry."""

    trigger_key: str
    expression: str
    expiry_ts: int


@dataclass(frozen=True)
class Finalize:
    """Lockup expired: the new pool and position must be committed together."""

    pool: PoolLedger
    position: StakePosition
    delta: LedgerDelta
    elapsed_since_expiry: int


PurgeOutcome = Reschedule | Finalize


def expired_position_delta(position: StakePosition, lockup: LockupView, now: int) -> LedgerDelta:
    """Drop the position rate and give back the decay the pool charged it after expiry."""
    elapsed = lockup.seconds_since_expiry(now)
    return LedgerDelta(
        fall_rate_change=-position.fall_rate,
        staked_change=checked_mul_u64(position.fall_rate, elapsed, name="expired_decay"),
    )


def decide_purge(
    position: StakePosition,
    pool: PoolLedger,
    lockup: LockupView,
    now: int,
    *,
    followup_offset_seconds: int = PURGE_FOLLOWUP_OFFSET_SECONDS,
    bypass_expiry_check: bool = False,
) -> PurgeOutcome:
    if position.finalized:
        raise PositionAlreadyFinalizedError(
            "position already finalized", position_id=position.position_id
        )

    if not bypass_expiry_check and not lockup.is_expired(now):
        # the lockup may have been extended since the trigger was last written
        expiry_ts = now + lockup.seconds_left(now)
        return Reschedule(
            trigger_key=purge_trigger_key(position.position_id, position.deposit_entry_index),
            expression=build_schedule(expiry_ts, followup_offset_seconds),
            expiry_ts=expiry_ts,
        )

    elapsed = lockup.seconds_since_expiry(now)
    delta = expired_position_delta(position, lockup, now)
    return Finalize(
        pool=pool.apply_delta(now, delta),
        position=position.finalize(),
        delta=delta,
        elapsed_since_expiry=elapsed,
    )
