from __future__ import annotations

from dataclasses import dataclass, replace

from vehnt.domain.errors import LedgerArithmeticError
from vehnt.domain.numeric import checked_add_u64, checked_mul_i64, checked_sub_u64, require_u64


@dataclass(frozen=True)
class LedgerDelta:
    """Signed change to a pool's decay rate and staked vehnt, applied after a roll forward."""

    fall_rate_change: int = 0
    staked_change: int = 0

    def combine(self, other: LedgerDelta) -> LedgerDelta:
        return LedgerDelta(
            fall_rate_change=self.fall_rate_change + other.fall_rate_change,
            staked_change=self.staked_change + other.staked_change,
        )


@dataclass(frozen=True)
class PoolLedger:
    """Lazily decaying vehnt aggregate for one pool.

    ``staked_amount`` is only correct at ``last_calculated_at``. Instances are frozen;
    ``roll_forward`` and ``apply_delta`` are the only ways to derive a new state.
    """

    staked_amount: int
    fall_rate: int
    last_calculated_at: int

    def __post_init__(self) -> None:
        require_u64(self.staked_amount, name="staked_amount")
        require_u64(self.fall_rate, name="fall_rate")

    def roll_forward(self, now: int) -> PoolLedger:
        elapsed = now - self.last_calculated_at
        if elapsed == 0:
            return self
        if elapsed < 0:
            raise LedgerArithmeticError(
                "ledger clock moved backwards",
                now=now,
                last_calculated_at=self.last_calculated_at,
            )
        decay = checked_mul_i64(elapsed, self.fall_rate, name="decay")
        staked = checked_sub_u64(self.staked_amount, decay, name="staked_amount")
        return replace(self, staked_amount=staked, last_calculated_at=now)

    def apply_delta(self, now: int, delta: LedgerDelta) -> PoolLedger:
        rolled = self.roll_forward(now)
        return replace(
            rolled,
            fall_rate=checked_add_u64(rolled.fall_rate, delta.fall_rate_change, name="fall_rate"),
            staked_amount=checked_add_u64(
                rolled.staked_amount, delta.staked_change, name="staked_amount"
            ),
        )


def roll_forward(pool: PoolLedger, now: int) -> PoolLedger:
    return pool.roll_forward(now)


def projected_staked_amount(pool: PoolLedger, at: int) -> int:
    return pool.roll_forward(at).staked_amount


def stake_delta(fall_rate: int, vehnt_amount: int) -> LedgerDelta:
    return LedgerDelta(fall_rate_change=fall_rate, staked_change=vehnt_amount)


def unstake_delta(fall_rate: int, current_vehnt: int) -> LedgerDelta:
    return LedgerDelta(fall_rate_change=-fall_rate, staked_change=-current_vehnt)
