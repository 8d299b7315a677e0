from __future__ import annotations

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from vehnt.domain.epoch import EPOCH_LENGTH, current_epoch, next_epoch_ts
from vehnt.domain.errors import LedgerArithmeticError, StakingErrorCode
from vehnt.domain.ledger import (
    LedgerDelta,
    PoolLedger,
    projected_staked_amount,
    roll_forward,
    stake_delta,
    unstake_delta,
)
from vehnt.domain.numeric import U64_MAX


def test_roll_forward_decays_by_elapsed_times_fall_rate() -> None:
    pool = PoolLedger(staked_amount=1000, fall_rate=10, last_calculated_at=0)

    rolled = roll_forward(pool, 50)

    assert rolled.staked_amount == 500
    assert rolled.last_calculated_at == 50
    assert rolled.fall_rate == 10


def test_roll_forward_twice_at_same_time_is_noop() -> None:
    pool = PoolLedger(staked_amount=1000, fall_rate=10, last_calculated_at=0)

    once = pool.roll_forward(30)
    twice = once.roll_forward(30)

    assert twice == once
    assert twice is once


def test_roll_forward_rejects_negative_balance() -> None:
    pool = PoolLedger(staked_amount=1000, fall_rate=10, last_calculated_at=0)

    with pytest.raises(LedgerArithmeticError) as exc_info:
        pool.roll_forward(101)

    assert isinstance(exc_info.value, ArithmeticError)
    assert exc_info.value.code == StakingErrorCode.ARITHMETIC_ERROR


def test_roll_forward_rejects_clock_moving_backwards() -> None:
    pool = PoolLedger(staked_amount=1000, fall_rate=10, last_calculated_at=100)

    with pytest.raises(LedgerArithmeticError):
        pool.roll_forward(99)


def test_roll_forward_rejects_decay_product_overflow() -> None:
    pool = PoolLedger(staked_amount=U64_MAX, fall_rate=2**62, last_calculated_at=0)

    with pytest.raises(LedgerArithmeticError):
        pool.roll_forward(2)


def test_pool_ledger_rejects_values_outside_u64() -> None:
    with pytest.raises(LedgerArithmeticError):
        PoolLedger(staked_amount=-1, fall_rate=0, last_calculated_at=0)
    with pytest.raises(LedgerArithmeticError):
        PoolLedger(staked_amount=0, fall_rate=U64_MAX + 1, last_calculated_at=0)


def test_apply_delta_rolls_forward_before_mutating() -> None:
    pool = PoolLedger(staked_amount=1000, fall_rate=10, last_calculated_at=0)

    updated = pool.apply_delta(50, LedgerDelta(fall_rate_change=-5, staked_change=500))

    assert updated == PoolLedger(staked_amount=1000, fall_rate=5, last_calculated_at=50)
    assert pool.staked_amount == 1000
    assert pool.last_calculated_at == 0


def test_apply_delta_rejects_fall_rate_underflow() -> None:
    pool = PoolLedger(staked_amount=1000, fall_rate=10, last_calculated_at=0)

    with pytest.raises(LedgerArithmeticError):
        pool.apply_delta(0, LedgerDelta(fall_rate_change=-11))


def test_projection_does_not_touch_stored_pool() -> None:
    pool = PoolLedger(staked_amount=1000, fall_rate=10, last_calculated_at=0)

    assert projected_staked_amount(pool, 20) == 800
    assert pool.staked_amount == 1000


def test_stake_and_unstake_deltas_cancel_out() -> None:
    pool = PoolLedger(staked_amount=0, fall_rate=0, last_calculated_at=0)

    staked = pool.apply_delta(0, stake_delta(4, 400))
    assert staked == PoolLedger(staked_amount=400, fall_rate=4, last_calculated_at=0)

    # 10 seconds later the position holds 400 - 40
    unstaked = staked.apply_delta(10, unstake_delta(4, 360))
    assert unstaked == PoolLedger(staked_amount=0, fall_rate=0, last_calculated_at=10)
    assert stake_delta(1, 2).combine(unstake_delta(1, 2)) == LedgerDelta()


@settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(
    rate=st.integers(min_value=0, max_value=10_000),
    t1=st.integers(min_value=0, max_value=100_000),
    gap=st.integers(min_value=0, max_value=100_000),
    headroom=st.integers(min_value=0, max_value=10**12),
)
def test_roll_forward_is_linear_in_elapsed_time(rate: int, t1: int, gap: int, headroom: int) -> None:
    t2 = t1 + gap
    pool = PoolLedger(staked_amount=rate * t2 + headroom, fall_rate=rate, last_calculated_at=0)

    at_t1 = pool.roll_forward(t1)
    at_t2 = at_t1.roll_forward(t2)

    assert at_t2.staked_amount == at_t1.staked_amount - gap * rate
    assert at_t2 == pool.roll_forward(t2)
    assert at_t2.roll_forward(t2) == at_t2


def test_epoch_boundaries() -> None:
    assert current_epoch(0) == 0
    assert current_epoch(EPOCH_LENGTH - 1) == 0
    assert current_epoch(EPOCH_LENGTH) == 1
    assert next_epoch_ts(1) == EPOCH_LENGTH
    assert next_epoch_ts(EPOCH_LENGTH) == 2 * EPOCH_LENGTH


def test_epoch_rejects_negative_timestamps() -> None:
    with pytest.raises(LedgerArithmeticError):
        current_epoch(-1)
