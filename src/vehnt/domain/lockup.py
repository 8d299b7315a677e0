from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from vehnt.domain.numeric import require_u64

SCALED_FACTOR_BASE = 1_000_000_000


class LockupKind(StrEnum):
    NONE = "none"
    CLIFF = "cliff"
    CONSTANT = "constant"


class LockupView(Protocol):
    """Read-only lockup terms as exposed by the registrar."""

    @property
    def kind(self) -> LockupKind: ...

    def is_expired(self, now: int) -> bool: ...

    def seconds_left(self, now: int) -> int: ...

    def seconds_since_expiry(self, now: int) -> int: ...

    def voting_power_locked(
        self,
        now: int,
        min_locked_vote_weight: int,
        max_locked_vote_weight: int,
        lockup_saturation_secs: int,
        min_required_lockup_saturation_secs: int,
    ) -> int: ...


@dataclass(frozen=True)
class Lockup:
    kind: LockupKind
    start_ts: int
    end_ts: int

    def __post_init__(self) -> None:
        if self.end_ts < self.start_ts:
            raise ValueError(f"lockup ends before it starts: {self.start_ts} > {self.end_ts}")

    @property
    def period_secs(self) -> int:
        return self.end_ts - self.start_ts

    def seconds_left(self, now: int) -> int:
        # constant lockups do not run down until converted
        if self.kind == LockupKind.CONSTANT:
            return self.period_secs
        return max(0, self.end_ts - now)

    def is_expired(self, now: int) -> bool:
        return self.seconds_left(now) == 0

    def seconds_since_expiry(self, now: int) -> int:
        if not self.is_expired(now):
            return 0
        return max(0, now - self.end_ts)

    def voting_power_locked(
        self,
        now: int,
        min_locked_vote_weight: int,
        max_locked_vote_weight: int,
        lockup_saturation_secs: int,
        min_required_lockup_saturation_secs: int,
    ) -> int:
        if self.is_expired(now) or max_locked_vote_weight == 0:
            return 0
        remaining = self.seconds_left(now)
        min_required = min_required_lockup_saturation_secs
        if min_required > 0 and remaining < min_required:
            return 0
        if lockup_saturation_secs <= 0 or remaining >= lockup_saturation_secs:
            return max_locked_vote_weight
        span = max_locked_vote_weight - min_locked_vote_weight
        return min_locked_vote_weight + (span * remaining) // lockup_saturation_secs


@dataclass(frozen=True)
class VotingMintConfig:
    baseline_vote_weight_scaled_factor: int
    max_extra_lockup_vote_weight_scaled_factor: int
    lockup_saturation_secs: int
    min_required_lockup_vote_weight_scaled_factor: int = 0
    min_required_lockup_saturation_secs: int = 0

    @staticmethod
    def _apply_factor(amount: int, factor: int, *, name: str) -> int:
        return require_u64(amount * factor // SCALED_FACTOR_BASE, name=name)

    def baseline_vote_weight(self, amount_native: int) -> int:
        return self._apply_factor(
            amount_native, self.baseline_vote_weight_scaled_factor, name="baseline_vote_weight"
        )

    def min_required_lockup_vote_weight(self, amount_native: int) -> int:
        return self._apply_factor(
            amount_native,
            self.min_required_lockup_vote_weight_scaled_factor,
            name="min_required_lockup_vote_weight",
        )

    def max_extra_lockup_vote_weight(self, amount_native: int) -> int:
        return self._apply_factor(
            amount_native,
            self.max_extra_lockup_vote_weight_scaled_factor,
            name="max_extra_lockup_vote_weight",
        )
