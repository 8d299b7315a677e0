from __future__ import annotations

from dataclasses import dataclass, replace

from vehnt.domain.errors import PositionAlreadyClosedError, PositionAlreadyFinalizedError
from vehnt.domain.numeric import require_u64

MAX_DEPOSIT_ENTRY_INDEX = 255


@dataclass(frozen=True)
class StakePosition:
    """A locked stake position tracked by its pool.

    ``finalized`` means the position's rate is gone from the pool, either through a purge
    or an unstake. ``closed`` means its remaining vehnt is gone too; it implies ``finalized``.
    """

    position_id: str
    pool_id: str
    deposit_entry_index: int
    fall_rate: int
    finalized: bool = False
    closed: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.deposit_entry_index <= MAX_DEPOSIT_ENTRY_INDEX:
            raise ValueError(f"deposit_entry_index out of range: {self.deposit_entry_index}")
        require_u64(self.fall_rate, name="fall_rate")
        if self.closed and not self.finalized:
            raise ValueError(f"closed position must be finalized: {self.position_id}")

    def finalize(self) -> StakePosition:
        if self.finalized:
            raise PositionAlreadyFinalizedError(
                "position already finalized", position_id=self.position_id
            )
        return replace(self, finalized=True)

    def close(self) -> StakePosition:
        if self.closed:
            raise PositionAlreadyClosedError(
                "position already closed", position_id=self.position_id
            )
        return replace(self, finalized=True, closed=True)
