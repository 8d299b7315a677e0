from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol

from vehnt.domain.errors import RecordNotFoundError, StakingErrorCode
from vehnt.domain.lockup import Lockup, LockupView
from vehnt.persistence.uow import UnitOfWorkFactory


class Registrar(Protocol):
    """Owner of deposit lockup terms and of the clock they are evaluated against."""

    def clock_now(self) -> int: ...

    def get_lockup(self, position_id: str, deposit_entry_index: int) -> LockupView: ...


def _missing_lockup(position_id: str, deposit_entry_index: int) -> RecordNotFoundError:
    return RecordNotFoundError(
        StakingErrorCode.LOCKUP_NOT_FOUND,
        "no lockup registered for deposit entry",
        position_id=position_id,
        deposit_entry_index=deposit_entry_index,
    )


def system_clock() -> int:
    return int(time.time())


class InMemoryRegistrar:
    def __init__(self, *, now: int | None = None, clock: Callable[[], int] | None = None) -> None:
        self._now = now
        self._clock = clock or system_clock
        self._lockups: dict[tuple[str, int], LockupView] = {}

    def set_now(self, now: int) -> None:
        self._now = now

    def advance(self, seconds: int) -> int:
        self._now = self.clock_now() + seconds
        return self._now

    def clock_now(self) -> int:
        return self._now if self._now is not None else self._clock()

    def put_lockup(self, position_id: str, deposit_entry_index: int, lockup: LockupView) -> None:
        self._lockups[(position_id, deposit_entry_index)] = lockup

    def get_lockup(self, position_id: str, deposit_entry_index: int) -> LockupView:
        lockup = self._lockups.get((position_id, deposit_entry_index))
        if lockup is None:
            raise _missing_lockup(position_id, deposit_entry_index)
        return lockup


class SqliteRegistrar:
    """Reads lockups from the local ``lockups`` mirror table."""

    def __init__(self, db_path: str, *, clock: Callable[[], int] | None = None) -> None:
        self._reader = UnitOfWorkFactory(db_path, read_only=True)
        self._clock = clock or system_clock

    def clock_now(self) -> int:
        return self._clock()

    def get_lockup(self, position_id: str, deposit_entry_index: int) -> Lockup:
        with self._reader() as uow:
            lockup = uow.lockups.get(position_id, deposit_entry_index)
        if lockup is None:
            raise _missing_lockup(position_id, deposit_entry_index)
        return lockup
