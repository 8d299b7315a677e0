from __future__ import annotations

import logging

from vehnt.domain.ledger import PoolLedger, stake_delta, unstake_delta
from vehnt.domain.lockup import Lockup
from vehnt.domain.positions import StakePosition
from vehnt.domain.purge import expired_position_delta
from vehnt.logging_context import with_logging_context, with_position_context
from vehnt.persistence.uow import UnitOfWorkFactory
from vehnt.services.purge_service import load_pool, load_position
from vehnt.services.registrar import Registrar

logger = logging.getLogger(__name__)


class PoolService:
    """Pool bookkeeping that goes through the decay ledger before every write."""

    def __init__(self, *, uow_factory: UnitOfWorkFactory, registrar: Registrar) -> None:
        self._uow_factory = uow_factory
        self._reader = UnitOfWorkFactory(uow_factory.db_path, read_only=True)
        self._registrar = registrar

    def create_pool(self, pool_id: str, *, now: int | None = None) -> PoolLedger:
        pool = PoolLedger(
            staked_amount=0,
            fall_rate=0,
            last_calculated_at=self._registrar.clock_now() if now is None else now,
        )
        with self._uow_factory() as uow:
            if uow.pools.get(pool_id) is not None:
                raise ValueError(f"pool already exists: {pool_id}")
            uow.pools.save(pool_id, pool)
        logger.info("pool_created", extra={"extra": {"pool_id": pool_id}})
        return pool

    def status(self, pool_id: str) -> PoolLedger:
        """Pool projected to the registrar clock without persisting the roll forward."""
        with self._reader() as uow:
            pool = load_pool(uow, pool_id)
        return pool.roll_forward(self._registrar.clock_now())

    def roll_forward(self, pool_id: str) -> PoolLedger:
        now = self._registrar.clock_now()
        with self._uow_factory() as uow, with_logging_context(pool_id=pool_id):
            rolled = load_pool(uow, pool_id).roll_forward(now)
            uow.pools.save(pool_id, rolled)
            logger.info(
                "pool_rolled_forward",
                extra={"extra": {"now": now, "staked_amount": rolled.staked_amount}},
            )
        return rolled

    def open_position(
        self, position: StakePosition, *, vehnt_amount: int, lockup: Lockup
    ) -> PoolLedger:
        now = self._registrar.clock_now()
        with self._uow_factory() as uow, with_position_context(
            position.position_id, pool_id=position.pool_id
        ):
            if uow.positions.get(position.position_id) is not None:
                raise ValueError(f"position already exists: {position.position_id}")
            pool = load_pool(uow, position.pool_id).apply_delta(
                now, stake_delta(position.fall_rate, vehnt_amount)
            )
            uow.pools.save(position.pool_id, pool)
            uow.positions.save(position)
            uow.lockups.save(position.position_id, position.deposit_entry_index, lockup)
            logger.info(
                "position_opened",
                extra={"extra": {"fall_rate": position.fall_rate, "vehnt_amount": vehnt_amount}},
            )
        return pool

    def close_position(self, position_id: str, *, current_vehnt: int) -> PoolLedger:
        """Unstake: drop the remaining vehnt, and the rate unless a purge already removed it.

        An expired position that was never purged also gets back the decay charged to the
        pool after its expiry, the same restoration a purge applies.
        """
        with self._reader() as uow:
            stored = load_position(uow, position_id)
        # repeat closes fail here even if the registrar has dropped the lockup
        stored.close()
        lockup = self._registrar.get_lockup(position_id, stored.deposit_entry_index)
        now = self._registrar.clock_now()

        with self._uow_factory() as uow:
            position = load_position(uow, position_id)
            with with_position_context(position_id, pool_id=position.pool_id):
                closed = position.close()
                delta = unstake_delta(0, current_vehnt)
                if not position.finalized:
                    delta = expired_position_delta(position, lockup, now).combine(delta)
                pool = load_pool(uow, position.pool_id).apply_delta(now, delta)
                uow.pools.save(position.pool_id, pool)
                uow.positions.save(closed)
                logger.info(
                    "position_closed",
                    extra={
                        "extra": {
                            "current_vehnt": current_vehnt,
                            "fall_rate_change": delta.fall_rate_change,
                            "staked_change": delta.staked_change,
                            "was_purged": position.finalized,
                        }
                    },
                )
        return pool
