from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from vehnt.config import Settings
from vehnt.domain.errors import RecordNotFoundError, StakingError, StakingErrorCode
from vehnt.domain.ledger import PoolLedger
from vehnt.domain.positions import StakePosition
from vehnt.domain.purge import Finalize, Reschedule, decide_purge
from vehnt.domain.schedule import PURGE_FOLLOWUP_OFFSET_SECONDS
from vehnt.logging_context import with_logging_context, with_position_context
from vehnt.persistence.uow import UnitOfWork, UnitOfWorkFactory
from vehnt.services.registrar import Registrar
from vehnt.services.scheduler import TriggerScheduler

logger = logging.getLogger(__name__)


class PurgeStatus(StrEnum):
    RESCHEDULED = "rescheduled"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass(frozen=True)
class PurgeResult:
    position_id: str
    status: PurgeStatus
    trigger_key: str | None = None
    expression: str | None = None
    pool: PoolLedger | None = None
    error_code: StakingErrorCode | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"position_id": self.position_id, "status": self.status.value}
        if self.trigger_key is not None:
            payload["trigger_key"] = self.trigger_key
            payload["expression"] = self.expression
        if self.pool is not None:
            payload["pool"] = {
                "staked_amount": self.pool.staked_amount,
                "fall_rate": self.pool.fall_rate,
                "last_calculated_at": self.pool.last_calculated_at,
            }
        if self.error_code is not None:
            payload["error_code"] = self.error_code.value
        return payload


def load_position(uow: UnitOfWork, position_id: str) -> StakePosition:
    position = uow.positions.get(position_id)
    if position is None:
        raise RecordNotFoundError(
            StakingErrorCode.POSITION_NOT_FOUND, "unknown stake position", position_id=position_id
        )
    return position


def load_pool(uow: UnitOfWork, pool_id: str) -> PoolLedger:
    pool = uow.pools.get(pool_id)
    if pool is None:
        raise RecordNotFoundError(StakingErrorCode.POOL_NOT_FOUND, "unknown pool", pool_id=pool_id)
    return pool


class PurgeService:
    """Runs the purge state machine for stored positions.

    Finalization commits the pool ledger and the position in a single transaction.
    Rescheduling writes nothing locally and hands the new expression to the scheduler.
    """

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        registrar: Registrar,
        scheduler: TriggerScheduler,
        followup_offset_seconds: int = PURGE_FOLLOWUP_OFFSET_SECONDS,
        bypass_expiry_check: bool = False,
    ) -> None:
        self._uow_factory = uow_factory
        self._reader = UnitOfWorkFactory(uow_factory.db_path, read_only=True)
        self._registrar = registrar
        self._scheduler = scheduler
        self._followup_offset_seconds = followup_offset_seconds
        self._bypass_expiry_check = bypass_expiry_check
        if bypass_expiry_check:
            logger.warning("purge_expiry_check_bypassed")

    @classmethod
    def from_settings(
        cls, settings: Settings, *, registrar: Registrar, scheduler: TriggerScheduler
    ) -> PurgeService:
        return cls(
            uow_factory=UnitOfWorkFactory(settings.state_db_path),
            registrar=registrar,
            scheduler=scheduler,
            followup_offset_seconds=settings.purge_followup_offset_seconds,
            bypass_expiry_check=settings.purge_bypass_expiry_check,
        )

    def process(self, position_id: str) -> PurgeResult:
        with self._reader() as uow:
            deposit_entry_index = load_position(uow, position_id).deposit_entry_index
        lockup = self._registrar.get_lockup(position_id, deposit_entry_index)
        now = self._registrar.clock_now()

        with self._uow_factory() as uow:
            position = load_position(uow, position_id)
            with with_position_context(position_id, pool_id=position.pool_id):
                pool = load_pool(uow, position.pool_id)
                outcome = decide_purge(
                    position,
                    pool,
                    lockup,
                    now,
                    followup_offset_seconds=self._followup_offset_seconds,
                    bypass_expiry_check=self._bypass_expiry_check,
                )
                if isinstance(outcome, Finalize):
                    uow.pools.save(position.pool_id, outcome.pool)
                    uow.positions.save(outcome.position)
                    logger.info(
                        "position_finalized",
                        extra={
                            "extra": {
                                "now": now,
                                "position_fall_rate": position.fall_rate,
                                "elapsed_since_expiry": outcome.elapsed_since_expiry,
                                "restored_vehnt": outcome.delta.staked_change,
                                "pool_fall_rate": outcome.pool.fall_rate,
                                "pool_staked_amount": outcome.pool.staked_amount,
                            }
                        },
                    )
                    return PurgeResult(
                        position_id=position_id,
                        status=PurgeStatus.FINALIZED,
                        pool=outcome.pool,
                    )

        return self._reschedule(position, outcome)

    def _reschedule(self, position: StakePosition, outcome: Reschedule) -> PurgeResult:
        with with_logging_context(
            position_id=position.position_id,
            pool_id=position.pool_id,
            trigger_key=outcome.trigger_key,
        ):
            self._scheduler.upsert_trigger(outcome.trigger_key, outcome.expression)
            logger.info(
                "purge_rescheduled",
                extra={
                    "extra": {"expiry_ts": outcome.expiry_ts, "schedule": outcome.expression}
                },
            )
        return PurgeResult(
            position_id=position.position_id,
            status=PurgeStatus.RESCHEDULED,
            trigger_key=outcome.trigger_key,
            expression=outcome.expression,
        )

    def sweep(self, pool_id: str) -> list[PurgeResult]:
        """Process every open position of a pool; failures are reported per position."""
        with self._reader() as uow:
            load_pool(uow, pool_id)
            position_ids = [position.position_id for position in uow.positions.list_open(pool_id)]

        results: list[PurgeResult] = []
        for position_id in position_ids:
            try:
                results.append(self.process(position_id))
            except StakingError as exc:
                logger.error(
                    "purge_failed",
                    exc_info=True,
                    extra={"extra": {"position_id": position_id, "error_code": exc.code.value}},
                )
                results.append(
                    PurgeResult(
                        position_id=position_id,
                        status=PurgeStatus.FAILED,
                        error_code=exc.code,
                    )
                )
        return results
