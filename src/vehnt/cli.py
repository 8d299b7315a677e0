from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence

from vehnt.config import Settings
from vehnt.domain.epoch import current_epoch, next_epoch_ts
from vehnt.domain.errors import SchedulerUnavailableError, StakingError
from vehnt.domain.ledger import PoolLedger
from vehnt.domain.lockup import Lockup, LockupKind, VotingMintConfig
from vehnt.domain.positions import StakePosition
from vehnt.domain.schedule import build_schedule
from vehnt.domain.voting_power import calculate_voting_power
from vehnt.logging_context import with_logging_context
from vehnt.logging_utils import setup_logging
from vehnt.persistence.sqlite.sqlite_connection import sqlite_connection_context
from vehnt.persistence.uow import UnitOfWorkFactory
from vehnt.services.pool_service import PoolService
from vehnt.services.purge_service import PurgeService, PurgeStatus
from vehnt.services.registrar import SqliteRegistrar
from vehnt.services.retry import RetryPolicy
from vehnt.services.scheduler import HttpTriggerScheduler

logger = logging.getLogger(__name__)


def _emit(payload: dict[str, object]) -> None:
    print(json.dumps(payload, sort_keys=True))


def _pool_payload(pool_id: str, pool: PoolLedger) -> dict[str, object]:
    return {"pool_id": pool_id, **_ledger_payload(pool)}


def _ledger_payload(pool: PoolLedger) -> dict[str, object]:
    return {
        "staked_amount": pool.staked_amount,
        "fall_rate": pool.fall_rate,
        "last_calculated_at": pool.last_calculated_at,
    }


def _build_scheduler(settings: Settings) -> HttpTriggerScheduler:
    # a reschedule that is not stored anywhere would never fire
    if settings.scheduler_base_url is None:
        raise SchedulerUnavailableError(
            "SCHEDULER_BASE_URL is not configured; purge triggers cannot be stored"
        )
    return HttpTriggerScheduler(
        base_url=settings.scheduler_base_url,
        timeout_seconds=settings.scheduler_timeout_seconds,
        retry_policy=RetryPolicy(
            max_attempts=settings.scheduler_max_attempts,
            base_delay_ms=settings.scheduler_base_delay_ms,
            max_delay_ms=settings.scheduler_max_delay_ms,
        ),
    )


def _registrar(settings: Settings, now: int | None) -> SqliteRegistrar:
    if now is None:
        return SqliteRegistrar(settings.state_db_path)
    return SqliteRegistrar(settings.state_db_path, clock=lambda: now)


def _pool_service(settings: Settings, now: int | None) -> PoolService:
    return PoolService(
        uow_factory=UnitOfWorkFactory(settings.state_db_path),
        registrar=_registrar(settings, now),
    )


def run_init_db(settings: Settings) -> int:
    with sqlite_connection_context(settings.state_db_path):
        pass
    _emit({"state_db_path": settings.state_db_path, "status": "ok"})
    return 0


def run_purge(settings: Settings, *, position_id: str, now: int | None) -> int:
    scheduler = _build_scheduler(settings)
    try:
        service = PurgeService.from_settings(
            settings, registrar=_registrar(settings, now), scheduler=scheduler
        )
        _emit(service.process(position_id).to_payload())
    finally:
        scheduler.close()
    return 0


def run_sweep(settings: Settings, *, pool_id: str, now: int | None) -> int:
    scheduler = _build_scheduler(settings)
    try:
        service = PurgeService.from_settings(
            settings, registrar=_registrar(settings, now), scheduler=scheduler
        )
        results = service.sweep(pool_id)
    finally:
        scheduler.close()
    _emit({"pool_id": pool_id, "results": [result.to_payload() for result in results]})
    return 1 if any(result.status == PurgeStatus.FAILED for result in results) else 0


def run_voting_power(args: argparse.Namespace) -> int:
    lockup = Lockup(kind=LockupKind(args.lockup_kind), start_ts=args.start_ts, end_ts=args.end_ts)
    mint_config = VotingMintConfig(
        baseline_vote_weight_scaled_factor=args.baseline_factor,
        max_extra_lockup_vote_weight_scaled_factor=args.max_extra_factor,
        lockup_saturation_secs=args.saturation_secs,
        min_required_lockup_vote_weight_scaled_factor=args.min_required_factor,
        min_required_lockup_saturation_secs=args.min_required_saturation_secs,
    )
    power = calculate_voting_power(
        lockup, mint_config, args.deposited, args.initially_locked, args.at
    )
    _emit({"voting_power": power})
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vehnt")
    parser.add_argument("--db", default=None, help="State sqlite DB path (defaults to env STATE_DB_PATH)")
    parser.add_argument(
        "--now",
        type=int,
        default=None,
        help="Override the registrar clock with a unix timestamp",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the state DB schema")

    create_pool = subparsers.add_parser("create-pool", help="Create an empty pool ledger")
    create_pool.add_argument("pool_id")

    open_position = subparsers.add_parser("open-position", help="Register a locked stake position")
    open_position.add_argument("--pool", required=True)
    open_position.add_argument("--position", required=True)
    open_position.add_argument("--index", type=int, required=True)
    open_position.add_argument("--fall-rate", type=int, required=True)
    open_position.add_argument("--vehnt", type=int, required=True)
    open_position.add_argument(
        "--lockup-kind", choices=[kind.value for kind in LockupKind], default=LockupKind.CLIFF.value
    )
    open_position.add_argument("--lockup-start", type=int, required=True)
    open_position.add_argument("--lockup-end", type=int, required=True)

    pool_status = subparsers.add_parser("pool-status", help="Show a pool projected to now")
    pool_status.add_argument("pool_id")

    close_position = subparsers.add_parser("close-position", help="Unstake a position")
    close_position.add_argument("position_id")
    close_position.add_argument("--vehnt", type=int, required=True, help="Remaining vehnt")

    roll = subparsers.add_parser("roll-forward", help="Persist a pool roll forward to now")
    roll.add_argument("pool_id")

    purge = subparsers.add_parser("purge", help="Reschedule or finalize one position")
    purge.add_argument("position_id")

    sweep = subparsers.add_parser("sweep", help="Purge every open position of a pool")
    sweep.add_argument("pool_id")

    schedule = subparsers.add_parser("schedule", help="Print the one-shot expression for a timestamp")
    schedule.add_argument("execution_ts", type=int)
    schedule.add_argument("--offset", type=int, default=None)

    voting = subparsers.add_parser("voting-power", help="Compute a deposit's vote weight")
    voting.add_argument("--lockup-kind", choices=[kind.value for kind in LockupKind], required=True)
    voting.add_argument("--start-ts", type=int, required=True)
    voting.add_argument("--end-ts", type=int, required=True)
    voting.add_argument("--deposited", type=int, required=True)
    voting.add_argument("--initially-locked", type=int, required=True)
    voting.add_argument("--at", type=int, required=True)
    voting.add_argument("--baseline-factor", type=int, default=0)
    voting.add_argument("--max-extra-factor", type=int, default=0)
    voting.add_argument("--min-required-factor", type=int, default=0)
    voting.add_argument("--saturation-secs", type=int, default=0)
    voting.add_argument("--min-required-saturation-secs", type=int, default=0)
    return parser


def _dispatch(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "init-db":
        return run_init_db(settings)

    if args.command == "create-pool":
        pool = _pool_service(settings, args.now).create_pool(args.pool_id)
        _emit(_pool_payload(args.pool_id, pool))
        return 0

    if args.command == "open-position":
        position = StakePosition(
            position_id=args.position,
            pool_id=args.pool,
            deposit_entry_index=args.index,
            fall_rate=args.fall_rate,
        )
        lockup = Lockup(
            kind=LockupKind(args.lockup_kind), start_ts=args.lockup_start, end_ts=args.lockup_end
        )
        pool = _pool_service(settings, args.now).open_position(
            position, vehnt_amount=args.vehnt, lockup=lockup
        )
        _emit(_pool_payload(args.pool, pool))
        return 0

    if args.command == "pool-status":
        pool = _pool_service(settings, args.now).status(args.pool_id)
        payload = _pool_payload(args.pool_id, pool)
        payload["epoch"] = current_epoch(pool.last_calculated_at)
        payload["next_epoch_ts"] = next_epoch_ts(pool.last_calculated_at)
        _emit(payload)
        return 0

    if args.command == "close-position":
        service = _pool_service(settings, args.now)
        pool = service.close_position(args.position_id, current_vehnt=args.vehnt)
        _emit({"position_id": args.position_id, "pool": _ledger_payload(pool)})
        return 0

    if args.command == "roll-forward":
        pool = _pool_service(settings, args.now).roll_forward(args.pool_id)
        _emit(_pool_payload(args.pool_id, pool))
        return 0

    if args.command == "purge":
        return run_purge(settings, position_id=args.position_id, now=args.now)

    if args.command == "sweep":
        return run_sweep(settings, pool_id=args.pool_id, now=args.now)

    if args.command == "schedule":
        offset = settings.purge_followup_offset_seconds if args.offset is None else args.offset
        _emit({"execution_ts": args.execution_ts, "schedule": build_schedule(args.execution_ts, offset)})
        return 0

    if args.command == "voting-power":
        return run_voting_power(args)

    raise ValueError(f"unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = Settings()
    if args.db is not None:
        settings = settings.model_copy(update={"state_db_path": args.db})
    setup_logging(settings.log_level)

    with with_logging_context(command=args.command):
        try:
            return _dispatch(args, settings)
        except StakingError as exc:
            logger.error("command_failed", extra={"extra": {"error": exc.to_payload()}})
            _emit({"error": exc.to_payload()})
            return 1
        except ValueError as exc:
            _emit({"error": {"code": "INVALID_INPUT", "message": str(exc)}})
            return 2


if __name__ == "__main__":
    sys.exit(main())
