from __future__ import annotations

import os
from pathlib import Path

import pytest

from vehnt.config import Settings
from vehnt.domain.lockup import Lockup, LockupKind
from vehnt.domain.positions import StakePosition
from vehnt.persistence.uow import UnitOfWorkFactory
from vehnt.services.pool_service import PoolService
from vehnt.services.registrar import InMemoryRegistrar
from vehnt.services.scheduler import InMemoryTriggerScheduler


@pytest.fixture(autouse=True)
def isolate_settings_from_host_env(monkeypatch: pytest.MonkeyPatch):
    original_env_file = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    settings_env_keys: set[str] = set()
    for field in Settings.model_fields.values():
        if isinstance(field.alias, str):
            settings_env_keys.add(field.alias)

    for key in list(os.environ):
        if key in settings_env_keys:
            monkeypatch.delenv(key, raising=False)

    yield

    Settings.model_config["env_file"] = original_env_file


@pytest.fixture(autouse=True)
def isolate_default_state_db_per_test(
    isolate_settings_from_host_env: None,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    del isolate_settings_from_host_env
    monkeypatch.setenv("STATE_DB_PATH", str(tmp_path / "state.sqlite"))


@pytest.fixture
def uow_factory(tmp_path: Path) -> UnitOfWorkFactory:
    return UnitOfWorkFactory(str(tmp_path / "state.sqlite"))


@pytest.fixture
def registrar() -> InMemoryRegistrar:
    return InMemoryRegistrar(now=0)


@pytest.fixture
def scheduler() -> InMemoryTriggerScheduler:
    return InMemoryTriggerScheduler()


@pytest.fixture
def pool_service(uow_factory: UnitOfWorkFactory, registrar: InMemoryRegistrar) -> PoolService:
    return PoolService(uow_factory=uow_factory, registrar=registrar)


@pytest.fixture
def open_cliff_position(pool_service: PoolService, registrar: InMemoryRegistrar):
    def _open(
        position_id: str,
        *,
        pool_id: str = "pool-1",
        index: int = 0,
        fall_rate: int,
        vehnt: int,
        end_ts: int,
    ) -> StakePosition:
        position = StakePosition(
            position_id=position_id,
            pool_id=pool_id,
            deposit_entry_index=index,
            fall_rate=fall_rate,
        )
        lockup = Lockup(kind=LockupKind.CLIFF, start_ts=registrar.clock_now(), end_ts=end_ts)
        pool_service.open_position(position, vehnt_amount=vehnt, lockup=lockup)
        registrar.put_lockup(position_id, index, lockup)
        return position

    return _open
