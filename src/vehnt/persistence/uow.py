from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from vehnt.persistence.sqlite.lockups_repo import SqliteLockupsRepo
from vehnt.persistence.sqlite.pools_repo import SqlitePoolsRepo
from vehnt.persistence.sqlite.positions_repo import SqlitePositionsRepo
from vehnt.persistence.sqlite.sqlite_connection import create_sqlite_connection, ensure_schema

logger = logging.getLogger(__name__)


class UnitOfWork:
    """One sqlite transaction; commits on clean exit, rolls back on any exception."""

    def __init__(self, db_path: str, *, read_only: bool = False) -> None:
        self._db_path = db_path
        self.read_only = read_only
        self._conn: sqlite3.Connection | None = None
        self.pools: SqlitePoolsRepo
        self.positions: SqlitePositionsRepo
        self.lockups: SqliteLockupsRepo

    def __enter__(self) -> UnitOfWork:
        conn = create_sqlite_connection(self._db_path)
        ensure_schema(conn)
        if self.read_only:
            conn.execute("BEGIN")
        else:
            conn.execute("BEGIN IMMEDIATE")
        self._conn = conn
        self.pools = SqlitePoolsRepo(conn, read_only=self.read_only)
        self.positions = SqlitePositionsRepo(conn, read_only=self.read_only)
        self.lockups = SqliteLockupsRepo(conn, read_only=self.read_only)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._conn is None:
            return
        try:
            if exc_type is None:
                self._conn.commit()
            else:
                logger.info(
                    "uow_rollback",
                    extra={"extra": {"error_type": exc_type.__name__}},
                )
                self._conn.rollback()
        finally:
            self._conn.close()
            self._conn = None


@dataclass(frozen=True)
class UnitOfWorkFactory:
    db_path: str
    read_only: bool = False

    def __call__(self) -> UnitOfWork:
        return UnitOfWork(self.db_path, read_only=self.read_only)
