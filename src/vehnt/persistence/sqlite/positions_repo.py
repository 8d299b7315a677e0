from __future__ import annotations

import sqlite3

from vehnt.domain.positions import StakePosition
from vehnt.persistence.sqlite.base import SqliteRepoBase


def _row_to_position(row: sqlite3.Row) -> StakePosition:
    return StakePosition(
        position_id=str(row["position_id"]),
        pool_id=str(row["pool_id"]),
        deposit_entry_index=int(row["deposit_entry_index"]),
        fall_rate=int(row["fall_rate"]),
        finalized=bool(row["finalized"]),
        closed=bool(row["closed"]),
    )


class SqlitePositionsRepo(SqliteRepoBase):
    repo_name = "positions"

    def get(self, position_id: str) -> StakePosition | None:
        row = self._conn.execute(
            "SELECT * FROM stake_positions WHERE position_id = ?", (position_id,)
        ).fetchone()
        return _row_to_position(row) if row is not None else None

    def save(self, position: StakePosition) -> None:
        self._ensure_writable()
        existing = self.get(position.position_id)
        if existing is not None and existing.finalized and not position.finalized:
            raise ValueError(f"finalized position cannot be reopened: {position.position_id}")
        if existing is not None and existing.closed and not position.closed:
            raise ValueError(f"closed position cannot be reopened: {position.position_id}")
        self._conn.execute(
            """
            INSERT INTO stake_positions(
                position_id, pool_id, deposit_entry_index, fall_rate, finalized, closed, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(position_id) DO UPDATE SET
                pool_id=excluded.pool_id,
                deposit_entry_index=excluded.deposit_entry_index,
                fall_rate=excluded.fall_rate,
                finalized=excluded.finalized,
                closed=excluded.closed,
                updated_at=excluded.updated_at
            """,
            (
                position.position_id,
                position.pool_id,
                position.deposit_entry_index,
                str(position.fall_rate),
                1 if position.finalized else 0,
                1 if position.closed else 0,
                self._now_iso(),
            ),
        )

    def list_open(self, pool_id: str) -> list[StakePosition]:
        rows = self._conn.execute(
            """
            SELECT * FROM stake_positions
            WHERE pool_id = ? AND finalized = 0
            ORDER BY position_id
            """,
            (pool_id,),
        ).fetchall()
        return [_row_to_position(row) for row in rows]
