from __future__ import annotations

from vehnt.domain.ledger import PoolLedger
from vehnt.persistence.sqlite.base import SqliteRepoBase


class SqlitePoolsRepo(SqliteRepoBase):
    repo_name = "pools"

    def get(self, pool_id: str) -> PoolLedger | None:
        row = self._conn.execute(
            "SELECT staked_amount, fall_rate, last_calculated_at FROM pools WHERE pool_id = ?",
            (pool_id,),
        ).fetchone()
        if row is None:
            return None
        return PoolLedger(
            staked_amount=int(row["staked_amount"]),
            fall_rate=int(row["fall_rate"]),
            last_calculated_at=int(row["last_calculated_at"]),
        )

    def save(self, pool_id: str, pool: PoolLedger) -> None:
        self._ensure_writable()
        self._conn.execute(
            """
            INSERT INTO pools(pool_id, staked_amount, fall_rate, last_calculated_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(pool_id) DO UPDATE SET
                staked_amount=excluded.staked_amount,
                fall_rate=excluded.fall_rate,
                last_calculated_at=excluded.last_calculated_at,
                updated_at=excluded.updated_at
            """,
            (
                pool_id,
                str(pool.staked_amount),
                str(pool.fall_rate),
                pool.last_calculated_at,
                self._now_iso(),
            ),
        )

    def list_ids(self) -> list[str]:
        rows = self._conn.execute("SELECT pool_id FROM pools ORDER BY pool_id").fetchall()
        return [str(row["pool_id"]) for row in rows]
