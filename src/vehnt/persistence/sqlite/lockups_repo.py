from __future__ import annotations

from vehnt.domain.lockup import Lockup, LockupKind
from vehnt.persistence.sqlite.base import SqliteRepoBase


class SqliteLockupsRepo(SqliteRepoBase):
    """Local mirror of registrar lockup terms."""

    repo_name = "lockups"

    def get(self, position_id: str, deposit_entry_index: int) -> Lockup | None:
        row = self._conn.execute(
            """
            SELECT kind, start_ts, end_ts FROM lockups
            WHERE position_id = ? AND deposit_entry_index = ?
            """,
            (position_id, deposit_entry_index),
        ).fetchone()
        if row is None:
            return None
        return Lockup(
            kind=LockupKind(str(row["kind"])),
            start_ts=int(row["start_ts"]),
            end_ts=int(row["end_ts"]),
        )

    def save(self, position_id: str, deposit_entry_index: int, lockup: Lockup) -> None:
        self._ensure_writable()
        self._conn.execute(
            """
            INSERT INTO lockups(position_id, deposit_entry_index, kind, start_ts, end_ts)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(position_id, deposit_entry_index) DO UPDATE SET
                kind=excluded.kind,
                start_ts=excluded.start_ts,
                end_ts=excluded.end_ts
            """,
            (position_id, deposit_entry_index, lockup.kind.value, lockup.start_ts, lockup.end_ts),
        )
