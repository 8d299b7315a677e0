from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager


def create_sqlite_connection(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, timeout=30.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA busy_timeout = 5000")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    # u64 values exceed sqlite INTEGER; they are kept as decimal TEXT
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS pools (
            pool_id TEXT PRIMARY KEY,
            staked_amount TEXT NOT NULL,
            fall_rate TEXT NOT NULL,
            last_calculated_at INTEGER NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS stake_positions (
            position_id TEXT PRIMARY KEY,
            pool_id TEXT NOT NULL,
            deposit_entry_index INTEGER NOT NULL,
            fall_rate TEXT NOT NULL,
            finalized INTEGER NOT NULL DEFAULT 0,
            closed INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_stake_positions_pool_open
        ON stake_positions(pool_id, finalized)
        """
    )
    position_columns = {
        str(row["name"]) for row in conn.execute("PRAGMA table_info(stake_positions)")
    }
    if "closed" not in position_columns:
        conn.execute(
            "ALTER TABLE stake_positions ADD COLUMN closed INTEGER NOT NULL DEFAULT 0"
        )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS lockups (
            position_id TEXT NOT NULL,
            deposit_entry_index INTEGER NOT NULL,
            kind TEXT NOT NULL,
            start_ts INTEGER NOT NULL,
            end_ts INTEGER NOT NULL,
            PRIMARY KEY (position_id, deposit_entry_index)
        )
        """
    )


@contextmanager
def sqlite_connection_context(db_path: str) -> Iterator[sqlite3.Connection]:
    conn = create_sqlite_connection(db_path)
    try:
        ensure_schema(conn)
        yield conn
    finally:
        conn.close()
