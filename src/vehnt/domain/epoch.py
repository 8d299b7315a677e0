from __future__ import annotations

from vehnt.domain.errors import LedgerArithmeticError

EPOCH_LENGTH = 24 * 60 * 60


def current_epoch(unix_timestamp: int) -> int:
    if unix_timestamp < 0:
        raise LedgerArithmeticError(
            "epoch undefined for negative timestamp", unix_timestamp=unix_timestamp
        )
    return unix_timestamp // EPOCH_LENGTH


def next_epoch_ts(unix_timestamp: int) -> int:
    """Start timestamp of the epoch after the one containing ``unix_timestamp``."""
    return (current_epoch(unix_timestamp) + 1) * EPOCH_LENGTH
