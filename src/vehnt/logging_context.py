from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

CONTEXT_FIELDS = ("command", "pool_id", "position_id", "trigger_key")
_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    field: ContextVar(f"vehnt_{field}", default=None) for field in CONTEXT_FIELDS
}


def get_logging_context() -> dict[str, str]:
    """Fields currently bound for this context, unset ones omitted."""
    return {
        field: value
        for field, context_var in _CONTEXT_VARS.items()
        if (value := context_var.get()) is not None
    }


@contextmanager
def with_logging_context(**context: str | None) -> Iterator[None]:
    tokens = {
        key: _CONTEXT_VARS[key].set(value)
        for key, value in context.items()
        if key in _CONTEXT_VARS and value is not None
    }
    try:
        yield
    finally:
        for key, token in tokens.items():
            _CONTEXT_VARS[key].reset(token)


@contextmanager
def with_position_context(position_id: str, pool_id: str | None = None) -> Iterator[None]:
    with with_logging_context(position_id=position_id, pool_id=pool_id):
        yield
