from __future__ import annotations

from vehnt.domain.errors import LedgerArithmeticError

U64_MAX = (1 << 64) - 1
I64_MAX = (1 << 63) - 1
I64_MIN = -(1 << 63)


def require_u64(value: int, *, name: str) -> int:
    if value < 0 or value > U64_MAX:
        raise LedgerArithmeticError(f"{name} out of u64 range", field=name, value=str(value))
    return value


def checked_add_u64(left: int, right: int, *, name: str = "value") -> int:
    return require_u64(left + right, name=name)


def checked_sub_u64(left: int, right: int, *, name: str = "value") -> int:
    return require_u64(left - right, name=name)


def checked_mul_u64(left: int, right: int, *, name: str = "value") -> int:
    return require_u64(left * right, name=name)


def checked_mul_i64(left: int, right: int, *, name: str = "value") -> int:
    product = left * right
    if product < I64_MIN or product > I64_MAX:
        raise LedgerArithmeticError(f"{name} overflows i64", field=name, value=str(product))
    return product
