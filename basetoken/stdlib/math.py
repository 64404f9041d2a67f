"""
basetoken.stdlib.math
=====================

Checked unsigned-integer helpers for token arithmetic.

- **U256**-oriented, integer-only; never uses floats.
- "checked" variants raise `InvalidAmount` on overflow/underflow instead of wrapping.
- Callers that have a domain-specific error for a shortfall (e.g.
  `InsufficientBalance`) check before subtracting; the underflow guard here
  is the last line, not the user-facing one.
"""

from __future__ import annotations

from typing import Final

from ..errors import InvalidAmount

U256_MAX: Final[int] = 2**256 - 1
U64_MAX: Final[int] = 2**64 - 1


def is_u256(x: object) -> bool:
    return isinstance(x, int) and not isinstance(x, bool) and 0 <= x <= U256_MAX


def require_u256(*xs: object) -> None:
    """Raise InvalidAmount unless every argument is an int in [0, U256_MAX]."""
    for x in xs:
        if not is_u256(x):
            raise InvalidAmount("amount must be an integer in [0, 2**256-1]", amount=x)


def is_u64(x: object) -> bool:
    return isinstance(x, int) and not isinstance(x, bool) and 0 <= x <= U64_MAX


def require_u64(x: object, *, what: str = "value") -> int:
    """Raise InvalidAmount unless `x` is an int in [0, U64_MAX]; return it."""
    if not is_u64(x):
        raise InvalidAmount(f"{what} must fit in u64", amount=x)
    return x


def u256_add(x: int, y: int) -> int:
    """Checked add: raise on overflow."""
    require_u256(x, y)
    s = x + y
    if s > U256_MAX:
        raise InvalidAmount("u256 overflow", amount=s)
    return s


def u256_sub(x: int, y: int) -> int:
    """Checked subtract: raise on underflow."""
    require_u256(x, y)
    if y > x:
        raise InvalidAmount("u256 underflow", amount=x - y)
    return x - y


def u256_bytes(n: int) -> bytes:
    """32-byte big-endian encoding."""
    require_u256(n)
    return n.to_bytes(32, "big")


def u64_bytes(n: int) -> bytes:
    """8-byte big-endian encoding."""
    return require_u64(n).to_bytes(8, "big")


__all__ = [
    "U256_MAX",
    "U64_MAX",
    "is_u256",
    "require_u256",
    "is_u64",
    "require_u64",
    "u256_add",
    "u256_sub",
    "u256_bytes",
    "u64_bytes",
]
