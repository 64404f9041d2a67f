"""
basetoken.stdlib.token
======================

Shared conventions and validation for fungible token implementations.
This package **does not** touch state or emit events by itself; it only
provides event names, address handling and sanity checks used by
`fungible`, `permit` and the access helpers.

Conventions
-----------
Addresses are `"0x"` + 40 hex chars. They are normalized to lowercase at
every entry point so two spellings of one account never hold two balances.
`ZERO_ADDRESS` is the mint source / burn sink in `Transfer` events and is
never a valid receiver, spender or owner.

Events:
  - "Transfer" { "from": str, "to": str, "value": int }
  - "Approval" { "owner": str, "spender": str, "value": int }

Symbols/Names:
  - Symbols: 1..11 printable ASCII.
  - Names:   1..64 printable ASCII.
"""

from __future__ import annotations

import re
from typing import Final

from ...errors import InvalidAddress, InvalidMetadata
from ..math import require_u256

EVT_TRANSFER: Final[str] = "Transfer"
EVT_APPROVAL: Final[str] = "Approval"

DEFAULT_DECIMALS: Final[int] = 18

ZERO_ADDRESS: Final[str] = "0x" + "00" * 20

_ADDR_RE = re.compile(r"^0[xX][0-9a-fA-F]{40}$")


# -----------------------------------------------------------------------------
# Addresses
# -----------------------------------------------------------------------------


def normalize_address(addr: object) -> str:
    """
    Return the canonical lowercase form of `addr` or raise InvalidAddress.
    The zero address is well-formed here; use `require_address` to reject it.
    """
    if not isinstance(addr, str) or not _ADDR_RE.match(addr):
        raise InvalidAddress("address must be 0x followed by 40 hex characters", address=addr)
    return "0x" + addr[2:].lower()


def require_address(addr: object, *, what: str = "address") -> str:
    """Normalize `addr` and reject the zero address."""
    a = normalize_address(addr)
    if a == ZERO_ADDRESS:
        raise InvalidAddress(f"{what} must not be the zero address", address=addr)
    return a


def address_bytes(addr: str) -> bytes:
    """Raw 20-byte payload of a (well-formed) address."""
    return bytes.fromhex(normalize_address(addr)[2:])


# -----------------------------------------------------------------------------
# Amounts & metadata
# -----------------------------------------------------------------------------


def require_amount(n: object) -> int:
    """Ensure `n` is an int amount in [0, 2**256-1]; returns it."""
    require_u256(n)
    return n  # type: ignore[return-value]


def is_printable_ascii(s: str) -> bool:
    return isinstance(s, str) and len(s) > 0 and all(32 <= ord(c) <= 126 for c in s)


def require_symbol(sym: str) -> str:
    if not is_printable_ascii(sym) or not (1 <= len(sym) <= 11):
        raise InvalidMetadata("symbol must be 1..11 printable ASCII characters", field_name="symbol")
    return sym


def require_name(name: str) -> str:
    if not is_printable_ascii(name) or not (1 <= len(name) <= 64):
        raise InvalidMetadata("name must be 1..64 printable ASCII characters", field_name="name")
    return name


def require_decimals(n: int) -> int:
    if not isinstance(n, int) or isinstance(n, bool) or not (0 <= n <= 36):
        raise InvalidMetadata("decimals must be an integer in [0, 36]", field_name="decimals")
    return n


__all__ = [
    "EVT_TRANSFER",
    "EVT_APPROVAL",
    "DEFAULT_DECIMALS",
    "ZERO_ADDRESS",
    "normalize_address",
    "require_address",
    "address_bytes",
    "require_amount",
    "is_printable_ascii",
    "require_symbol",
    "require_name",
    "require_decimals",
]
