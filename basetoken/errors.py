"""
basetoken.errors — typed token errors.

Every rejected call surfaces as one of these exceptions. They are raised
synchronously from inside a journal checkpoint, so by the time a caller sees
one the checkpoint has been reverted and no state or event escaped.

Hierarchy
---------
TokenError (base)
 ├─ SupplyCapExceeded     : mint would push total supply above the cap
 ├─ Unauthorized          : caller is not the owner of an owner-gated call
 ├─ InsufficientBalance   : burn/transfer exceeds the holder's balance
 ├─ InsufficientAllowance : burn_from/transfer_from exceeds the granted allowance
 ├─ InvalidAddress        : malformed or forbidden (zero) address
 ├─ InvalidAmount         : amount not an int in [0, 2**256-1]
 ├─ InvalidMetadata       : bad token name/symbol/decimals
 ├─ PermitExpired         : signed approval submitted after its deadline
 ├─ PermitInvalid         : signed approval failed owner binding or verification
 └─ ConfigError           : configuration could not be loaded or validated

These classes avoid importing anything else from the package so they can be
used from the lowest layers (math helpers, journal) without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class TokenError(Exception):
    """
    Base token error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'SUPPLY_CAP_EXCEEDED').
        data:    Optional structured details (kept JSON-serializable).
    """

    message: str = "token error"
    code: str = "TOKEN_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for receipts/logs/CLI output."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _merge(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is not None:
            # u256 amounts do not survive every JSON consumer as numbers
            d.setdefault(k, str(v) if isinstance(v, int) and not isinstance(v, bool) else v)
    return d or None


class SupplyCapExceeded(TokenError):
    """Mint would exceed the fixed maximum supply."""

    def __init__(
        self,
        message: str = "minting would exceed max supply",
        *,
        total_supply: Optional[int] = None,
        amount: Optional[int] = None,
        max_supply: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="SUPPLY_CAP_EXCEEDED",
            data=_merge(data, total_supply=total_supply, amount=amount, max_supply=max_supply),
        )


class Unauthorized(TokenError):
    def __init__(
        self,
        message: str = "caller is not the owner",
        *,
        caller: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="UNAUTHORIZED", data=_merge(data, caller=caller))


class InsufficientBalance(TokenError):
    def __init__(
        self,
        message: str = "insufficient balance",
        *,
        account: Optional[str] = None,
        balance: Optional[int] = None,
        needed: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_BALANCE",
            data=_merge(data, account=account, balance=balance, needed=needed),
        )


class InsufficientAllowance(TokenError):
    def __init__(
        self,
        message: str = "insufficient allowance",
        *,
        owner: Optional[str] = None,
        spender: Optional[str] = None,
        allowance: Optional[int] = None,
        needed: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_ALLOWANCE",
            data=_merge(data, owner=owner, spender=spender, allowance=allowance, needed=needed),
        )


class InvalidAddress(TokenError):
    def __init__(self, message: str = "invalid address", *, address: Any = None):
        super().__init__(
            message=message,
            code="INVALID_ADDRESS",
            data=_merge(None, address=None if address is None else repr(address)),
        )


class InvalidAmount(TokenError):
    def __init__(self, message: str = "invalid amount", *, amount: Any = None):
        super().__init__(
            message=message,
            code="INVALID_AMOUNT",
            data=_merge(None, amount=None if amount is None else repr(amount)),
        )


class InvalidMetadata(TokenError):
    def __init__(self, message: str = "invalid token metadata", *, field_name: Optional[str] = None):
        super().__init__(message=message, code="INVALID_METADATA", data=_merge(None, field=field_name))


class PermitExpired(TokenError):
    def __init__(
        self,
        message: str = "permit deadline passed",
        *,
        deadline: Optional[int] = None,
        now: Optional[int] = None,
    ):
        super().__init__(message=message, code="PERMIT_EXPIRED", data=_merge(None, deadline=deadline, now=now))


class PermitInvalid(TokenError):
    """
    Signed approval rejected.

    `reason` is one of: "owner_mismatch", "bad_signature", "bad_public_key".
    """

    def __init__(self, message: str = "invalid permit", *, reason: Optional[str] = None):
        super().__init__(message=message, code="PERMIT_INVALID", data=_merge(None, reason=reason))


class ConfigError(TokenError):
    def __init__(self, message: str = "invalid configuration", *, key: Optional[str] = None):
        super().__init__(message=message, code="CONFIG", data=_merge(None, key=key))


# -------- helper utilities ---------------------------------------------------


def error_to_result(err: TokenError) -> Dict[str, Any]:
    """
    Map a TokenError to the canonical per-call result shape:

        {"status": "error", "error": {code, message, data?}}
    """
    return {"status": "error", "error": err.to_dict()}


__all__ = [
    "TokenError",
    "SupplyCapExceeded",
    "Unauthorized",
    "InsufficientBalance",
    "InsufficientAllowance",
    "InvalidAddress",
    "InvalidAmount",
    "InvalidMetadata",
    "PermitExpired",
    "PermitInvalid",
    "ConfigError",
    "error_to_result",
]
