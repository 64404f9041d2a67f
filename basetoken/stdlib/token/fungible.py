"""
basetoken.stdlib.token.fungible
===============================

ERC-20–like fungible ledger over a `Journal`.

The ledger owns no state of its own: balances, allowances and total supply
live in the `TokenState` behind the journal, and every mutation is staged in
the journal's open checkpoint. Callers (normally `BaseToken`) are expected to
open the outer checkpoint; multi-step operations here run in a nested
`journal.atomic()` block so a late failure never leaves a half-applied step
behind even when the caller keeps its own checkpoint open.

Highlights
----------
- Explicit `caller` parameters for mutating calls (no ambient sender).
- Events staged through the journal:
    - "Transfer" { "from": str, "to": str, "value": int }
    - "Approval" { "owner": str, "spender": str, "value": int }
- U256-checked math via `basetoken.stdlib.math` (no silent wrap).
- No authorization and no supply cap: `mint_to` / `burn_from_balance` are
  primitives and the policy around them belongs to the composing token.

Public interface
----------------
# views
total_supply() -> int
balance_of(addr) -> int
allowance(owner, spender) -> int

# state-changing (explicit caller)
transfer(caller, to, amount) -> bool
approve(caller, spender, amount) -> bool
transfer_from(caller, owner, to, amount) -> bool
increase_allowance(caller, spender, added) -> bool
decrease_allowance(caller, spender, subtracted) -> bool

# primitives
mint_to(to, amount) -> None
burn_from_balance(account, amount) -> None
spend_allowance(owner, spender, amount) -> None
set_allowance(owner, spender, amount) -> None

Notes
-----
- Zero-amount operations are valid and still emit their event.
- Spending an allowance does not emit "Approval"; only explicit allowance
  changes (approve, increase/decrease, permit) do.
"""

from __future__ import annotations

from ...errors import InsufficientAllowance, InsufficientBalance
from ...state.events import make_event
from ...state.journal import Journal
from ...state.token_state import ALLOWANCES, BALANCES, K_TOTAL_SUPPLY, SCALARS
from ..math import u256_add, u256_sub
from . import (EVT_APPROVAL, EVT_TRANSFER, ZERO_ADDRESS, normalize_address,
               require_address, require_amount)


class FungibleLedger:
    """Balances and allowances for a single token, staged through a journal."""

    def __init__(self, journal: Journal) -> None:
        self._j = journal

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def total_supply(self) -> int:
        return int(self._j.get(SCALARS, K_TOTAL_SUPPLY, 0))

    def balance_of(self, addr: str) -> int:
        return int(self._j.get(BALANCES, normalize_address(addr), 0))

    def allowance(self, owner: str, spender: str) -> int:
        key = (normalize_address(owner), normalize_address(spender))
        return int(self._j.get(ALLOWANCES, key, 0))

    # ------------------------------------------------------------------
    # Mutations (explicit caller)
    # ------------------------------------------------------------------

    def transfer(self, caller: str, to: str, amount: int) -> bool:
        src = require_address(caller, what="sender")
        dst = require_address(to, what="receiver")
        require_amount(amount)
        with self._j.atomic():
            self._move(src, dst, amount)
        return True

    def approve(self, caller: str, spender: str, amount: int) -> bool:
        owner = require_address(caller, what="owner")
        sp = require_address(spender, what="spender")
        require_amount(amount)
        self.set_allowance(owner, sp, amount)
        return True

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> bool:
        """
        Spender (`caller`) moves `amount` from `owner` to `to` using allowance.

        The allowance is checked and debited before the balance, so a short
        allowance always reports InsufficientAllowance.
        """
        sp = require_address(caller, what="spender")
        src = require_address(owner, what="owner")
        dst = require_address(to, what="receiver")
        require_amount(amount)
        with self._j.atomic():
            self.spend_allowance(src, sp, amount)
            self._move(src, dst, amount)
        return True

    def increase_allowance(self, caller: str, spender: str, added: int) -> bool:
        owner = require_address(caller, what="owner")
        sp = require_address(spender, what="spender")
        require_amount(added)
        cur = self.allowance(owner, sp)
        self.set_allowance(owner, sp, u256_add(cur, added))
        return True

    def decrease_allowance(self, caller: str, spender: str, subtracted: int) -> bool:
        owner = require_address(caller, what="owner")
        sp = require_address(spender, what="spender")
        require_amount(subtracted)
        cur = self.allowance(owner, sp)
        if cur < subtracted:
            raise InsufficientAllowance(
                "decreased allowance below zero",
                owner=owner,
                spender=sp,
                allowance=cur,
                needed=subtracted,
            )
        self.set_allowance(owner, sp, u256_sub(cur, subtracted))
        return True

    # ------------------------------------------------------------------
    # Primitives (no authorization, no cap)
    # ------------------------------------------------------------------

    def mint_to(self, to: str, amount: int) -> None:
        """Credit `to` and grow total supply. Emits Transfer(ZERO -> to)."""
        dst = require_address(to, what="receiver")
        require_amount(amount)
        with self._j.atomic():
            self._j.set(SCALARS, K_TOTAL_SUPPLY, u256_add(self.total_supply(), amount))
            self._j.set(BALANCES, dst, u256_add(self.balance_of(dst), amount))
            self._j.emit(make_event(EVT_TRANSFER, **{"from": ZERO_ADDRESS, "to": dst, "value": amount}))

    def burn_from_balance(self, account: str, amount: int) -> None:
        """Debit `account` and shrink total supply. Emits Transfer(account -> ZERO)."""
        src = require_address(account, what="account")
        require_amount(amount)
        bal = self.balance_of(src)
        if bal < amount:
            raise InsufficientBalance(account=src, balance=bal, needed=amount)
        with self._j.atomic():
            self._j.set(BALANCES, src, u256_sub(bal, amount))
            self._j.set(SCALARS, K_TOTAL_SUPPLY, u256_sub(self.total_supply(), amount))
            self._j.emit(make_event(EVT_TRANSFER, **{"from": src, "to": ZERO_ADDRESS, "value": amount}))

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        """Debit `amount` from owner->spender allowance, or raise InsufficientAllowance."""
        o = require_address(owner, what="owner")
        sp = require_address(spender, what="spender")
        require_amount(amount)
        cur = self.allowance(o, sp)
        if cur < amount:
            raise InsufficientAllowance(owner=o, spender=sp, allowance=cur, needed=amount)
        self._j.set(ALLOWANCES, (o, sp), u256_sub(cur, amount))

    def set_allowance(self, owner: str, spender: str, amount: int) -> None:
        """Overwrite the owner->spender allowance. Emits Approval."""
        o = require_address(owner, what="owner")
        sp = require_address(spender, what="spender")
        require_amount(amount)
        self._j.set(ALLOWANCES, (o, sp), amount)
        self._j.emit(make_event(EVT_APPROVAL, owner=o, spender=sp, value=amount))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _move(self, src: str, dst: str, amount: int) -> None:
        bal = self.balance_of(src)
        if bal < amount:
            raise InsufficientBalance(account=src, balance=bal, needed=amount)
        self._j.set(BALANCES, src, u256_sub(bal, amount))
        # read after the debit so self-transfers net to zero
        self._j.set(BALANCES, dst, u256_add(self.balance_of(dst), amount))
        self._j.emit(make_event(EVT_TRANSFER, **{"from": src, "to": dst, "value": amount}))


__all__ = ["FungibleLedger"]
