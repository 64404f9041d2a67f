"""
basetoken.token — the supply-capped token.

`BaseToken` composes the stdlib collaborators (fungible ledger, ownable,
permit) over one explicit `TokenState` and adds the token's own policy:

- a fixed supply cap checked on every mint (`total_supply + amount <= max_supply`),
- owner-gated minting,
- audit events wrapping supply changes:
    - "TokensMinted" { "to": str, "amount": int }
    - "TokensBurned" { "from": str, "amount": int }
- the `get_token_info()` aggregation view.

Every mutating call is one atomic transition: it runs under a re-entrant
single-writer lock inside a journal checkpoint. On success the staged events
are numbered and stored in the sink as one batch; only then do the staged
writes reach the state, after which the records are handed to subscribers
and returned in a `Receipt`. When the call fails, or the sink refuses the
batch, the checkpoint is reverted and the error propagates: nothing was
written and no event is delivered.

`seq` continues from the sink's `last_seq()`, so tokens reusing a durable
event log never repeat a sequence number.

Example
-------
    tok = BaseToken("Base Ecosystem Token", "BET", 1_000_000 * 10**18, owner)
    tok.mint(owner, alice, 1_000 * 10**18)
    tok.burn(alice, 100 * 10**18)
    tok.get_token_info()
"""

from __future__ import annotations

import hashlib
import logging
import threading
from typing import (Any, Callable, Iterator, List, NamedTuple, Optional,
                    Tuple)

from . import logging as tlog
from .config import DEVNET_CHAIN_ID, TokenConfig
from .errors import SupplyCapExceeded, TokenError
from .state.events import (EventRecord, EventSink, InMemoryEventSink,
                           JsonlEventSink, NameSelector, Receipt, make_event)
from .state.journal import Journal
from .state.token_state import TokenMetadata, TokenState
from .stdlib.access.ownable import Ownable
from .stdlib.math import require_u64, u64_bytes
from .stdlib.token import (DEFAULT_DECIMALS, address_bytes, normalize_address,
                           require_address, require_amount, require_decimals,
                           require_name, require_symbol)
from .stdlib.token.fungible import FungibleLedger
from .stdlib.token.permit import BytesLike, Clock, Permit

log = logging.getLogger(__name__)

MAX_SUPPLY = 1_000_000_000 * 10**18

EVT_TOKENS_MINTED = "TokensMinted"
EVT_TOKENS_BURNED = "TokensBurned"

Subscriber = Callable[[EventRecord], None]


class TokenInfo(NamedTuple):
    name: str
    symbol: str
    decimals: int
    total_supply: int
    max_supply: int


def derive_token_address(owner: str, name: str, symbol: str, chain_id: int) -> str:
    """Deterministic token address for deployments that do not pin one."""
    h = hashlib.sha3_256()
    h.update(b"basetoken:address")
    h.update(u64_bytes(chain_id))
    h.update(address_bytes(owner))
    h.update(name.encode("ascii") + b"\x00" + symbol.encode("ascii"))
    return "0x" + h.hexdigest()[:40]


class BaseToken:
    """
    A single fungible token with a hard supply cap and owner-gated minting.

    Mutating methods return the call's `Receipt`; views return plain values.
    """

    MAX_SUPPLY = MAX_SUPPLY

    def __init__(
        self,
        name: str,
        symbol: str,
        initial_supply: int,
        owner: str,
        *,
        max_supply: int = MAX_SUPPLY,
        decimals: int = DEFAULT_DECIMALS,
        chain_id: int = DEVNET_CHAIN_ID,
        address: Optional[str] = None,
        sink: Optional[EventSink] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        require_name(name)
        require_symbol(symbol)
        require_decimals(decimals)
        require_amount(max_supply)
        require_amount(initial_supply)
        require_u64(chain_id, what="chain_id")
        owner_addr = require_address(owner, what="owner")
        if initial_supply > max_supply:
            raise SupplyCapExceeded(total_supply=0, amount=initial_supply, max_supply=max_supply)
        token_addr = (
            require_address(address, what="token address")
            if address is not None
            else derive_token_address(owner_addr, name, symbol, chain_id)
        )

        self.MAX_SUPPLY = max_supply
        self._meta = TokenMetadata(
            name=name,
            symbol=symbol,
            decimals=decimals,
            max_supply=max_supply,
            address=token_addr,
            chain_id=chain_id,
        )
        self._state = TokenState(self._meta)
        self._journal = Journal(self._state)
        self._ledger = FungibleLedger(self._journal)
        self._ownable = Ownable(self._journal)
        self._permit = Permit(self._journal, self._ledger, self._meta, clock)

        self._lock = threading.RLock()
        self._sink: EventSink = sink if sink is not None else InMemoryEventSink()
        self._subscribers: List[Subscriber] = []
        self._seq = self._sink.last_seq()

        def _deploy() -> None:
            self._ownable.init_owner(owner_addr)
            self._ledger.mint_to(owner_addr, initial_supply)
            self._journal.emit(make_event(EVT_TOKENS_MINTED, to=owner_addr, amount=initial_supply))

        self.deploy_receipt = self._execute("deploy", owner_addr, _deploy)
        log.info(
            "deployed %s (%s) at %s supply=%d cap=%d owner=%s",
            name, symbol, token_addr, initial_supply, max_supply, owner_addr,
        )

    @classmethod
    def from_config(
        cls,
        cfg: TokenConfig,
        *,
        sink: Optional[EventSink] = None,
        clock: Optional[Clock] = None,
    ) -> "BaseToken":
        """Build a token from a loaded `TokenConfig`."""
        if sink is None and cfg.event_log is not None:
            sink = JsonlEventSink(cfg.event_log)
        return cls(
            cfg.name,
            cfg.symbol,
            cfg.initial_supply,
            cfg.owner,
            max_supply=cfg.max_supply,
            decimals=cfg.decimals,
            chain_id=cfg.chain_id,
            address=cfg.address,
            sink=sink,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _execute(self, op: str, caller: Optional[str], fn: Callable[[], Any]) -> Receipt:
        with self._lock, tlog.bound(token=self._meta.symbol, op=op, caller=caller):
            marker = self._journal.checkpoint()
            try:
                fn()
            except TokenError as e:
                self._journal.revert_to(marker)
                log.debug("rejected %s: %s", op, e.code)
                raise
            except BaseException:
                self._journal.revert_to(marker)
                raise
            seq = self._seq + 1
            staged = self._journal.pending_events() if marker == 0 else ()
            records = tuple(
                EventRecord(seq=seq, log_index=i, op=op, event=ev) for i, ev in enumerate(staged)
            )
            try:
                self._sink.append_batch(records)
            except BaseException:
                self._journal.revert_to(marker)
                log.error("event sink rejected %s seq=%d; call reverted", op, seq)
                raise
            self._journal.commit_to(marker)
            self._seq = seq
            return self._publish(op, caller, seq, records)

    def _publish(self, op: str, caller: Optional[str], seq: int, records: Tuple[EventRecord, ...]) -> Receipt:
        log.debug("committed %s seq=%d events=%d", op, seq, len(records))
        for rec in records:
            for cb in list(self._subscribers):
                try:
                    cb(rec)
                except Exception:
                    # already committed; remaining subscribers still get the record
                    log.exception("event subscriber failed on %s seq=%d", rec.name, seq)
        return Receipt(seq=seq, op=op, caller=caller, records=records)

    # ------------------------------------------------------------------
    # Metadata & views
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._meta.address

    @property
    def chain_id(self) -> int:
        return self._meta.chain_id

    def name(self) -> str:
        return self._meta.name

    def symbol(self) -> str:
        return self._meta.symbol

    def decimals(self) -> int:
        return self._meta.decimals

    def max_supply(self) -> int:
        return self._meta.max_supply

    def total_supply(self) -> int:
        with self._lock:
            return self._ledger.total_supply()

    def owner(self) -> Optional[str]:
        with self._lock:
            return self._ownable.owner()

    def balance_of(self, account: str) -> int:
        with self._lock:
            return self._ledger.balance_of(account)

    def allowance(self, owner: str, spender: str) -> int:
        with self._lock:
            return self._ledger.allowance(owner, spender)

    def get_token_info(self) -> TokenInfo:
        """Name, symbol, decimals, current supply and cap in one read."""
        with self._lock:
            return TokenInfo(
                name=self._meta.name,
                symbol=self._meta.symbol,
                decimals=self._meta.decimals,
                total_supply=self._ledger.total_supply(),
                max_supply=self._meta.max_supply,
            )

    # ------------------------------------------------------------------
    # Supply control
    # ------------------------------------------------------------------

    def mint(self, caller: str, to: str, amount: int) -> Receipt:
        """
        Owner-only. Credit `to` with `amount` new tokens.

        Raises Unauthorized for any caller but the owner, then
        SupplyCapExceeded if the mint would push supply past the cap.
        """

        def _mint() -> None:
            self._ownable.require_owner(caller)
            dst = require_address(to, what="receiver")
            require_amount(amount)
            total = self._ledger.total_supply()
            if total + amount > self._meta.max_supply:
                raise SupplyCapExceeded(
                    total_supply=total, amount=amount, max_supply=self._meta.max_supply
                )
            self._ledger.mint_to(dst, amount)
            self._journal.emit(make_event(EVT_TOKENS_MINTED, to=dst, amount=amount))

        receipt = self._execute("mint", caller, _mint)
        log.info("minted %d to %s (supply=%d)", amount, normalize_address(to), self.total_supply())
        return receipt

    def burn(self, caller: str, amount: int) -> Receipt:
        """Destroy `amount` of the caller's own tokens."""

        def _burn() -> None:
            src = require_address(caller, what="account")
            self._ledger.burn_from_balance(src, amount)
            self._journal.emit(make_event(EVT_TOKENS_BURNED, **{"from": src, "amount": amount}))

        receipt = self._execute("burn", caller, _burn)
        log.info("burned %d from %s (supply=%d)", amount, normalize_address(caller), self.total_supply())
        return receipt

    def burn_from(self, caller: str, account: str, amount: int) -> Receipt:
        """
        Destroy `amount` of `account`'s tokens using the allowance granted to
        `caller`. The allowance is checked before the balance; either failing
        leaves the allowance untouched.
        """

        def _burn_from() -> None:
            spender = require_address(caller, what="spender")
            src = require_address(account, what="account")
            require_amount(amount)
            self._ledger.spend_allowance(src, spender, amount)
            self._ledger.burn_from_balance(src, amount)
            self._journal.emit(make_event(EVT_TOKENS_BURNED, **{"from": src, "amount": amount}))

        receipt = self._execute("burn_from", caller, _burn_from)
        log.info("burned %d from %s (supply=%d)", amount, normalize_address(account), self.total_supply())
        return receipt

    # ------------------------------------------------------------------
    # Ledger pass-through
    # ------------------------------------------------------------------

    def transfer(self, caller: str, to: str, amount: int) -> Receipt:
        return self._execute("transfer", caller, lambda: self._ledger.transfer(caller, to, amount))

    def approve(self, caller: str, spender: str, amount: int) -> Receipt:
        return self._execute("approve", caller, lambda: self._ledger.approve(caller, spender, amount))

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> Receipt:
        return self._execute(
            "transfer_from", caller, lambda: self._ledger.transfer_from(caller, owner, to, amount)
        )

    def increase_allowance(self, caller: str, spender: str, added: int) -> Receipt:
        return self._execute(
            "increase_allowance", caller, lambda: self._ledger.increase_allowance(caller, spender, added)
        )

    def decrease_allowance(self, caller: str, spender: str, subtracted: int) -> Receipt:
        return self._execute(
            "decrease_allowance",
            caller,
            lambda: self._ledger.decrease_allowance(caller, spender, subtracted),
        )

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def transfer_ownership(self, caller: str, new_owner: str) -> Receipt:
        receipt = self._execute(
            "transfer_ownership", caller, lambda: self._ownable.transfer_ownership(caller, new_owner)
        )
        log.info("ownership transferred to %s", normalize_address(new_owner))
        return receipt

    def renounce_ownership(self, caller: str) -> Receipt:
        receipt = self._execute(
            "renounce_ownership", caller, lambda: self._ownable.renounce_ownership(caller)
        )
        log.info("ownership renounced; minting is disabled")
        return receipt

    # ------------------------------------------------------------------
    # Permit
    # ------------------------------------------------------------------

    def nonces(self, owner: str) -> int:
        with self._lock:
            return self._permit.nonces(owner)

    def domain_separator(self) -> bytes:
        return self._permit.domain_separator()

    @property
    def DOMAIN_SEPARATOR(self) -> bytes:
        return self._permit.domain_separator()

    def build_permit_digest(self, owner: str, spender: str, value: int, nonce: int, deadline: int) -> bytes:
        """Digest an owner signs to authorize `permit(owner, spender, value, deadline, ...)`."""
        return self._permit.permit_digest(owner, spender, value, nonce, deadline)

    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        public_key: BytesLike,
        signature: BytesLike,
        *,
        caller: Optional[str] = None,
    ) -> Receipt:
        """
        Set `owner`'s allowance for `spender` from an Ed25519-signed message.
        `caller` is the relayer submitting it and only appears in logs/receipts.
        """
        return self._execute(
            "permit",
            caller,
            lambda: self._permit.permit(owner, spender, value, deadline, public_key, signature),
        )

    def cancel_next_permit(self, caller: str) -> Receipt:
        return self._execute("cancel_next_permit", caller, lambda: self._permit.cancel_next_permit(caller))

    # ------------------------------------------------------------------
    # Events & introspection
    # ------------------------------------------------------------------

    @property
    def sink(self) -> EventSink:
        return self._sink

    def events(
        self,
        *,
        name: NameSelector = None,
        args: Optional[dict] = None,
        from_seq: Optional[int] = None,
        to_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterator[EventRecord]:
        """Iterate committed event records from the sink, oldest first."""
        return iter(
            self._sink.get_logs(name=name, args=args, from_seq=from_seq, to_seq=to_seq, limit=limit)
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Call `callback(record)` for every committed event. Returns a function
        that removes the subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def snapshot(self) -> dict:
        with self._lock:
            return self._state.snapshot()

    def invariant_violations(self) -> List[str]:
        with self._lock:
            return self._state.invariant_violations()

    def holders(self) -> List[Tuple[str, int]]:
        """Live (non-zero) balances, sorted by address."""
        with self._lock:
            return sorted(self._state.balances.items())

    def close(self) -> None:
        self._sink.flush()
        self._sink.close()

    def __repr__(self) -> str:
        return f"BaseToken({self._meta.symbol!r} at {self._meta.address})"


__all__ = [
    "BaseToken",
    "TokenInfo",
    "MAX_SUPPLY",
    "EVT_TOKENS_MINTED",
    "EVT_TOKENS_BURNED",
    "derive_token_address",
]
