"""
basetoken.state.token_state — the explicit token state struct.

All mutable token state lives in one `TokenState` owned by a `BaseToken`
instance. Nothing is module-global: collaborators (ledger, ownable, permit)
receive the state by reference through a `Journal` and never touch the
tables directly.

Tables
------
  balances    : address -> int
  allowances  : (owner, spender) -> int
  nonces      : owner -> int           (permit nonces)
  scalars     : "total_supply" -> int, "owner" -> Optional[str]

Zero entries in the numeric tables are pruned on commit, so iterating
`balances` only ever yields live holders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Tuple

BALANCES = "balances"
ALLOWANCES = "allowances"
NONCES = "nonces"
SCALARS = "scalars"

TABLES: Tuple[str, ...] = (BALANCES, ALLOWANCES, NONCES, SCALARS)
PRUNED_TABLES: Tuple[str, ...] = (BALANCES, ALLOWANCES, NONCES)

K_TOTAL_SUPPLY = "total_supply"
K_OWNER = "owner"


@dataclass(frozen=True)
class TokenMetadata:
    """Immutable deployment parameters."""

    name: str
    symbol: str
    decimals: int
    max_supply: int
    address: str
    chain_id: int


@dataclass
class TokenState:
    meta: TokenMetadata
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[Tuple[str, str], int] = field(default_factory=dict)
    nonces: Dict[str, int] = field(default_factory=dict)
    scalars: Dict[str, Any] = field(
        default_factory=lambda: {K_TOTAL_SUPPLY: 0, K_OWNER: None}
    )

    def table(self, ns: str) -> MutableMapping[Any, Any]:
        if ns not in TABLES:
            raise KeyError(f"unknown state table: {ns}")
        return getattr(self, ns)

    @property
    def total_supply(self) -> int:
        return int(self.scalars.get(K_TOTAL_SUPPLY, 0))

    @property
    def owner(self) -> Optional[str]:
        return self.scalars.get(K_OWNER)

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict copy of the mutable tables (JSON-friendly keys)."""
        return {
            "total_supply": self.total_supply,
            "owner": self.owner,
            "balances": dict(self.balances),
            "allowances": {f"{o}|{s}": v for (o, s), v in self.allowances.items()},
            "nonces": dict(self.nonces),
        }

    def invariant_violations(self) -> List[str]:
        """
        Return human-readable descriptions of broken invariants (empty when healthy).
        """
        out: List[str] = []
        total = self.total_supply
        held = sum(self.balances.values())
        if total != held:
            out.append(f"total_supply {total} != sum(balances) {held}")
        if total > self.meta.max_supply:
            out.append(f"total_supply {total} > max_supply {self.meta.max_supply}")
        for ns in PRUNED_TABLES:
            tbl: Mapping[Any, int] = self.table(ns)
            neg = [k for k, v in tbl.items() if v < 0]
            if neg:
                out.append(f"negative entries in {ns}: {neg!r}")
        return out


__all__ = [
    "BALANCES",
    "ALLOWANCES",
    "NONCES",
    "SCALARS",
    "TABLES",
    "PRUNED_TABLES",
    "K_TOTAL_SUPPLY",
    "K_OWNER",
    "TokenMetadata",
    "TokenState",
]
