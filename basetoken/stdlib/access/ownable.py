"""
basetoken.stdlib.access.ownable
===============================

Minimal **Ownable** helper staged through a `Journal`.

Surface:
- read the current owner (`owner`)
- initialize the owner once (`init_owner`)
- check that a caller is the owner (`require_owner`)
- transfer ownership to a new account (`transfer_ownership`)
- renounce ownership, leaving no owner (`renounce_ownership`)

Events:
    - "OwnershipTransferred" { "previous_owner": str, "new_owner": str }

The zero address stands in for "no owner" in events; in state the owner is
`None` after renounce.

Typical usage
-------------
    own = Ownable(journal)
    own.require_owner(caller)
    # ... privileged logic ...
"""

from __future__ import annotations

from typing import Optional

from ...errors import InvalidAddress, Unauthorized
from ...state.events import make_event
from ...state.journal import Journal
from ...state.token_state import K_OWNER, SCALARS
from ..token import ZERO_ADDRESS, normalize_address, require_address

EVT_OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


class Ownable:
    def __init__(self, journal: Journal) -> None:
        self._j = journal

    def owner(self) -> Optional[str]:
        """Return the current owner address, or None once renounced."""
        return self._j.get(SCALARS, K_OWNER, None)

    def init_owner(self, owner: str) -> None:
        """
        Set the first owner. Idempotent: does not overwrite an owner that is
        already set.
        """
        if self.owner() is not None:
            return
        new = require_address(owner, what="owner")
        self._set(ZERO_ADDRESS, new)

    def is_owner(self, caller: object) -> bool:
        current = self.owner()
        if current is None or not isinstance(caller, str):
            return False
        try:
            return normalize_address(caller) == current
        except InvalidAddress:
            return False

    def require_owner(self, caller: object) -> None:
        """Raise Unauthorized unless `caller` equals the current owner."""
        if not self.is_owner(caller):
            raise Unauthorized(caller=caller if isinstance(caller, str) else repr(caller))

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Owner-only. Use `renounce_ownership` to leave the token without an owner."""
        self.require_owner(caller)
        new = require_address(new_owner, what="new owner")
        self._set(self.owner() or ZERO_ADDRESS, new)

    def renounce_ownership(self, caller: str) -> None:
        """Owner-only. Every owner-gated call fails afterwards."""
        self.require_owner(caller)
        self._set(self.owner() or ZERO_ADDRESS, None)

    def _set(self, previous: str, new: Optional[str]) -> None:
        self._j.set(SCALARS, K_OWNER, new)
        self._j.emit(
            make_event(
                EVT_OWNERSHIP_TRANSFERRED,
                previous_owner=previous,
                new_owner=new or ZERO_ADDRESS,
            )
        )


__all__ = ["EVT_OWNERSHIP_TRANSFERRED", "Ownable"]
