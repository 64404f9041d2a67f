"""
basetoken.stdlib.access
=======================

Access-control helpers for the token. Only the owner model is provided:
one address may call owner-gated operations; ownership can be handed over
or renounced.

Events (convention)
-------------------
- "OwnershipTransferred" args: {"previous_owner": str, "new_owner": str}
"""

from __future__ import annotations

from .ownable import EVT_OWNERSHIP_TRANSFERRED, Ownable

__all__ = ["EVT_OWNERSHIP_TRANSFERRED", "Ownable"]
