"""
basetoken.stdlib — reusable token building blocks.

    token.fungible.FungibleLedger : balances, allowances, transfer/approve
    token.permit.Permit           : nonces + Ed25519 signed approvals
    access.ownable.Ownable        : single-owner gate
    math                          : checked u256 helpers

Each collaborator works on a shared `Journal`; none of them enforces token
policy (caps, which calls are owner-gated). That is left to the composing
token.
"""

from __future__ import annotations

from .access.ownable import Ownable
from .token.fungible import FungibleLedger
from .token.permit import Permit

__all__ = ["FungibleLedger", "Ownable", "Permit"]
