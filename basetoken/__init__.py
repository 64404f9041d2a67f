"""
basetoken — a supply-capped fungible token.

    BaseToken   : the token (cap, owner-gated mint, burn/burn_from, info view)
    TokenInfo   : get_token_info() result
    TokenConfig : layered configuration (see `basetoken.config`)

Submodules:
    basetoken.state   — explicit state, journal, events and sinks
    basetoken.stdlib  — ledger, ownable, permit, checked math
    basetoken.errors  — typed errors with stable codes
    basetoken.logging — structured logging setup
"""

from __future__ import annotations

from .config import TokenConfig, load_config
from .errors import (InsufficientAllowance, InsufficientBalance, SupplyCapExceeded,
                     TokenError, Unauthorized)
from .token import (EVT_TOKENS_BURNED, EVT_TOKENS_MINTED, MAX_SUPPLY, BaseToken,
                    TokenInfo)
from .version import __version__

__all__ = [
    "BaseToken",
    "TokenInfo",
    "TokenConfig",
    "load_config",
    "MAX_SUPPLY",
    "EVT_TOKENS_MINTED",
    "EVT_TOKENS_BURNED",
    "TokenError",
    "SupplyCapExceeded",
    "Unauthorized",
    "InsufficientBalance",
    "InsufficientAllowance",
    "__version__",
]
