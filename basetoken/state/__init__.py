"""
basetoken.state — explicit token state, write/event journal, event sinks.

    TokenState   : balances, allowances, nonces, total supply, owner
    Journal      : nested copy-on-write checkpoints; writes + events commit together
    Event*       : event model, receipts, and in-memory / JSONL / null sinks
"""

from __future__ import annotations

from .events import (Event, EventRecord, EventSink, InMemoryEventSink,
                     JsonlEventSink, NullEventSink, Receipt, make_event)
from .journal import Journal
from .token_state import (ALLOWANCES, BALANCES, K_OWNER, K_TOTAL_SUPPLY,
                          NONCES, SCALARS, TokenMetadata, TokenState)

__all__ = [
    "TokenState",
    "TokenMetadata",
    "Journal",
    "Event",
    "EventRecord",
    "Receipt",
    "EventSink",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
    "make_event",
    "BALANCES",
    "ALLOWANCES",
    "NONCES",
    "SCALARS",
    "K_TOTAL_SUPPLY",
    "K_OWNER",
]
