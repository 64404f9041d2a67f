"""
basetoken.state.journal — journaling writes and events, checkpoints, revert/commit.

The journal is a stack of copy-on-write overlays layered over a `TokenState`.
Writes and emitted events go to the top overlay; reads consult overlays from
top → base. `commit()` merges the top overlay into its parent, or applies it
to the base state when it is the outermost one. `revert()` discards the top
overlay together with every event staged in it.

Key properties
--------------
- A write or emit is only legal inside an open checkpoint.
- State writes and events travel together: the outermost `commit()` applies
  the writes to `TokenState` and returns the staged events in emission order.
  Nothing is observable from a reverted checkpoint.
- Nested checkpoints (begin/commit/revert) cost O(changes) to merge.
- Pure Python, no I/O, no clock, no randomness.

Intended usage
--------------
    j = Journal(state)
    j.begin()
    j.set(BALANCES, alice, j.get(BALANCES, alice) + 5)
    j.emit(make_event("Transfer", ...))
    events = j.commit()            # outermost commit → applied, events released

The journal does not enforce token rules; callers validate before writing.
It is not thread-safe on its own; `BaseToken` serializes access to it.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterator, List, Tuple

from .events import Event
from .token_state import PRUNED_TABLES, TABLES, TokenState


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `writes`: staged values per table.
    - `events`: events emitted while this layer was on top, in order.
    """

    writes: Dict[str, Dict[Hashable, Any]] = field(default_factory=dict)
    events: List[Event] = field(default_factory=list)

    def get_local(self, ns: str, key: Hashable) -> Tuple[bool, Any]:
        m = self.writes.get(ns)
        if m is None or key not in m:
            return False, None
        return True, m[key]

    def set_local(self, ns: str, key: Hashable, value: Any) -> None:
        self.writes.setdefault(ns, {})[key] = value


class Journal:
    """
    A copy-on-write write/event journal with nested checkpoints.

    API highlights
    --------------
    - begin() / commit() / revert()
    - atomic() context manager for nested all-or-nothing blocks
    - checkpoint() / commit_to(marker) / revert_to(marker)
    - get(), set(), emit()
    """

    def __init__(self, state: TokenState) -> None:
        self._state = state
        self._layers: List[_Overlay] = []

    @property
    def state(self) -> TokenState:
        return self._state

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of open checkpoints (0 when idle)."""
        return len(self._layers)

    def begin(self) -> int:
        """Open a new checkpoint. Returns the new depth."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> List[Event]:
        """
        Close the top checkpoint, keeping its effects.

        Returns the events that reached the base state: the full ordered list
        for the outermost commit, [] for a nested one (its events move to the
        parent and are released when the parent commits).
        """
        if not self._layers:
            raise RuntimeError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            self._merge_layers(self._layers[-1], top)
            return []
        self._apply_to_base(top)
        return list(top.events)

    def revert(self) -> None:
        """Discard the top checkpoint: its writes and its events."""
        if not self._layers:
            raise RuntimeError("revert without an open checkpoint")
        self._layers.pop()

    @contextmanager
    def atomic(self) -> Iterator["Journal"]:
        """
        Run a block inside a nested checkpoint: commit on success, revert and
        re-raise on any exception. Must be entered while a checkpoint is open
        so released events are never dropped.
        """
        self._top("atomic block")
        self.begin()
        try:
            yield self
        except BaseException:
            self.revert()
            raise
        self.commit()

    def checkpoint(self) -> int:
        """Alias for `begin()` returning a marker token (depth before opening)."""
        marker = len(self._layers)
        self.begin()
        return marker

    def commit_to(self, marker: int) -> List[Event]:
        """Commit until depth equals `marker`. Returns events released to base."""
        if marker < 0:
            raise ValueError("marker must be >= 0")
        released: List[Event] = []
        while len(self._layers) > marker:
            released.extend(self.commit())
        return released

    def revert_to(self, marker: int) -> None:
        """Revert until depth equals `marker`."""
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > marker:
            self.revert()

    # --------------------------------------------------------------------- #
    # Reads & writes
    # --------------------------------------------------------------------- #

    def get(self, ns: str, key: Hashable, default: Any = 0) -> Any:
        """Read with overlay precedence, falling back to the base state."""
        for layer in reversed(self._layers):
            hit, value = layer.get_local(ns, key)
            if hit:
                return value
        return self._state.table(ns).get(key, default)

    def set(self, ns: str, key: Hashable, value: Any) -> None:
        """Stage a write in the top overlay."""
        if ns not in TABLES:
            raise KeyError(f"unknown state table: {ns}")
        self._top("write").set_local(ns, key, value)

    def emit(self, event: Event) -> None:
        """Stage an event in the top overlay."""
        if not isinstance(event, Event):
            raise TypeError("emit expects an Event")
        self._top("emit").events.append(event)

    def pending_events(self) -> Tuple[Event, ...]:
        """Events staged across all open checkpoints, in emission order."""
        out: List[Event] = []
        for layer in self._layers:
            out.extend(layer.events)
        return tuple(out)

    def pending_writes(self) -> int:
        """Total number of staged (table, key) entries across layers."""
        return sum(len(m) for layer in self._layers for m in layer.writes.values())

    # --------------------------------------------------------------------- #
    # Internal merge/apply
    # --------------------------------------------------------------------- #

    def _top(self, what: str) -> _Overlay:
        if not self._layers:
            raise RuntimeError(f"journal {what} outside of a checkpoint")
        return self._layers[-1]

    @staticmethod
    def _merge_layers(dst: _Overlay, src: _Overlay) -> None:
        for ns, writes in src.writes.items():
            dst.writes.setdefault(ns, {}).update(writes)
        dst.events.extend(src.events)

    def _apply_to_base(self, layer: _Overlay) -> None:
        for ns, writes in layer.writes.items():
            tbl = self._state.table(ns)
            prune = ns in PRUNED_TABLES
            for key, value in writes.items():
                if prune and value == 0:
                    tbl.pop(key, None)
                else:
                    tbl[key] = value


__all__ = ["Journal"]
