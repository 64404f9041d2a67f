"""
basetoken.state.events — event model and pluggable event sinks.

Events are staged in the journal next to the state writes of the call that
produced them and only become visible here after that call commits. Each
committed call gets a strictly increasing `seq`; events inside it get a
0-based `log_index` in emission order.

Backends
--------
- InMemoryEventSink: fast, test/dev friendly; keeps all records in RAM.
- JsonlEventSink: append-only JSONL file; durable and simple to operate.
- NullEventSink: drops everything.

Filtering (`get_logs`) is by event name (exact or any-of), by a subset of
argument values, and by an inclusive `seq` range.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from dataclasses import dataclass, field
from typing import (Any, Dict, Iterable, Iterator, List, Mapping, Optional,
                    Protocol, Sequence, Tuple, Union, runtime_checkable)

log = logging.getLogger(__name__)

MAX_EVENT_NAME_LEN = 64
MAX_KEY_LEN = 64
MAX_INT_BITS = 256

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ArgValue = Union[str, int, bool, None]


# =============================================================================
# Event model
# =============================================================================


def _check_ident(s: Any, *, what: str, max_len: int) -> str:
    if not isinstance(s, str) or not s:
        raise ValueError(f"{what} must be a non-empty str")
    if len(s) > max_len:
        raise ValueError(f"{what} too long ({len(s)} > {max_len})")
    if not _NAME_RE.match(s):
        raise ValueError(f"{what} has invalid characters: {s!r}")
    return s


def _check_value(v: Any) -> ArgValue:
    if v is None or isinstance(v, (str, bool)):
        return v
    if isinstance(v, int):
        if v.bit_length() > MAX_INT_BITS:
            raise ValueError("event int arg out of range")
        return int(v)
    raise TypeError(f"unsupported event arg type: {type(v).__name__}")


@dataclass(frozen=True)
class Event:
    """A named, validated event payload."""

    name: str
    args: Mapping[str, ArgValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_ident(self.name, what="event name", max_len=MAX_EVENT_NAME_LEN)
        checked = {
            _check_ident(k, what="event key", max_len=MAX_KEY_LEN): _check_value(v)
            for k, v in dict(self.args).items()
        }
        object.__setattr__(self, "args", checked)

    def __getitem__(self, key: str) -> ArgValue:
        return self.args[key]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "args": dict(self.args)}


def make_event(name: str, **args: ArgValue) -> Event:
    return Event(name, args)


@dataclass(frozen=True)
class EventRecord:
    """An event with its commit context."""

    seq: int
    log_index: int
    op: str
    event: Event

    @property
    def name(self) -> str:
        return self.event.name

    @property
    def args(self) -> Mapping[str, ArgValue]:
        return self.event.args

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "log_index": self.log_index,
            "op": self.op,
            "name": self.event.name,
            "args": dict(self.event.args),
        }

    @staticmethod
    def from_dict(obj: Mapping[str, Any]) -> "EventRecord":
        return EventRecord(
            seq=int(obj["seq"]),
            log_index=int(obj["log_index"]),
            op=str(obj.get("op", "")),
            event=Event(str(obj["name"]), dict(obj.get("args") or {})),
        )


@dataclass(frozen=True)
class Receipt:
    """Outcome of one committed call: its sequence number and emitted events."""

    seq: int
    op: str
    caller: Optional[str]
    records: Tuple[EventRecord, ...] = ()

    @property
    def events(self) -> Tuple[Event, ...]:
        return tuple(r.event for r in self.records)

    def find(self, name: str) -> List[Event]:
        return [r.event for r in self.records if r.event.name == name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "seq": self.seq,
            "op": self.op,
            "caller": self.caller,
            "events": [r.event.to_dict() for r in self.records],
        }


NameSelector = Optional[Union[str, Sequence[str]]]


# =============================================================================
# Sink interface
# =============================================================================


@runtime_checkable
class EventSink(Protocol):
    def append(self, record: EventRecord) -> EventRecord:
        """Append a single committed record. Returns the stored record."""

    def append_batch(self, records: Sequence[EventRecord]) -> None:
        """
        Store all records of one call, or none of them. The token calls this
        before its writes are applied, so an exception here aborts the call.
        """
        for rec in records:
            self.append(rec)

    def last_seq(self) -> int:
        """Highest stored `seq`, 0 when empty. New tokens continue after it."""
        return max((r.seq for r in self.get_logs()), default=0)

    def get_logs(
        self,
        *,
        name: NameSelector = None,
        args: Optional[Mapping[str, ArgValue]] = None,
        from_seq: Optional[int] = None,
        to_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        """Iterate matching records in ascending (seq, log_index) order."""

    def flush(self) -> None:
        """Force persistence, if applicable."""

    def close(self) -> None:
        """Release resources (files, buffers)."""


# =============================================================================
# Common filter logic
# =============================================================================


def _name_matches(value: str, selector: NameSelector) -> bool:
    if selector is None:
        return True
    if isinstance(selector, str):
        return value == selector
    return value in selector


def _record_matches(
    rec: EventRecord,
    name: NameSelector,
    args: Optional[Mapping[str, ArgValue]],
    from_seq: Optional[int],
    to_seq: Optional[int],
) -> bool:
    if from_seq is not None and rec.seq < from_seq:
        return False
    if to_seq is not None and rec.seq > to_seq:
        return False
    if not _name_matches(rec.name, name):
        return False
    if args:
        for k, v in args.items():
            if k not in rec.args or rec.args[k] != v:
                return False
    return True


def _limited(it: Iterator[EventRecord], limit: Optional[int]) -> Iterator[EventRecord]:
    if limit is None:
        yield from it
        return
    n = 0
    for rec in it:
        if n >= limit:
            break
        yield rec
        n += 1


# =============================================================================
# In-memory sink
# =============================================================================


class InMemoryEventSink(EventSink):
    """
    A simple, thread-safe in-memory sink. Keeps all records in RAM.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[EventRecord] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def append(self, record: EventRecord) -> EventRecord:
        with self._lock:
            self._records.append(record)
        return record

    def append_batch(self, records: Sequence[EventRecord]) -> None:
        with self._lock:
            mark = len(self._records)
            try:
                for rec in records:
                    self.append(rec)
            except BaseException:
                del self._records[mark:]
                raise

    def last_seq(self) -> int:
        with self._lock:
            return max((r.seq for r in self._records), default=0)

    def get_logs(
        self,
        *,
        name: NameSelector = None,
        args: Optional[Mapping[str, ArgValue]] = None,
        from_seq: Optional[int] = None,
        to_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        with self._lock:
            snapshot = list(self._records)
        it = (r for r in snapshot if _record_matches(r, name, args, from_seq, to_seq))
        return list(_limited(it, limit))

    def flush(self) -> None:
        return

    def close(self) -> None:
        with self._lock:
            self._records.clear()


# =============================================================================
# JSONL sink (durable)
# =============================================================================


class JsonlEventSink(EventSink):
    """
    Append-only JSONL sink. Each line is one EventRecord:

        {"seq": 3, "log_index": 1, "op": "mint", "name": "TokensMinted",
         "args": {"to": "0x…", "amount": 1000}}

    One sink instance should be shared per file; it serializes a single handle.
    Reopening an existing file continues its sequence: `last_seq()` reports
    the highest `seq` already stored there.
    """

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self._path = os.fspath(path)
        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
        self._fh = open(self._path, "a+", encoding="utf-8")
        self._lock = threading.RLock()
        self._last_seq = max((r.seq for r in self._iter_file()), default=0)

    @property
    def path(self) -> str:
        return self._path

    def append(self, record: EventRecord) -> EventRecord:
        self.append_batch((record,))
        return record

    def append_batch(self, records: Sequence[EventRecord]) -> None:
        if not records:
            return
        blob = "".join(json.dumps(r.to_dict(), separators=(",", ":")) + "\n" for r in records)
        with self._lock:
            self._fh.seek(0, os.SEEK_END)
            start = self._fh.tell()
            try:
                self._fh.write(blob)
                self._fh.flush()
            except OSError:
                self._discard_tail(start)
                raise
            self._last_seq = max(self._last_seq, max(r.seq for r in records))

    def _discard_tail(self, offset: int) -> None:
        # drop a partially written batch so the file only holds whole calls
        try:
            self._fh.truncate(offset)
        except (OSError, ValueError) as e:
            log.error("could not truncate %s after failed write: %r", self._path, e)

    def last_seq(self) -> int:
        with self._lock:
            return self._last_seq

    def _iter_file(self) -> Iterator[EventRecord]:
        with self._lock:
            self._fh.flush()
            self._fh.seek(0)
            lines = self._fh.readlines()
        for line in lines:
            if not line.strip():
                continue
            try:
                yield EventRecord.from_dict(json.loads(line))
            except (ValueError, KeyError, TypeError) as e:
                log.warning("skipping malformed event line: %s (%r)", line[:120], e)

    def get_logs(
        self,
        *,
        name: NameSelector = None,
        args: Optional[Mapping[str, ArgValue]] = None,
        from_seq: Optional[int] = None,
        to_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        it = (r for r in self._iter_file() if _record_matches(r, name, args, from_seq, to_seq))
        return list(_limited(it, limit))

    def flush(self) -> None:
        with self._lock:
            self._fh.flush()
            os.fsync(self._fh.fileno())

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.flush()
                self._fh.close()


# =============================================================================
# Null sink
# =============================================================================


class NullEventSink(EventSink):
    """A sink that drops everything."""

    def append(self, record: EventRecord) -> EventRecord:
        return record

    def get_logs(
        self,
        *,
        name: NameSelector = None,
        args: Optional[Mapping[str, ArgValue]] = None,
        from_seq: Optional[int] = None,
        to_seq: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        return []

    def flush(self) -> None:
        return

    def close(self) -> None:
        return


__all__ = [
    "ArgValue",
    "Event",
    "EventRecord",
    "Receipt",
    "make_event",
    "NameSelector",
    "EventSink",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
    "MAX_EVENT_NAME_LEN",
    "MAX_KEY_LEN",
    "MAX_INT_BITS",
]
