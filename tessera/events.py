"""
TESSERA Event Infrastructure

Typed ledger notifications, the bus that delivers them to subscribers and an
append-only store that keeps the registry's history in commit order.

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                          REGISTRY NOTIFICATIONS                          │
    │                                                                          │
    │  Ledger events        EventBus              EventStore                   │
    │  ├─ Transfer          ├─ type routing       ├─ global sequence           │
    │  ├─ Approval          ├─ priorities         ├─ per-asset streams         │
    │  ├─ ApprovalForAll    ├─ predicates         └─ per-holder streams        │
    │  └─ PauseChanged      └─ isolated failures                               │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Ordering: the engine publishes exactly one ledger event per successful
mutating call, after the call has committed. Rejected calls publish nothing.

Usage
─────

    bus = EventBus()

    @bus.subscribe(Transfer)
    def on_transfer(event: Transfer):
        print(event.args)

    registry = AssetRegistry(identity, admin="admin", event_bus=bus)

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from tessera.core import canonical_json_bytes, sha256_bytes

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════════════
# NOTIFICATIONS
# ════════════════════════════════════════════════════════════════════════════


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Event:
    """
    Base notification.

    The envelope fields (id, timestamp, correlation id, metadata) identify one
    delivery; `args` and `payload()` carry what actually happened.
    """

    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    event_timestamp: str = field(default_factory=_utc_now)
    correlation_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    @property
    def args(self) -> Tuple[Any, ...]:
        """Payload values in declaration order."""
        return tuple(self.payload().values())

    def payload(self) -> Dict[str, Any]:
        envelope = {f.name for f in fields(Event)}
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in envelope}

    def to_dict(self) -> Dict[str, Any]:
        return {"event_type": self.event_type, **asdict(self)}

    def digest(self) -> str:
        """sha256 over type and payload; two deliveries of one fact agree."""
        body = {"event_type": self.event_type, "payload": self.payload()}
        return sha256_bytes(canonical_json_bytes(body))


@dataclass
class Transfer(Event):
    """Ownership change. from_account is None on mint, to_account None on burn."""
    from_account: Optional[str] = None
    to_account: Optional[str] = None
    asset_id: int = 0


@dataclass
class Approval(Event):
    """Single-asset delegate set (delegate None means cleared)."""
    holder: str = ""
    delegate: Optional[str] = None
    asset_id: int = 0


@dataclass
class ApprovalForAll(Event):
    """Operator granted or revoked across all of a holder's assets."""
    holder: str = ""
    operator: str = ""
    granted: bool = False


@dataclass
class PauseChanged(Event):
    """Mint pause gate toggled by the admin."""
    actor: str = ""
    paused: bool = False


LEDGER_EVENT_TYPES: Tuple[Type[Event], ...] = (Transfer, Approval, ApprovalForAll)


# ════════════════════════════════════════════════════════════════════════════
# BUS
# ════════════════════════════════════════════════════════════════════════════


EventHandler = Callable[[Event], None]
EventPredicate = Callable[[Event], bool]


@dataclass
class Subscription:
    handler: EventHandler
    event_types: Tuple[Type[Event], ...]
    priority: int = 0
    filter_func: Optional[EventPredicate] = None

    def wants(self, event: Event) -> bool:
        if not isinstance(event, self.event_types):
            return False
        return self.filter_func is None or bool(self.filter_func(event))


class EventHandlerError(Exception):
    """A subscriber raised while handling an event."""

    def __init__(self, event: Event, handler: EventHandler, cause: Exception):
        self.event = event
        self.handler = handler
        self.cause = cause
        name = getattr(handler, "__qualname__", None) or repr(handler)
        super().__init__(f"subscriber {name} failed on {event.event_type}: {cause}")


class EventBus:
    """
    Synchronous in-process delivery.

    Subscribers run in descending priority, ties in subscription order. A
    subscriber that raises is counted, logged and passed to `on_error`; the
    publisher never sees the exception, so a committed registry call stays
    committed.
    """

    def __init__(self, on_error: Optional[Callable[[EventHandlerError], None]] = None):
        self._subscriptions: List[Subscription] = []
        self._on_error = on_error
        self._lock = threading.RLock()
        self._counts = {"published_count": 0, "handled_count": 0, "error_count": 0}

    def subscribe(
        self,
        *event_types: Type[Event],
        priority: int = 0,
        filter_func: Optional[EventPredicate] = None,
    ) -> Callable[[EventHandler], EventHandler]:
        """Decorator; with no types the handler receives every event."""
        def register(handler: EventHandler) -> EventHandler:
            sub = Subscription(handler, event_types or (Event,), priority, filter_func)
            with self._lock:
                # stable sort keeps subscription order within a priority
                self._subscriptions = sorted(
                    self._subscriptions + [sub], key=lambda s: -s.priority
                )
            return handler
        return register

    def unsubscribe(self, handler: EventHandler) -> bool:
        with self._lock:
            kept = [s for s in self._subscriptions if s.handler != handler]
            removed = len(kept) != len(self._subscriptions)
            self._subscriptions = kept
        return removed

    def publish(self, event: Event) -> None:
        with self._lock:
            self._counts["published_count"] += 1
            targets = [s.handler for s in self._subscriptions if s.wants(event)]

        for handler in targets:
            try:
                handler(event)
            except Exception as exc:
                self._record("error_count")
                error = EventHandlerError(event, handler, exc)
                logger.warning("%s", error)
                if self._on_error is not None:
                    self._on_error(error)
            else:
                self._record("handled_count")

    def _record(self, counter: str) -> None:
        with self._lock:
            self._counts[counter] += 1

    @property
    def metrics(self) -> Dict[str, int]:
        with self._lock:
            return {**self._counts, "handler_count": len(self._subscriptions)}


# ════════════════════════════════════════════════════════════════════════════
# STORE
# ════════════════════════════════════════════════════════════════════════════


@dataclass
class EventRecord:
    """One stored event and its position in the history."""
    sequence_number: int
    event: Event
    stream_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_number": self.sequence_number,
            "stream_id": self.stream_id,
            "event": self.event.to_dict(),
        }


def stream_id_for(event: Event) -> str:
    """Asset events stream per asset; account-level events per holder."""
    asset_id = getattr(event, "asset_id", None)
    if asset_id:
        return f"asset-{asset_id}"
    holder = getattr(event, "holder", None)
    if holder:
        return f"holder-{holder}"
    return "registry"


class EventStore:
    """
    Append-only registry history.

    `store.attach(bus)` records every published event with a global sequence
    number and indexes it by stream (`asset-<id>`, `holder-<account>` or
    `registry`).
    """

    def __init__(self) -> None:
        self._log: List[EventRecord] = []
        self._by_stream: Dict[str, List[EventRecord]] = {}
        self._lock = threading.RLock()

    def attach(self, bus: EventBus, priority: int = 100) -> None:
        bus.subscribe(priority=priority)(self.append)

    def append(self, event: Event) -> EventRecord:
        with self._lock:
            record = EventRecord(len(self._log) + 1, event, stream_id_for(event))
            self._log.append(record)
            self._by_stream.setdefault(record.stream_id, []).append(record)
            return record

    def read_stream(self, stream_id: str) -> List[Event]:
        with self._lock:
            return [r.event for r in self._by_stream.get(stream_id, ())]

    def read_all(self, from_position: int = 0, max_count: int = 1000) -> List[EventRecord]:
        with self._lock:
            return list(self._log[from_position:from_position + max_count])

    def events(self, *event_types: Type[Event]) -> List[Event]:
        """Stored events, optionally restricted to the given types."""
        with self._lock:
            wanted = event_types or (Event,)
            return [r.event for r in self._log if isinstance(r.event, wanted)]

    @property
    def total_events(self) -> int:
        with self._lock:
            return len(self._log)
