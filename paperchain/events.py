"""
PAPERCHAIN Event Infrastructure

Committed registry transitions emit events for external indexers. The
registry appends them to an EventStore and publishes them on an EventBus;
it never reads them back.

    ┌──────────────────┐   append    ┌──────────────┐   rebuild   ┌────────────┐
    │  PaperRegistry   ├────────────►│  EventStore  ├────────────►│ Projection │
    │                  │   publish   ├──────────────┤             └────────────┘
    │                  ├────────────►│   EventBus   ├──► subscribers
    └──────────────────┘             └──────────────┘

Domain events:

    PaperRegistered        {paper_id, paper_hash}
    PaperMetadataUpdated   {paper_hash}
    PaperDeactivated       {paper_hash}

Usage:

    bus = EventBus()

    @bus.subscribe(PaperRegistered)
    def index_paper(event: PaperRegistered):
        print(f"paper {event.paper_id} at {event.paper_hash}")
"""

from __future__ import annotations

import json
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Set,
    Type,
)

from paperchain.core import canonical_json_bytes, sha256_bytes
from paperchain.observability import RegistryLayer, get_logger

logger = get_logger("events", RegistryLayer.EVENTS)


# ════════════════════════════════════════════════════════════════════════════
# EVENT BASE
# ════════════════════════════════════════════════════════════════════════════


@dataclass
class Event:
    """
    Base class for all events.

    Events are immutable facts about a committed transition. Each event has
    a unique ID, a wall-clock timestamp and optional metadata.
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    correlation_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    @property
    def timestamp(self) -> datetime:
        return datetime.fromisoformat(self.event_timestamp)

    def payload(self) -> Dict[str, Any]:
        """Domain fields only, without the envelope."""
        envelope = set(Event.__dataclass_fields__)
        return {k: v for k, v in asdict(self).items() if k not in envelope}

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        data = data.copy()
        data.pop("event_type", None)
        return cls(**data)

    def to_json(self) -> str:
        """Serialize event to JSON for display/transport (not for digest computation)."""
        return json.dumps(self.to_dict(), default=str, sort_keys=True)

    def digest(self) -> str:
        """Deterministic digest of the event content."""
        return sha256_bytes(canonical_json_bytes(self.to_dict()))


# ════════════════════════════════════════════════════════════════════════════
# DOMAIN EVENTS
# ════════════════════════════════════════════════════════════════════════════


@dataclass
class PaperRegistered(Event):
    """Emitted when a paper is registered."""
    paper_id: int = 0
    paper_hash: str = ""


@dataclass
class PaperMetadataUpdated(Event):
    """Emitted when a creator replaces title and description."""
    paper_hash: str = ""


@dataclass
class PaperDeactivated(Event):
    """Emitted when a creator deactivates a paper."""
    paper_hash: str = ""


EVENT_TYPES: Dict[str, Type[Event]] = {
    t.__name__: t for t in (PaperRegistered, PaperMetadataUpdated, PaperDeactivated)
}


def event_from_dict(data: Dict[str, Any]) -> Event:
    """Rebuild a domain event from its serialized form."""
    event_type = EVENT_TYPES.get(str(data.get("event_type", "")))
    if event_type is None:
        raise ValueError(f"unknown event type: {data.get('event_type')!r}")
    return event_type.from_dict(data)


# ════════════════════════════════════════════════════════════════════════════
# EVENT BUS
# ════════════════════════════════════════════════════════════════════════════


EventHandler = Callable[[Event], None]


@dataclass
class EventHandlerRegistration:
    handler: EventHandler
    event_types: Set[Type[Event]]
    priority: int = 0
    filter_func: Optional[Callable[[Event], bool]] = None


class EventHandlerError(Exception):
    """Error during event handling."""
    def __init__(self, event: Event, handler: EventHandler, cause: Exception):
        self.event = event
        self.handler = handler
        self.cause = cause
        name = getattr(handler, "__name__", repr(handler))
        super().__init__(f"Handler {name} failed for {event.event_type}: {cause}")


class EventBus:
    """
    Synchronous in-memory pub/sub.

    Handlers run in priority order (higher first) at publish time. A failing
    handler or filter is counted and reported to on_error, and a failing
    on_error callback is logged. Neither propagates back into the publisher,
    so a broken indexer cannot undo a committed transition.
    """

    def __init__(self, on_error: Optional[Callable[[EventHandlerError], None]] = None):
        self._handlers: List[EventHandlerRegistration] = []
        self._lock = threading.RLock()
        self._on_error = on_error
        self._published_count = 0
        self._handled_count = 0
        self._error_count = 0

    def subscribe(
        self,
        *event_types: Type[Event],
        priority: int = 0,
        filter_func: Optional[Callable[[Event], bool]] = None,
    ) -> Callable[[EventHandler], EventHandler]:
        """
        Decorator to subscribe a handler to event types.

        With no event types the handler receives every event.
        """
        def decorator(handler: EventHandler) -> EventHandler:
            registration = EventHandlerRegistration(
                handler=handler,
                event_types=set(event_types) if event_types else {Event},
                priority=priority,
                filter_func=filter_func,
            )
            with self._lock:
                self._handlers.append(registration)
                self._handlers.sort(key=lambda r: -r.priority)
            return handler
        return decorator

    def unsubscribe(self, handler: EventHandler) -> bool:
        with self._lock:
            original_len = len(self._handlers)
            self._handlers = [r for r in self._handlers if r.handler != handler]
            return len(self._handlers) < original_len

    def publish(self, event: Event) -> None:
        with self._lock:
            self._published_count += 1
            handlers_to_call = [
                r for r in self._handlers
                if any(isinstance(event, t) for t in r.event_types)
            ]

        # Filters and handlers run outside the lock
        for registration in handlers_to_call:
            self._call_handler(registration, event)

    def _call_handler(self, registration: EventHandlerRegistration, event: Event) -> None:
        handler = registration.handler
        try:
            if registration.filter_func is not None and not registration.filter_func(event):
                return
            handler(event)
            with self._lock:
                self._handled_count += 1
        except Exception as e:
            self._handler_failed(event, handler, e)

    def _handler_failed(self, event: Event, handler: EventHandler, cause: Exception) -> None:
        with self._lock:
            self._error_count += 1
        error = EventHandlerError(event, handler, cause)
        logger.error(str(error), error_code="HANDLER_FAILED", operation="publish")
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as callback_error:
            # Publishing happens after commit; nothing may escape to the caller
            logger.error(
                f"on_error callback failed: {callback_error}",
                error_code="ERROR_CALLBACK_FAILED",
                exc_info=True,
                operation="publish",
            )

    @property
    def metrics(self) -> Dict[str, int]:
        with self._lock:
            return {
                "published_count": self._published_count,
                "handled_count": self._handled_count,
                "error_count": self._error_count,
                "handler_count": len(self._handlers),
            }


# ════════════════════════════════════════════════════════════════════════════
# EVENT STORE
# ════════════════════════════════════════════════════════════════════════════


@dataclass
class EventRecord:
    """A recorded event with its position in the log."""
    sequence_number: int
    event: Event
    stream_id: str
    version: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_number": self.sequence_number,
            "event": self.event.to_dict(),
            "stream_id": self.stream_id,
            "version": self.version,
        }


class EventStore:
    """
    Append-only event log.

    Events are grouped into streams, one per paper hash. Sequence numbers
    are global and start at 1.
    """

    def __init__(self):
        self._events: List[EventRecord] = []
        self._streams: Dict[str, List[EventRecord]] = {}
        self._lock = threading.RLock()

    def append(self, stream_id: str, event: Event) -> EventRecord:
        with self._lock:
            stream = self._streams.setdefault(stream_id, [])
            record = EventRecord(
                sequence_number=len(self._events) + 1,
                event=event,
                stream_id=stream_id,
                version=len(stream) + 1,
            )
            stream.append(record)
            self._events.append(record)
            return record

    def read_stream(self, stream_id: str, from_version: int = 0) -> List[EventRecord]:
        """Read a stream's records with version greater than from_version."""
        with self._lock:
            return [r for r in self._streams.get(stream_id, []) if r.version > from_version]

    def read_all(self, from_position: int = 0) -> List[EventRecord]:
        """Read all records with sequence number greater than from_position."""
        with self._lock:
            return list(self._events[from_position:])

    def get_stream_ids(self) -> List[str]:
        with self._lock:
            return list(self._streams)

    @property
    def total_events(self) -> int:
        with self._lock:
            return len(self._events)

    def __len__(self) -> int:
        return self.total_events


# ════════════════════════════════════════════════════════════════════════════
# PROJECTIONS
# ════════════════════════════════════════════════════════════════════════════


class Projection(ABC):
    """
    Read model built from events alone.

    Subclasses implement handle_event; process_events and rebuild track the
    last sequence number applied so catch-up is incremental.
    """

    def __init__(self):
        self._position = 0

    @property
    def position(self) -> int:
        return self._position

    @abstractmethod
    def handle_event(self, event: Event) -> None:
        pass

    def process_events(self, records: List[EventRecord]) -> None:
        for record in records:
            if record.sequence_number <= self._position:
                continue
            self.handle_event(record.event)
            self._position = record.sequence_number

    def catch_up(self, store: EventStore) -> None:
        self.process_events(store.read_all(from_position=self._position))

    def rebuild(self, store: EventStore) -> None:
        self.reset()
        self._position = 0
        self.process_events(store.read_all())

    def reset(self) -> None:
        """Clear derived state before a rebuild."""
        pass


class PaperIndexProjection(Projection):
    """
    Indexer view: id ↔ hash, update counts, deactivated hashes.

    Example:
        index = PaperIndexProjection()
        index.catch_up(registry.event_store)
        index.hash_for_id(1)      # "0xabc123"
    """

    def __init__(self):
        super().__init__()
        self.reset()

    def reset(self) -> None:
        self._hash_by_id: Dict[int, str] = {}
        self._id_by_hash: Dict[str, int] = {}
        self._updates: Dict[str, int] = {}
        self._deactivated: Set[str] = set()

    def handle_event(self, event: Event) -> None:
        if isinstance(event, PaperRegistered):
            self._hash_by_id[event.paper_id] = event.paper_hash
            self._id_by_hash[event.paper_hash] = event.paper_id
        elif isinstance(event, PaperMetadataUpdated):
            self._updates[event.paper_hash] = self._updates.get(event.paper_hash, 0) + 1
        elif isinstance(event, PaperDeactivated):
            self._deactivated.add(event.paper_hash)

    def hash_for_id(self, paper_id: int) -> Optional[str]:
        return self._hash_by_id.get(paper_id)

    def id_for_hash(self, paper_hash: str) -> Optional[int]:
        return self._id_by_hash.get(paper_hash)

    def update_count(self, paper_hash: str) -> int:
        return self._updates.get(paper_hash, 0)

    def is_deactivated(self, paper_hash: str) -> bool:
        return paper_hash in self._deactivated

    @property
    def active_ids(self) -> List[int]:
        return sorted(i for i, h in self._hash_by_id.items() if h not in self._deactivated)

    def __len__(self) -> int:
        return len(self._hash_by_id)
