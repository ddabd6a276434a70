"""
Event fan-out between pipeline stages and to the UI layer.

- EventChannel: one subscription point per event kind; delivers in emit order
  to every subscriber registered at emit time.
- Emit may be called from audio callback threads; subscribers must be quick or
  hand the value off (the WebSocket streamer hops to the event loop).
- Event records (partial / segment / state / error) are what the WebSocket sends.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventChannel(Generic[T]):
    """Thread-safe subscriber list. A failing subscriber is logged and skipped."""

    def __init__(self, name: str = "") -> None:
        self._name = name
        self._subscribers: list[Callable[[T], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register callback. Returns a function that removes it again."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                try:
                    self._subscribers.remove(callback)
                except ValueError:
                    pass

        return unsubscribe

    def emit(self, value: T) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(value)
            except Exception:
                logger.exception("Subscriber of %s failed", self._name or "channel")

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)


def _unix_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class PartialTextEvent:
    """In-progress recognition text; superseded by the next partial or segment."""

    text: str
    timestamp: int = field(default_factory=_unix_ms)
    type: str = "partial"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text, "timestamp": self.timestamp}


@dataclass
class SegmentEvent:
    """A labeled segment was appended to the timeline."""

    segment: dict[str, Any]
    timestamp: int = field(default_factory=_unix_ms)
    type: str = "segment"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "segment": self.segment, "timestamp": self.timestamp}


@dataclass
class StateEvent:
    running: bool
    timestamp: int = field(default_factory=_unix_ms)
    type: str = "state"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "running": self.running, "timestamp": self.timestamp}


@dataclass
class ErrorEvent:
    message: str
    timestamp: int = field(default_factory=_unix_ms)
    type: str = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message, "timestamp": self.timestamp}
