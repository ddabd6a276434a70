"""
EventStreamer: pushes TranscriptionService events to one WebSocket.

Service callbacks fire on capture/recognizer threads. Each is turned into an event
record and hopped onto the event loop with call_soon_threadsafe into an asyncio.Queue;
a sender task drains the queue in order. The socket is read only to detect disconnect.

Server sends JSON:
{ "type": "partial" | "segment" | "state" | "error", ..., "timestamp": unix_ms }
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable

from fastapi import WebSocket

from diarscribe.events import ErrorEvent, PartialTextEvent, SegmentEvent, StateEvent
from diarscribe.service import TranscriptionService
from diarscribe.transcript.models import TranscriptSegment

logger = logging.getLogger(__name__)

_QUEUE_MAX = 1000


class EventStreamer:
    """One WebSocket = one subscription to the service's event channels."""

    def __init__(self, websocket: WebSocket, service: TranscriptionService) -> None:
        self._ws = websocket
        self._service = service
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=_QUEUE_MAX)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._unsubscribers: list[Callable[[], None]] = []
        self._closed = False

    # --- thread side ---

    def _enqueue(self, payload: dict[str, Any]) -> None:
        loop = self._loop
        if loop is None or self._closed:
            return
        try:
            loop.call_soon_threadsafe(self._put, payload)
        except RuntimeError:
            # Loop already closed
            self._closed = True

    def _put(self, payload: dict[str, Any]) -> None:
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning("Event queue full; dropping %s event", payload.get("type"))

    def _on_partial(self, text: str) -> None:
        self._enqueue(PartialTextEvent(text=text).to_dict())

    def _on_segment(self, segment: TranscriptSegment) -> None:
        self._enqueue(SegmentEvent(segment=segment.to_dict()).to_dict())

    def _on_state(self, running: bool) -> None:
        self._enqueue(StateEvent(running=running).to_dict())

    def _on_error(self, message: str) -> None:
        self._enqueue(ErrorEvent(message=message).to_dict())

    def attach(self) -> None:
        service = self._service
        self._unsubscribers = [
            service.partial_text.subscribe(self._on_partial),
            service.segment_completed.subscribe(self._on_segment),
            service.state_changed.subscribe(self._on_state),
            service.error.subscribe(self._on_error),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # --- loop side ---

    async def _send_message(self, payload: dict[str, Any]) -> None:
        if self._closed:
            return
        try:
            await self._ws.send_text(json.dumps(payload, ensure_ascii=False))
        except Exception:
            self._closed = True

    async def _sender(self) -> None:
        while not self._closed:
            payload = await self._queue.get()
            await self._send_message(payload)

    async def run(self) -> None:
        """Subscribe, send the current state, stream until the client disconnects."""
        self._loop = asyncio.get_running_loop()
        self.attach()
        await self._send_message(StateEvent(running=self._service.is_running).to_dict())
        sender = asyncio.create_task(self._sender())
        try:
            while not self._closed:
                try:
                    msg = await self._ws.receive()
                except Exception:
                    break
                if msg.get("type") == "websocket.disconnect":
                    break
        finally:
            self._closed = True
            self.detach()
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
