"""Game events published by the capture engine for the presentation layer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Union

from hexclaim.models import CellId, Coordinate


@dataclass(frozen=True, slots=True)
class ZoneCaptured:
    cell_id: CellId
    total_zones: int
    score: int


@dataclass(frozen=True, slots=True)
class CacheCaptured:
    bonus: int
    score: int


@dataclass(frozen=True, slots=True)
class LevelUp:
    new_level: int


@dataclass(frozen=True, slots=True)
class ResolutionFailed:
    location: Coordinate
    reason: str


GameEvent = Union[ZoneCaptured, CacheCaptured, LevelUp, ResolutionFailed]
EventListener = Callable[[GameEvent], None]


class EventSubscription:
    """Async iterator over events published after subscribing."""

    def __init__(self, stream: EventStream) -> None:
        self._stream = stream
        self._queue: asyncio.Queue[GameEvent | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, event: GameEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def pending(self) -> list[GameEvent]:
        """Drain and return events already queued without waiting."""
        events: list[GameEvent] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not None:
                events.append(item)
        return events

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stream._detach(self)
        self._queue.put_nowait(None)

    def __aiter__(self) -> EventSubscription:
        return self

    async def __anext__(self) -> GameEvent:
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item


class EventStream:
    """Fan-out of game events to callback listeners and queue subscriptions."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._listeners: list[EventListener] = []
        self._subscriptions: list[EventSubscription] = []
        self._logger = logger or logging.getLogger("hexclaim.events")

    def add_listener(self, listener: EventListener) -> Callable[[], None]:
        """Register a callback; returns a function that removes it again."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def subscribe(self) -> EventSubscription:
        subscription = EventSubscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: GameEvent) -> None:
        self._logger.debug("event_published", extra={"event": type(event).__name__})
        for subscription in list(self._subscriptions):
            subscription.deliver(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - a faulty listener must not break capture processing.
                self._logger.exception("event_listener_failed", extra={"event": type(event).__name__})

    def _detach(self, subscription: EventSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
