"""Logging setup and game-event telemetry sinks."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Protocol

from rich.logging import RichHandler

from hexclaim.events import GameEvent


class Telemetry(Protocol):
    """Reports game events to the configured sink."""

    def emit(self, event_name: str, payload: dict) -> None:
        """Publish telemetry event to the configured sink."""


class LoggingTelemetry:
    """Telemetry sink writing one log record per event."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("hexclaim.telemetry")

    def emit(self, event_name: str, payload: dict) -> None:
        self._logger.info(event_name, extra={"payload": payload})


def event_listener(telemetry: Telemetry):
    """Adapt a telemetry sink into an :class:`~hexclaim.events.EventStream` listener."""

    def _listener(event: GameEvent) -> None:
        telemetry.emit(type(event).__name__, asdict(event))

    return _listener


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
