from __future__ import annotations

from typing import Protocol

from inspector.app.events.models import InspectionEvent


class InspectionEventEmitter(Protocol):
    """
    Receives InspectionEvents from the coordinator as phases complete.

    The coordinator awaits emit() inline, so an implementation that blocks
    delays the inspection, and one that raises fails it.
    """

    async def emit(self, event: InspectionEvent) -> None:
        ...


class NullEventEmitter:
    """Discards events; the default for /inspect, /inspect/html and tests."""

    async def emit(self, event: InspectionEvent) -> None:
        return
