from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional

from inspector.app.events.models import InspectionEvent, InspectionEventType

logger = logging.getLogger(__name__)


TERMINAL_EVENTS = frozenset(
    {
        InspectionEventType.INSPECTION_COMPLETED,
        InspectionEventType.INSPECTION_FAILED,
    }
)


class MemoryQueueEventEmitter:
    """
    Buffers the events of one inspection for the /inspect/stream response.

    The inspection task produces, the SSE response body consumes. The
    stream ends after the first completed or failed event; anything
    emitted later is dropped.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Optional[InspectionEvent]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: InspectionEvent) -> None:
        if self._closed:
            logger.debug(
                "event_dropped_after_close",
                extra={
                    "inspection_id": event.inspection_id,
                    "event_type": event.event_type.value,
                },
            )
            return

        self._queue.put_nowait(event)

        if event.event_type in TERMINAL_EVENTS:
            self._close()

    def _close(self) -> None:
        self._closed = True
        self._queue.put_nowait(None)

    async def stream(self) -> AsyncIterator[InspectionEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    async def sse_frames(self) -> AsyncIterator[str]:
        """Events of the inspection as Server-Sent Events frames."""
        async for event in self.stream():
            yield event.to_sse_payload()
