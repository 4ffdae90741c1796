"""
Bidding inspection channel.

The page's Prebid.js runtime is only readable from the page context. The
caller reaches it through a request/response channel: every request carries
a correlation id, responses with any other id are ignored, and the caller
waits a bounded time before falling back.

Fallback order on timeout:
1. the last known snapshot, passed in explicitly by the caller
2. a not-detected snapshot carrying a timeout error

The channel holds no cache between calls.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol, Set
from uuid import uuid4

from pydantic import BaseModel, ConfigDict

from inspector.app.checks.bidder_extraction import extract_bidding_snapshot
from inspector.app.schemas.bidding import BiddingSnapshot

logger = logging.getLogger(__name__)


DEFAULT_RESPONSE_TIMEOUT_SECONDS = 2.0
TIMEOUT_ERROR = "Timeout waiting for Prebid data"


# ----------------------------------------------------------------------
# Messages
# ----------------------------------------------------------------------

class InspectionRequest(BaseModel):
    correlation_id: str

    model_config = ConfigDict(frozen=True)


class InspectionResponse(BaseModel):
    correlation_id: str
    snapshot: BiddingSnapshot

    model_config = ConfigDict(frozen=True)


# ----------------------------------------------------------------------
# Channel interface
# ----------------------------------------------------------------------

class InspectionChannel(Protocol):
    """
    Transport between the caller and the page inspection context.

    Implementations deliver responses in arrival order and may deliver
    responses to earlier (abandoned) requests.
    """

    async def send(self, request: InspectionRequest) -> None:
        ...

    async def receive(self) -> InspectionResponse:
        ...


class MemoryInspectionChannel:
    """
    In-process channel answering requests from a runtime provider.

    runtime_provider returns the current bidding runtime (or None when the
    page has no header-bidding library). It is invoked once per request,
    after settle_delay, so libraries that load asynchronously get a chance
    to initialize.
    """

    def __init__(
        self,
        runtime_provider: Callable[[], Any],
        *,
        settle_delay: float = 0.1,
    ) -> None:
        self._runtime_provider = runtime_provider
        self._settle_delay = settle_delay
        self._responses: asyncio.Queue[InspectionResponse] = asyncio.Queue()
        self._pending: Set[asyncio.Task] = set()

    async def send(self, request: InspectionRequest) -> None:
        task = asyncio.create_task(self._answer(request))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def receive(self) -> InspectionResponse:
        return await self._responses.get()

    async def _answer(self, request: InspectionRequest) -> None:
        if self._settle_delay:
            await asyncio.sleep(self._settle_delay)

        try:
            snapshot = extract_bidding_snapshot(self._runtime_provider())
        except Exception as exc:
            logger.warning(
                "bidding_inspection_error",
                extra={
                    "correlation_id": request.correlation_id,
                    "error": str(exc),
                },
            )
            snapshot = BiddingSnapshot.not_detected(f"Inspection error: {exc}")

        await self._responses.put(
            InspectionResponse(
                correlation_id=request.correlation_id,
                snapshot=snapshot,
            )
        )


# ----------------------------------------------------------------------
# Caller side
# ----------------------------------------------------------------------

async def _await_response(
    channel: InspectionChannel,
    correlation_id: str,
) -> BiddingSnapshot:
    while True:
        response = await channel.receive()
        if response.correlation_id == correlation_id:
            return response.snapshot
        logger.debug(
            "bidding_response_discarded",
            extra={
                "expected": correlation_id,
                "received": response.correlation_id,
            },
        )


async def request_bidding_snapshot(
    channel: InspectionChannel,
    *,
    timeout: float = DEFAULT_RESPONSE_TIMEOUT_SECONDS,
    last_known: Optional[BiddingSnapshot] = None,
) -> BiddingSnapshot:
    """
    Request a BiddingSnapshot through the channel with a bounded wait.

    Never raises: channel failures and timeouts resolve to a snapshot.
    """
    correlation_id = str(uuid4())

    try:
        await channel.send(InspectionRequest(correlation_id=correlation_id))
        return await asyncio.wait_for(
            _await_response(channel, correlation_id),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "bidding_response_timeout",
            extra={
                "correlation_id": correlation_id,
                "timeout_seconds": timeout,
                "fallback": (
                    "last_known" if last_known is not None else "not_detected"
                ),
            },
        )
        if last_known is not None:
            return last_known
        return BiddingSnapshot.not_detected(TIMEOUT_ERROR)
    except Exception as exc:
        logger.exception(
            "bidding_channel_failure",
            extra={"correlation_id": correlation_id},
        )
        return BiddingSnapshot.not_detected(str(exc) or type(exc).__name__)


__all__ = [
    "DEFAULT_RESPONSE_TIMEOUT_SECONDS",
    "TIMEOUT_ERROR",
    "InspectionRequest",
    "InspectionResponse",
    "InspectionChannel",
    "MemoryInspectionChannel",
    "request_bidding_snapshot",
]
