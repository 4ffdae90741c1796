import asyncio

import pytest

from inspector.app.collectors.bidding_channel import (
    TIMEOUT_ERROR,
    InspectionRequest,
    InspectionResponse,
    MemoryInspectionChannel,
    request_bidding_snapshot,
)
from inspector.app.schemas.bidding import BiddingSnapshot
from inspector.tests.fixtures.runtime_factory import json_runtime

pytestmark = pytest.mark.anyio


class SilentChannel:
    """Accepts requests and never answers."""

    def __init__(self) -> None:
        self.requests = []

    async def send(self, request: InspectionRequest) -> None:
        self.requests.append(request)

    async def receive(self) -> InspectionResponse:
        await asyncio.Event().wait()


class StaleFirstChannel:
    """Answers with a response to an abandoned request before the real one."""

    def __init__(self, stale: BiddingSnapshot, fresh: BiddingSnapshot) -> None:
        self._stale = stale
        self._fresh = fresh
        self._queue: asyncio.Queue = asyncio.Queue()

    async def send(self, request: InspectionRequest) -> None:
        await self._queue.put(
            InspectionResponse(correlation_id="abandoned", snapshot=self._stale)
        )
        await self._queue.put(
            InspectionResponse(
                correlation_id=request.correlation_id, snapshot=self._fresh
            )
        )

    async def receive(self) -> InspectionResponse:
        return await self._queue.get()


class BrokenChannel:
    async def send(self, request: InspectionRequest) -> None:
        raise ConnectionError("inspection context is gone")

    async def receive(self) -> InspectionResponse:
        raise AssertionError("receive must not be reached")


def _snapshot(*bidders: str) -> BiddingSnapshot:
    return BiddingSnapshot(detected=True, bidders=list(bidders))


async def test_memory_channel_returns_extracted_snapshot():
    channel = MemoryInspectionChannel(
        lambda: json_runtime(ad_units={"u": ["appnexus", "ix"]}, timeout=1500),
        settle_delay=0,
    )

    snapshot = await request_bidding_snapshot(channel, timeout=1.0)

    assert snapshot.detected is True
    assert snapshot.bidders == ["appnexus", "ix"]
    assert snapshot.timeout_ms == 1500


async def test_memory_channel_without_runtime_is_not_detected():
    channel = MemoryInspectionChannel(lambda: None, settle_delay=0)

    snapshot = await request_bidding_snapshot(channel, timeout=1.0)

    assert snapshot.detected is False
    assert snapshot.extraction_errors == []


async def test_provider_failure_becomes_not_detected_snapshot():
    def provider():
        raise RuntimeError("page navigated away")

    channel = MemoryInspectionChannel(provider, settle_delay=0)

    snapshot = await request_bidding_snapshot(channel, timeout=1.0)

    assert snapshot.detected is False
    assert snapshot.extraction_errors == ["Inspection error: page navigated away"]


async def test_timeout_without_last_known_is_not_detected():
    channel = SilentChannel()

    snapshot = await request_bidding_snapshot(channel, timeout=0.05)

    assert len(channel.requests) == 1
    assert snapshot.detected is False
    assert snapshot.bidders == []
    assert snapshot.extraction_errors == [TIMEOUT_ERROR]


async def test_timeout_falls_back_to_last_known_snapshot():
    last_known = _snapshot("rubicon")

    snapshot = await request_bidding_snapshot(
        SilentChannel(), timeout=0.05, last_known=last_known
    )

    assert snapshot == last_known


async def test_responses_with_other_correlation_ids_are_ignored():
    channel = StaleFirstChannel(stale=_snapshot("stale"), fresh=_snapshot("fresh"))

    snapshot = await request_bidding_snapshot(channel, timeout=1.0)

    assert snapshot.bidders == ["fresh"]


async def test_each_request_gets_a_new_correlation_id():
    channel = SilentChannel()

    await request_bidding_snapshot(channel, timeout=0.01)
    await request_bidding_snapshot(channel, timeout=0.01)

    ids = {r.correlation_id for r in channel.requests}
    assert len(ids) == 2


async def test_channel_failure_resolves_to_snapshot():
    snapshot = await request_bidding_snapshot(BrokenChannel(), timeout=1.0)

    assert snapshot.detected is False
    assert snapshot.extraction_errors == ["inspection context is gone"]
