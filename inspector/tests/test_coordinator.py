"""
End-to-end coordinator tests.

ads.txt is served through httpx.MockTransport; the bidding runtime is a
JSON snapshot answered by the in-memory inspection channel.
"""

import asyncio

import httpx
import pytest
from tenacity import wait_none

from inspector.app.analysis.evaluator import evaluate
from inspector.app.checks.ads_txt_parser import MalformedAuthorizationFileError
from inspector.app.collectors.ads_txt_fetcher import AdsTxtFetcher
from inspector.app.collectors.bidding_channel import MemoryInspectionChannel
from inspector.app.collectors.page_target import UnsupportedPageError
from inspector.app.coordinator.coordinator import InspectorCoordinator
from inspector.app.events import InspectionEventType
from inspector.app.schemas.bidding import BiddingSnapshot
from inspector.app.schemas.verdict import Status
from inspector.tests.fixtures.runtime_factory import (
    ADS_TXT_SAMPLE,
    json_runtime,
    rule_set,
)

pytestmark = pytest.mark.anyio


class ListEmitter:
    def __init__(self) -> None:
        self.events = []

    async def emit(self, event) -> None:
        self.events.append(event)

    @property
    def types(self):
        return [e.event_type for e in self.events]


class SilentChannel:
    async def send(self, request) -> None:
        return

    async def receive(self):
        await asyncio.Event().wait()


def _coordinator(handler, *, strict=False, rules=None) -> InspectorCoordinator:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return InspectorCoordinator(
        rules=rules
        or rule_set(
            minimum=2,
            maximum=5,
            required_bidders=["appnexus"],
            required_domains=["google.com", "appnexus.com"],
        ),
        fetcher=AdsTxtFetcher(client, retry_wait=wait_none()),
        response_timeout=0.5,
        strict_parsing=strict,
    )


def _serve(body=ADS_TXT_SAMPLE, status_code=200):
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(status_code, text=body)

    handler.requested = requested
    return handler


def _channel(runtime):
    return MemoryInspectionChannel(lambda: runtime, settle_delay=0)


async def test_healthy_page_yields_warning_for_duplicates_only():
    handler = _serve()
    coordinator = _coordinator(handler)
    emitter = ListEmitter()

    report = await coordinator.run_inspection(
        url="https://www.publisher.com/article",
        channel=_channel(
            json_runtime(ad_units={"top": ["appnexus", "rubicon"]}, timeout=1500)
        ),
        inspection_id="insp-001",
        emitter=emitter,
    )

    assert handler.requested == ["https://www.publisher.com/ads.txt"]
    assert report.domain == "www.publisher.com"
    assert report.verdict.bidding.status is Status.PASS
    assert report.verdict.authorization.status is Status.WARNING
    assert report.verdict.overall_status is Status.WARNING
    assert report.view.status is Status.WARNING
    assert report.authorization.duplicate_count == 1
    assert report.bidding.bidders == ["appnexus", "rubicon"]

    assert emitter.types == [
        InspectionEventType.INSPECTION_STARTED,
        InspectionEventType.ADS_TXT_COLLECTED,
        InspectionEventType.BIDDING_COLLECTED,
        InspectionEventType.ANALYSIS_COMPLETED,
        InspectionEventType.INSPECTION_COMPLETED,
    ]
    assert all(e.inspection_id == "insp-001" for e in emitter.events)
    assert emitter.events[-1].details["report"]["inspection_id"] == "insp-001"


async def test_missing_ads_txt_and_library_fail():
    coordinator = _coordinator(_serve(body="", status_code=404))

    report = await coordinator.run_inspection(
        url="https://example.com/",
        channel=_channel(None),
        inspection_id="insp-002",
    )

    assert report.verdict.overall_status is Status.FAIL
    assert report.authorization.fetch_error == "ads.txt not found (404)"
    assert report.bidding.detected is False
    assert len(report.verdict.action_items) == 2


async def test_local_file_skips_fetch():
    handler = _serve()
    coordinator = _coordinator(handler)

    report = await coordinator.run_inspection(
        url="file:///tmp/page.html",
        channel=_channel(json_runtime(ad_units={"u": ["appnexus", "ix"]})),
        inspection_id="insp-003",
    )

    assert handler.requested == []
    assert report.domain == "localhost (file://)"
    assert report.authorization.exists is False
    assert report.authorization.fetch_error == "Skipped for local file"
    assert report.authorization.fetch_skipped is True
    assert "Skipped for local file" in report.view.sections[1].summary
    assert report.verdict.authorization.status is Status.FAIL


async def test_channel_timeout_uses_last_known_snapshot():
    coordinator = _coordinator(_serve())
    last_known = BiddingSnapshot(
        detected=True, bidders=["appnexus", "openx"], timeout_ms=2000
    )

    report = await coordinator.run_inspection(
        url="https://example.com/",
        channel=SilentChannel(),
        inspection_id="insp-004",
        last_known_bidding=last_known,
    )

    assert report.bidding == last_known
    assert report.verdict.bidding.status is Status.PASS


async def test_rule_override_is_applied_and_echoed():
    coordinator = _coordinator(_serve())
    override = rule_set(minimum=4, maximum=8)

    report = await coordinator.run_inspection(
        url="https://example.com/",
        channel=_channel(json_runtime(ad_units={"u": ["a", "b"]})),
        inspection_id="insp-005",
        rules=override,
    )

    assert report.rules == override
    assert report.verdict.bidding.status is Status.FAIL


async def test_internal_page_fails_and_emits_failure():
    coordinator = _coordinator(_serve())
    emitter = ListEmitter()

    with pytest.raises(UnsupportedPageError):
        await coordinator.run_inspection(
            url="chrome://settings",
            channel=_channel(None),
            inspection_id="insp-006",
            emitter=emitter,
        )

    assert emitter.types == [
        InspectionEventType.INSPECTION_STARTED,
        InspectionEventType.INSPECTION_FAILED,
    ]
    assert emitter.events[-1].details["exception_type"] == "UnsupportedPageError"


async def test_strict_parsing_rejects_malformed_file():
    coordinator = _coordinator(_serve(body="google.com, 1, DIRECT\njunk\n"), strict=True)

    with pytest.raises(MalformedAuthorizationFileError):
        await coordinator.run_inspection(
            url="https://example.com/",
            channel=_channel(None),
            inspection_id="insp-007",
        )


async def test_report_reproduces_verdict_from_its_own_inputs():
    coordinator = _coordinator(_serve())

    report = await coordinator.run_inspection(
        url="https://example.com/",
        channel=_channel(json_runtime(ad_units={"u": ["x"]}, timeout=400)),
        inspection_id="insp-008",
    )

    assert evaluate(report.bidding, report.authorization, report.rules) == report.verdict


async def test_ipv6_page_fetches_bracketed_host():
    handler = _serve()
    coordinator = _coordinator(handler)

    report = await coordinator.run_inspection(
        url="http://[2001:db8::1]/page",
        channel=_channel(None),
        inspection_id="insp-009",
    )

    assert handler.requested == ["https://[2001:db8::1]/ads.txt"]
    assert report.domain == "2001:db8::1"
    assert report.authorization.exists is True
