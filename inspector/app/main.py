"""
FastAPI entrypoint for the Inspector service.

This module defines the public HTTP interface for ad stack inspection. It
accepts a page URL together with a JSON snapshot of the page's Prebid.js
runtime, invokes the coordinator, and returns a structured
InspectionReport. The pure analysis primitives (ads.txt parsing and rule
evaluation) are exposed directly as well.

The application is stateless: no inspection outcome is persisted.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional, Set
from uuid import uuid4

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from starlette.responses import Response

from inspector.app.analysis.evaluator import evaluate
from inspector.app.checks.ads_txt_parser import (
    MalformedAuthorizationFileError,
    parse_authorization_file,
)
from inspector.app.collectors.bidding_channel import MemoryInspectionChannel
from inspector.app.collectors.page_target import UnsupportedPageError
from inspector.app.config import SERVICE_VERSION, InspectorSettings, get_settings
from inspector.app.coordinator.coordinator import InspectorCoordinator
from inspector.app.report.formatter import render_html
from inspector.app.schemas.ads_txt import AuthorizationSnapshot
from inspector.app.schemas.bidding import BiddingSnapshot
from inspector.app.schemas.inspection_report import InspectionReport
from inspector.app.schemas.rules import RuleSet
from inspector.app.schemas.verdict import Verdict

# Events / streaming
from inspector.app.events import MemoryQueueEventEmitter

logger = logging.getLogger("inspector.main")


# ---------------------------------------------------------------------------
# Presentation helpers (presentation-only)
# ---------------------------------------------------------------------------

def pretty_json(data: Any) -> str:
    """Pretty-print JSON for human-readable output."""
    return json.dumps(
        data,
        ensure_ascii=False,
        allow_nan=False,
        indent=2,
        separators=(", ", ": "),
    )


class PrettyJSONResponse(Response):
    """Pretty-printed JSON response for human-readable console output."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return pretty_json(content).encode("utf-8")


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class InspectRequest(BaseModel):
    url: str = Field(..., min_length=1, description="Page URL to inspect")

    runtime: Optional[Dict[str, Any]] = Field(
        None,
        description=(
            "JSON snapshot of the page's pbjs global (getBidResponses, "
            "adUnits, bidderSettings, getConfig, version). Omit when the "
            "page has no header-bidding library."
        ),
    )

    last_known_bidding: Optional[BiddingSnapshot] = Field(
        None,
        description="Fallback snapshot used if inspection times out",
    )

    rules: Optional[RuleSet] = Field(
        None,
        description="Rule set override; the configured rules are used when omitted",
    )


class AnalyzeRequest(BaseModel):
    bidding: BiddingSnapshot
    authorization: AuthorizationSnapshot
    rules: Optional[RuleSet] = None


class ParseRequest(BaseModel):
    content: str
    strict: bool = False


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Guarantees:
    - Fail-fast startup if configuration or the rule set is invalid
    - One shared HTTP transport for ads.txt fetching
    """
    logger.info(
        "inspector_startup_begin",
        extra={"service": "inspector", "version": SERVICE_VERSION},
    )

    try:
        settings = get_settings()
    except Exception:
        logger.exception("invalid_inspector_configuration")
        raise

    app.state.settings = settings
    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(
            timeout=settings.fetch_timeout_seconds,
            connect=min(5.0, settings.fetch_timeout_seconds),
        ),
        limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
    )
    app.state.coordinator = InspectorCoordinator.from_settings(
        settings, app.state.http_client
    )
    app.state.background_tasks = set()

    try:
        yield
    finally:
        await app.state.http_client.aclose()
        logger.info("inspector_shutdown_complete")


app = FastAPI(
    title="Inspector Service",
    description="Header-bidding and ads.txt compliance inspection",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Dependency providers
# ---------------------------------------------------------------------------

def get_coordinator(request: Request) -> InspectorCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise RuntimeError("coordinator not initialized")
    return coordinator


def _channel_for(body: InspectRequest, settings: InspectorSettings) -> MemoryInspectionChannel:
    runtime = body.runtime
    return MemoryInspectionChannel(
        lambda: runtime,
        settle_delay=settings.bidding_settle_delay_seconds,
    )


async def _run_inspection(
    body: InspectRequest,
    coordinator: InspectorCoordinator,
    settings: InspectorSettings,
) -> InspectionReport:
    try:
        return await coordinator.run_inspection(
            url=body.url,
            channel=_channel_for(body, settings),
            inspection_id=str(uuid4()),
            last_known_bidding=body.last_known_bidding,
            rules=body.rules,
        )
    except (UnsupportedPageError, MalformedAuthorizationFileError) as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


# ---------------------------------------------------------------------------
# API Routes
# ---------------------------------------------------------------------------

@app.post(
    "/inspect",
    response_model=InspectionReport,
    response_class=PrettyJSONResponse,
    summary="Inspect a page's header-bidding and ads.txt setup",
)
async def inspect_page(
    body: InspectRequest,
    coordinator: InspectorCoordinator = Depends(get_coordinator),
    settings: InspectorSettings = Depends(get_settings),
) -> InspectionReport:
    return await _run_inspection(body, coordinator, settings)


@app.post(
    "/inspect/html",
    response_class=HTMLResponse,
    summary="Inspect a page and render the report as HTML",
)
async def inspect_page_html(
    body: InspectRequest,
    coordinator: InspectorCoordinator = Depends(get_coordinator),
    settings: InspectorSettings = Depends(get_settings),
) -> HTMLResponse:
    report = await _run_inspection(body, coordinator, settings)
    return HTMLResponse(content=render_html(report.view))


@app.post(
    "/analyze",
    response_model=Verdict,
    summary="Evaluate already collected snapshots against a rule set",
)
def analyze(
    body: AnalyzeRequest,
    coordinator: InspectorCoordinator = Depends(get_coordinator),
) -> Verdict:
    return evaluate(
        body.bidding,
        body.authorization,
        body.rules or coordinator.rules,
    )


@app.post(
    "/ads-txt/parse",
    response_model=AuthorizationSnapshot,
    summary="Parse raw ads.txt content",
)
def parse_ads_txt(
    body: ParseRequest,
    settings: InspectorSettings = Depends(get_settings),
) -> AuthorizationSnapshot:
    try:
        return parse_authorization_file(
            body.content,
            strict=body.strict or settings.strict_ads_txt_parsing,
        )
    except MalformedAuthorizationFileError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


# ---------------------------------------------------------------------------
# Streaming Inspection (SSE)
# ---------------------------------------------------------------------------

@app.post(
    "/inspect/stream",
    summary="Inspect a page (streaming progress)",
)
async def inspect_page_stream(
    request: Request,
    body: InspectRequest,
    coordinator: InspectorCoordinator = Depends(get_coordinator),
    settings: InspectorSettings = Depends(get_settings),
):
    """
    Run an inspection while streaming progress events.

    Client disconnects do NOT cancel the inspection. The final
    inspection_completed event carries the report.
    """
    emitter = MemoryQueueEventEmitter()
    inspection_id = str(uuid4())

    async def run_inspection_task() -> None:
        try:
            await coordinator.run_inspection(
                url=body.url,
                channel=_channel_for(body, settings),
                inspection_id=inspection_id,
                last_known_bidding=body.last_known_bidding,
                rules=body.rules,
                emitter=emitter,
            )
        except Exception:
            # Coordinator already logged and emitted INSPECTION_FAILED
            return

    tasks: Set[asyncio.Task] = request.app.state.background_tasks
    task = asyncio.create_task(run_inspection_task())
    tasks.add(task)
    task.add_done_callback(tasks.discard)

    return StreamingResponse(
        emitter.sse_frames(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------

@app.get(
    "/health",
    summary="Service health check",
)
def health_check() -> JSONResponse:
    """Simple health check endpoint."""
    return JSONResponse(
        content={
            "status": "ok",
            "service": "inspector",
        }
    )
