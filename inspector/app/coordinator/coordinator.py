"""
Central inspection coordinator.

IMPORTANT:
The coordinator is a DUMB AUTHORITY.

It MUST NOT:
- interpret snapshots
- decide statuses or action items
- contain rule logic

Its sole responsibilities are:
- resolving the inspection target
- collecting the ads.txt and bidding snapshots (concurrently)
- invoking the rule evaluator
- constructing the final InspectionReport
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from inspector.app.analysis.evaluator import evaluate
from inspector.app.checks.ads_txt_parser import build_authorization_snapshot
from inspector.app.collectors.ads_txt_fetcher import AdsTxtFetcher
from inspector.app.collectors.bidding_channel import (
    DEFAULT_RESPONSE_TIMEOUT_SECONDS,
    InspectionChannel,
    request_bidding_snapshot,
)
from inspector.app.collectors.page_target import PageTarget, resolve_page_target
from inspector.app.config import InspectorSettings
from inspector.app.report.formatter import build_report_view
from inspector.app.rules.loader import load_rule_set
from inspector.app.schemas.ads_txt import (
    AuthorizationFetchResult,
    AuthorizationSnapshot,
)
from inspector.app.schemas.bidding import BiddingSnapshot
from inspector.app.schemas.inspection_report import InspectionReport
from inspector.app.schemas.rules import RuleSet

# Events (observational only)
from inspector.app.events import (
    InspectionEvent,
    InspectionEventEmitter,
    InspectionEventType,
    NullEventEmitter,
)

logger = logging.getLogger(__name__)


class InspectorCoordinator:
    """
    Central inspection coordinator.

    Execution order:
        1. Target resolution (hostname, local/special page handling)
        2. ads.txt fetch + parse  |  bidding snapshot request   (concurrent)
        3. Rule evaluation (pure)
        4. Report assembly
    """

    def __init__(
        self,
        *,
        rules: RuleSet,
        fetcher: AdsTxtFetcher,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT_SECONDS,
        strict_parsing: bool = False,
    ) -> None:
        """
        Direct constructor.

        Intended for tests and explicit wiring.
        """
        self._rules = rules
        self._fetcher = fetcher
        self._response_timeout = response_timeout
        self._strict_parsing = strict_parsing

    # ------------------------------------------------------------------
    # Integration constructor (composition root)
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(
        cls,
        settings: InspectorSettings,
        http_client: httpx.AsyncClient,
    ) -> "InspectorCoordinator":
        """Construct a fully wired coordinator from runtime settings."""
        fetcher = AdsTxtFetcher(
            http_client,
            scheme=settings.ads_txt_scheme,
            timeout_seconds=settings.fetch_timeout_seconds,
            retry_attempts=settings.fetch_retry_attempts,
            user_agent=settings.user_agent,
        )

        return cls(
            rules=load_rule_set(settings.rules_path),
            fetcher=fetcher,
            response_timeout=settings.bidding_response_timeout_seconds,
            strict_parsing=settings.strict_ads_txt_parsing,
        )

    @property
    def rules(self) -> RuleSet:
        return self._rules

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run_inspection(
        self,
        *,
        url: str,
        channel: InspectionChannel,
        inspection_id: str,
        last_known_bidding: Optional[BiddingSnapshot] = None,
        rules: Optional[RuleSet] = None,
        emitter: Optional[InspectionEventEmitter] = None,
    ) -> InspectionReport:
        """
        Inspect one page.

        last_known_bidding is the caller-held fallback used when the
        inspection channel does not answer in time.

        The emitter is strictly observational:
        - failures must not affect execution
        - events must not influence control flow
        """
        emitter = emitter or NullEventEmitter()
        rules = rules or self._rules

        await emitter.emit(
            InspectionEvent(
                inspection_id=inspection_id,
                event_type=InspectionEventType.INSPECTION_STARTED,
                details={"url": url},
            )
        )

        try:
            # ----------------------------------------------------------
            # 1. Target resolution
            # ----------------------------------------------------------
            target = resolve_page_target(url)

            # ----------------------------------------------------------
            # 2. Collection (concurrent, failures become data)
            # ----------------------------------------------------------
            authorization, bidding = await asyncio.gather(
                self._collect_authorization(target),
                request_bidding_snapshot(
                    channel,
                    timeout=self._response_timeout,
                    last_known=last_known_bidding,
                ),
            )

            await emitter.emit(
                InspectionEvent(
                    inspection_id=inspection_id,
                    event_type=InspectionEventType.ADS_TXT_COLLECTED,
                    details={
                        "domain": target.domain,
                        "exists": authorization.exists,
                        "entry_count": len(authorization.entries),
                        "duplicate_count": authorization.duplicate_count,
                    },
                )
            )

            await emitter.emit(
                InspectionEvent(
                    inspection_id=inspection_id,
                    event_type=InspectionEventType.BIDDING_COLLECTED,
                    details={
                        "detected": bidding.detected,
                        "bidder_count": len(bidding.bidders),
                    },
                )
            )

            # ----------------------------------------------------------
            # 3. Rule evaluation (pure)
            # ----------------------------------------------------------
            verdict = evaluate(bidding, authorization, rules)

            await emitter.emit(
                InspectionEvent(
                    inspection_id=inspection_id,
                    event_type=InspectionEventType.ANALYSIS_COMPLETED,
                    details={
                        "overall_status": verdict.overall_status.value,
                        "action_item_count": len(verdict.action_items),
                    },
                )
            )

            # ----------------------------------------------------------
            # 4. Report assembly
            # ----------------------------------------------------------
            report = InspectionReport(
                inspection_id=inspection_id,
                url=url,
                domain=target.domain,
                verdict=verdict,
                bidding=bidding,
                authorization=authorization,
                rules=rules,
                view=build_report_view(
                    verdict, bidding, authorization, target.domain
                ),
            )

            logger.info(
                "inspection_completed",
                extra={
                    "inspection_id": inspection_id,
                    "domain": target.domain,
                    "overall_status": verdict.overall_status.value,
                },
            )

            await emitter.emit(
                InspectionEvent(
                    inspection_id=inspection_id,
                    event_type=InspectionEventType.INSPECTION_COMPLETED,
                    details={
                        "overall_status": verdict.overall_status.value,
                        "report": report.model_dump(mode="json", by_alias=True),
                    },
                )
            )

            return report

        except Exception as exc:
            logger.exception(
                "inspection_failed",
                extra={
                    "inspection_id": inspection_id,
                    "error_type": type(exc).__name__,
                },
            )
            await emitter.emit(
                InspectionEvent(
                    inspection_id=inspection_id,
                    event_type=InspectionEventType.INSPECTION_FAILED,
                    details={
                        "exception_type": type(exc).__name__,
                        "message": str(exc),
                    },
                )
            )
            raise

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _collect_authorization(
        self,
        target: PageTarget,
    ) -> AuthorizationSnapshot:
        if not target.fetch_ads_txt:
            fetch = AuthorizationFetchResult(
                ok=False,
                error_message=target.ads_txt_skip_reason,
                skipped=True,
            )
        else:
            fetch = await self._fetcher.fetch(target.domain)

        return build_authorization_snapshot(fetch, strict=self._strict_parsing)


__all__ = ["InspectorCoordinator"]
