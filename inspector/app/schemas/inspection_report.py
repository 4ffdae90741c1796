"""
InspectionReport schema.

The top-level result returned by the Inspector service. It bundles the
verdict with the exact snapshots and rule set it was computed from, so a
reader can reproduce the verdict by calling evaluate() again.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, model_validator

from inspector.app.report.formatter import ReportView
from inspector.app.schemas.ads_txt import AuthorizationSnapshot
from inspector.app.schemas.bidding import BiddingSnapshot
from inspector.app.schemas.rules import RuleSet
from inspector.app.schemas.verdict import Verdict


class InspectionReport(BaseModel):
    """Inspection outcome for one page."""

    schema_version: str = Field(
        "1.0",
        description="InspectionReport schema version",
    )

    inspection_id: str = Field(
        ...,
        description="Unique identifier for this inspection",
    )

    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Timestamp when the report was generated (UTC)",
    )

    url: str
    domain: str

    verdict: Verdict
    bidding: BiddingSnapshot
    authorization: AuthorizationSnapshot
    rules: RuleSet

    view: ReportView = Field(
        ...,
        description="Presentation structure derived from the verdict",
    )

    @model_validator(mode="after")
    def enforce_view_consistency(self):
        if self.view.status is not self.verdict.overall_status:
            raise ValueError(
                "Report view status must match the verdict overall status"
            )
        return self

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


__all__ = ["InspectionReport"]
