"""
Report formatting.

Maps a Verdict and the two snapshots it was derived from into a display
structure, and renders that structure as plain text or an HTML fragment.

PRESENTATION ONLY: no business logic lives here. Every status, issue,
and action item shown comes from the Verdict unchanged.
"""

from __future__ import annotations

import html
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from inspector.app.schemas.ads_txt import AuthorizationSnapshot
from inspector.app.schemas.bidding import BiddingSnapshot
from inspector.app.schemas.verdict import (
    ActionSeverity,
    CheckResult,
    Status,
    Verdict,
)


STATUS_COLORS = {
    Status.PASS: "#28a745",
    Status.WARNING: "#ffc107",
    Status.FAIL: "#dc3545",
}

STATUS_ICONS = {
    Status.PASS: "✅",
    Status.WARNING: "⚠️",
    Status.FAIL: "❌",
}

SEVERITY_ICONS = {
    ActionSeverity.CRITICAL: "\U0001f534",
    ActionSeverity.WARNING: "⚠️",
}


# ---------------------------------------------------------------------------
# Display structure
# ---------------------------------------------------------------------------

class ActionLine(BaseModel):
    rank: int
    priority: int
    severity: ActionSeverity
    icon: str
    message: str

    model_config = ConfigDict(frozen=True)


class SectionView(BaseModel):
    title: str
    status: Status
    icon: str
    color: str
    summary: List[str] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ReportView(BaseModel):
    """Renderer-neutral representation of an inspection report."""

    domain: str
    status: Status
    banner: str
    color: str
    action_items: List[ActionLine] = Field(default_factory=list)
    sections: List[SectionView] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def _mark(passed: Optional[bool], failed_icon: str) -> str:
    return STATUS_ICONS[Status.PASS] if passed else failed_icon


def _expected(check: Optional[CheckResult]) -> str:
    if check is None or check.expected is None:
        return ""
    return f" (expected {check.expected})"


def _bidding_view(verdict: Verdict, bidding: BiddingSnapshot) -> SectionView:
    section = verdict.bidding
    summary: List[str] = []

    if bidding.detected:
        count_check = section.checks.get("bidder_count")
        timeout_check = section.checks.get("timeout")
        required_check = section.checks.get("required_bidders")

        summary.append(f"Version: {bidding.library_version or 'Unknown'}")
        summary.append(
            f"Bidders: {len(bidding.bidders)}{_expected(count_check)} "
            f"{_mark(count_check and count_check.passed, STATUS_ICONS[Status.FAIL])}"
        )
        if bidding.bidders:
            summary.append(f"Bidder codes: {', '.join(bidding.bidders)}")
        if required_check and required_check.expected:
            summary.append(
                f"Recommended bidders: {', '.join(required_check.expected)} "
                f"{_mark(required_check.passed, STATUS_ICONS[Status.WARNING])}"
            )
        timeout = f"{bidding.timeout_ms}ms" if bidding.timeout_ms else "Not set"
        summary.append(
            f"Timeout: {timeout}{_expected(timeout_check)} "
            f"{_mark(timeout_check and timeout_check.passed, STATUS_ICONS[Status.WARNING])}"
        )
    else:
        summary.append(f"{STATUS_ICONS[Status.FAIL]} Not detected")

    for error in bidding.extraction_errors:
        summary.append(f"Error: {error}")

    return SectionView(
        title="Prebid.js",
        status=section.status,
        icon=STATUS_ICONS[section.status],
        color=STATUS_COLORS[section.status],
        summary=summary,
        issues=list(section.issues),
    )


def _authorization_view(
    verdict: Verdict,
    authorization: AuthorizationSnapshot,
) -> SectionView:
    section = verdict.authorization
    summary: List[str] = []

    if authorization.exists:
        required = section.checks.get("required_entries")
        summary.append(f"Entries: {len(authorization.entries)}")
        summary.append(
            "Required SSPs: "
            f"{_mark(required and required.passed, STATUS_ICONS[Status.WARNING])}"
        )
        if required and required.missing:
            summary.append(f"Missing SSPs: {', '.join(required.missing)}")
        if authorization.duplicate_count:
            summary.append(
                f"Duplicates: {authorization.duplicate_count} "
                f"{STATUS_ICONS[Status.WARNING]}"
            )
    else:
        summary.append(f"{STATUS_ICONS[Status.FAIL]} Not found")
        if authorization.fetch_skipped:
            if authorization.fetch_error:
                summary.append(authorization.fetch_error)
        elif authorization.fetch_error:
            summary.append(f"Error: {authorization.fetch_error}")

    return SectionView(
        title="ads.txt",
        status=section.status,
        icon=STATUS_ICONS[section.status],
        color=STATUS_COLORS[section.status],
        summary=summary,
        issues=list(section.issues),
    )


def build_report_view(
    verdict: Verdict,
    bidding: BiddingSnapshot,
    authorization: AuthorizationSnapshot,
    domain: str,
) -> ReportView:
    """Build the display structure for a verdict."""
    return ReportView(
        domain=domain,
        status=verdict.overall_status,
        banner=f"{STATUS_ICONS[verdict.overall_status]} {verdict.overall_status.value}",
        color=STATUS_COLORS[verdict.overall_status],
        action_items=[
            ActionLine(
                rank=index,
                priority=item.priority,
                severity=item.severity,
                icon=SEVERITY_ICONS[item.severity],
                message=item.message,
            )
            for index, item in enumerate(verdict.action_items, start=1)
        ],
        sections=[
            _bidding_view(verdict, bidding),
            _authorization_view(verdict, authorization),
        ],
    )


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------

def render_text(view: ReportView) -> str:
    lines = [view.banner, f"Domain: {view.domain}", ""]

    if view.action_items:
        lines.append("Top Priority Actions:")
        for item in view.action_items:
            lines.append(f"  {item.rank}. {item.icon} {item.message}")
        lines.append("")

    for section in view.sections:
        lines.append(f"{section.title}: {section.icon} {section.status.value}")
        lines.extend(f"  {entry}" for entry in section.summary)
        if section.issues:
            lines.append("  Issues:")
            lines.extend(f"    • {issue}" for issue in section.issues)
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def render_html(view: ReportView) -> str:
    """Render an HTML fragment. All dynamic text is escaped."""
    esc = html.escape
    parts: List[str] = [
        (
            f'<div class="banner" style="padding: 15px; background: {view.color}; '
            'color: white; border-radius: 8px; margin-bottom: 20px; '
            'text-align: center; font-weight: bold; font-size: 16px;">'
            f"{esc(view.banner)}</div>"
        ),
        f"<strong>Domain:</strong> {esc(view.domain)}<br><br>",
    ]

    if view.action_items:
        parts.append(
            '<div class="actions" style="background: #fff3cd; '
            'border-left: 4px solid #ffc107; padding: 12px; '
            'margin-bottom: 20px; border-radius: 4px;">'
            '<strong style="color: #856404;">Top Priority Actions:</strong><br>'
        )
        for item in view.action_items:
            parts.append(f"{item.rank}. {item.icon} {esc(item.message)}<br>")
        parts.append("</div>")

    for section in view.sections:
        parts.append(
            f'<div class="section" style="border-left: 4px solid {section.color}; '
            'padding-left: 12px; margin-bottom: 15px;">'
            f"<strong>{esc(section.title)}:</strong> {section.icon}<br>"
        )
        for entry in section.summary:
            parts.append(f"{esc(entry)}<br>")
        if section.issues:
            parts.append('<br><span style="color: #856404;">Issues:</span><br>')
            for issue in section.issues:
                parts.append(f"• {esc(issue)}<br>")
        parts.append("</div>")

    return "".join(parts)


__all__ = [
    "ReportView",
    "SectionView",
    "ActionLine",
    "build_report_view",
    "render_text",
    "render_html",
]
