"""
Rule evaluator (analysis engine).

Applies a RuleSet to a BiddingSnapshot and an AuthorizationSnapshot and
produces a Verdict.

The evaluator is:
- pure (no I/O, no logging side effects on the outcome)
- deterministic (identical inputs yield identical verdicts)
- total (missing data is a FAIL condition, never an exception)

Status policy (FROZEN):
- a section starts at PASS
- a check may only move a section towards FAIL, never back
- WARNING-level checks never downgrade a FAIL
"""

from __future__ import annotations

from typing import Dict, List

from inspector.app.schemas.ads_txt import AuthorizationSnapshot
from inspector.app.schemas.bidding import BiddingSnapshot
from inspector.app.schemas.rules import RuleSet
from inspector.app.schemas.verdict import (
    MAX_ACTION_ITEMS,
    ActionItem,
    ActionSeverity,
    CheckResult,
    SectionResult,
    Status,
    Verdict,
)


def _plural(count: int, noun: str) -> str:
    return noun if count == 1 else f"{noun}s"


class _SectionBuilder:
    """Mutable accumulator for one section; discarded after build()."""

    def __init__(self) -> None:
        self.status = Status.PASS
        self.issues: List[str] = []
        self.checks: Dict[str, CheckResult] = {}
        self.actions: List[ActionItem] = []

    def escalate(self, status: Status) -> None:
        self.status = self.status.worst(status)

    def flag(
        self,
        *,
        status: Status,
        issue: str,
        priority: int,
        severity: ActionSeverity,
        action: str,
    ) -> None:
        self.escalate(status)
        self.issues.append(issue)
        self.actions.append(
            ActionItem(priority=priority, severity=severity, message=action)
        )

    def build(self) -> SectionResult:
        return SectionResult(
            status=self.status,
            issues=list(self.issues),
            checks=dict(self.checks),
        )


# ------------------------------------------------------------------
# Bidding section
# ------------------------------------------------------------------


def _evaluate_bidding(
    bidding: BiddingSnapshot,
    rules: RuleSet,
) -> _SectionBuilder:
    section = _SectionBuilder()

    if not bidding.detected:
        section.checks["detected"] = CheckResult(passed=False, actual=False, expected=True)
        section.flag(
            status=Status.FAIL,
            issue="Prebid.js not detected on this page",
            priority=1,
            severity=ActionSeverity.CRITICAL,
            action="Install Prebid.js to enable header bidding",
        )
        return section

    section.checks["detected"] = CheckResult(passed=True, actual=True, expected=True)

    # --------------------------------------------------------------
    # Bidder count
    # --------------------------------------------------------------
    count = len(bidding.bidders)
    expected_range = f"{rules.minimum_bidders}-{rules.maximum_bidders}"

    if count < rules.minimum_bidders:
        shortfall = rules.minimum_bidders - count
        section.checks["bidder_count"] = CheckResult(
            passed=False, actual=count, expected=expected_range
        )
        section.flag(
            status=Status.FAIL,
            issue=f"Only {count} bidders (minimum: {rules.minimum_bidders})",
            priority=1,
            severity=ActionSeverity.CRITICAL,
            action=(
                f"Add {shortfall} more {_plural(shortfall, 'bidder')} "
                "for healthy competition"
            ),
        )
    elif count > rules.maximum_bidders:
        excess = count - rules.maximum_bidders
        section.checks["bidder_count"] = CheckResult(
            passed=False, actual=count, expected=expected_range
        )
        section.flag(
            status=Status.WARNING,
            issue=(
                f"Too many bidders ({count}, maximum: {rules.maximum_bidders})"
            ),
            priority=2,
            severity=ActionSeverity.WARNING,
            action=(
                f"Remove {excess} {_plural(excess, 'bidder')} "
                "to improve page performance"
            ),
        )
    else:
        section.checks["bidder_count"] = CheckResult(
            passed=True, actual=count, expected=expected_range
        )

    # --------------------------------------------------------------
    # Required bidders (case-sensitive, rule-set order)
    # --------------------------------------------------------------
    present = set(bidding.bidders)
    missing = [b for b in rules.required_bidders if b not in present]

    section.checks["required_bidders"] = CheckResult(
        passed=not missing,
        actual=list(bidding.bidders),
        expected=list(rules.required_bidders),
        missing=missing,
    )

    if missing:
        joined = ", ".join(missing)
        section.flag(
            status=Status.WARNING,
            issue=f"Missing recommended bidders: {joined}",
            priority=2,
            severity=ActionSeverity.WARNING,
            action=f"Add recommended bidders: {joined}",
        )

    # --------------------------------------------------------------
    # Timeout (only when configured)
    # --------------------------------------------------------------
    timeout = bidding.timeout_ms
    window = rules.timeout_range_ms
    expected_window = f"{window.min}-{window.max}ms"

    if not timeout:
        section.checks["timeout"] = CheckResult(
            passed=None, actual=timeout, expected=expected_window
        )
    elif timeout < window.min or timeout > window.max:
        recommendation = (
            f"increase to {window.min}ms"
            if timeout < window.min
            else f"reduce to {window.max}ms"
        )
        section.checks["timeout"] = CheckResult(
            passed=False, actual=timeout, expected=expected_window
        )
        section.flag(
            status=Status.WARNING,
            issue=(
                f"Timeout {timeout}ms is outside recommended range "
                f"({recommendation})"
            ),
            priority=3,
            severity=ActionSeverity.WARNING,
            action=(
                f"Adjust bidder timeout to {expected_window} "
                f"(currently {timeout}ms): {recommendation}"
            ),
        )
    else:
        section.checks["timeout"] = CheckResult(
            passed=True, actual=timeout, expected=expected_window
        )

    return section


# ------------------------------------------------------------------
# Authorization section
# ------------------------------------------------------------------


def _evaluate_authorization(
    authorization: AuthorizationSnapshot,
    rules: RuleSet,
) -> _SectionBuilder:
    section = _SectionBuilder()

    if not authorization.exists:
        section.checks["exists"] = CheckResult(passed=False, actual=False, expected=True)
        section.flag(
            status=Status.FAIL,
            issue="ads.txt file not found",
            priority=1,
            severity=ActionSeverity.CRITICAL,
            action="Create ads.txt file to prevent unauthorized ad inventory sales",
        )
        return section

    section.checks["exists"] = CheckResult(passed=True, actual=True, expected=True)

    # --------------------------------------------------------------
    # Required seller domains (case-insensitive)
    # --------------------------------------------------------------
    declared = {e.seller_domain.lower() for e in authorization.entries}
    missing = [
        domain
        for domain in rules.required_authorization_domains
        if domain.lower() not in declared
    ]

    section.checks["required_entries"] = CheckResult(
        passed=not missing,
        actual=len(authorization.entries),
        expected=list(rules.required_authorization_domains),
        missing=missing,
    )

    if missing:
        joined = ", ".join(missing)
        section.flag(
            status=Status.WARNING,
            issue=f"Missing critical SSP entries: {joined}",
            priority=2,
            severity=ActionSeverity.WARNING,
            action=f"Add to ads.txt: {joined}",
        )

    # --------------------------------------------------------------
    # Duplicate lines
    # --------------------------------------------------------------
    duplicates = authorization.duplicate_count

    section.checks["duplicates"] = CheckResult(
        passed=duplicates == 0,
        actual=duplicates,
        expected=0,
        count=duplicates,
    )

    if duplicates:
        section.flag(
            status=Status.WARNING,
            issue=f"{duplicates} duplicate entries found",
            priority=3,
            severity=ActionSeverity.WARNING,
            action=f"Remove {duplicates} duplicate ads.txt entries",
        )

    return section


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def rank_action_items(items: List[ActionItem]) -> List[ActionItem]:
    """Stable ascending sort by priority, capped at MAX_ACTION_ITEMS."""
    return sorted(items, key=lambda item: item.priority)[:MAX_ACTION_ITEMS]


def evaluate(
    bidding: BiddingSnapshot,
    authorization: AuthorizationSnapshot,
    rules: RuleSet,
) -> Verdict:
    """
    Evaluate both snapshots against the rule set.

    Action items are gathered bidding-first, then authorization, so ties
    in priority keep generation order after the stable sort.
    """
    bidding_section = _evaluate_bidding(bidding, rules)
    authorization_section = _evaluate_authorization(authorization, rules)

    return Verdict(
        overall_status=bidding_section.status.worst(authorization_section.status),
        bidding=bidding_section.build(),
        authorization=authorization_section.build(),
        action_items=rank_action_items(
            bidding_section.actions + authorization_section.actions
        ),
    )


__all__ = ["evaluate", "rank_action_items"]
