"""
Verdict schema.

Defines the structured output of the rule evaluator:

- per-section status (bidding, authorization)
- itemized human-readable issues
- named checks with actual / expected values
- a ranked, capped list of remediation action items

A Verdict is a value object. It is constructed once per analysis run and
is safe to serialize, compare, and discard.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


MAX_ACTION_ITEMS = 3


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------

class Status(str, Enum):
    """
    Outcome of a section or of the whole inspection.

    Ordering is PASS < WARNING < FAIL and MUST remain stable.
    """

    PASS = "PASS"
    WARNING = "WARNING"
    FAIL = "FAIL"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    def worst(self, other: "Status") -> "Status":
        """Return the more severe of two statuses."""
        return self if self.rank >= other.rank else other


_STATUS_RANK = {
    Status.PASS: 0,
    Status.WARNING: 1,
    Status.FAIL: 2,
}


class ActionSeverity(str, Enum):
    """Severity attached to a remediation action item."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

class CheckResult(BaseModel):
    """
    Result of one named check.

    passed is None when the check did not run (for example the timeout
    check when no timeout is configured).
    """

    passed: Optional[bool] = None
    actual: Any = None
    expected: Any = None
    missing: List[str] = Field(default_factory=list)
    count: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class ActionItem(BaseModel):
    """Prioritized remediation suggestion derived from a failed check."""

    priority: int = Field(
        ...,
        ge=1,
        le=3,
        description="1 = critical, 2 = warning, 3 = minor",
    )

    severity: ActionSeverity

    message: str

    model_config = ConfigDict(frozen=True)


class SectionResult(BaseModel):
    """Status, issues, and checks of one inspected area."""

    status: Status = Status.PASS
    issues: List[str] = Field(default_factory=list)
    checks: Dict[str, CheckResult] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Top-level verdict (PUBLIC CONTRACT)
# ---------------------------------------------------------------------------

class Verdict(BaseModel):
    """
    Compliance verdict for one page.

    Invariants:
    - overall_status is the worst of the two section statuses
    - at most MAX_ACTION_ITEMS action items, ascending by priority
    """

    overall_status: Status
    bidding: SectionResult
    authorization: SectionResult
    action_items: List[ActionItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def enforce_verdict_invariants(self):
        expected = self.bidding.status.worst(self.authorization.status)
        if self.overall_status is not expected:
            raise ValueError(
                f"overall_status {self.overall_status.value} is inconsistent "
                f"with section statuses (expected {expected.value})"
            )

        if len(self.action_items) > MAX_ACTION_ITEMS:
            raise ValueError(
                f"At most {MAX_ACTION_ITEMS} action items may be reported"
            )

        priorities = [item.priority for item in self.action_items]
        if priorities != sorted(priorities):
            raise ValueError("action_items must be sorted by priority")

        return self

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


__all__ = [
    "MAX_ACTION_ITEMS",
    "Status",
    "ActionSeverity",
    "CheckResult",
    "ActionItem",
    "SectionResult",
    "Verdict",
]
