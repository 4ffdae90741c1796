"""
Rule set schema.

The rule set is read-only configuration supplied from an external JSON
document. Field aliases match the on-disk format:

    {
      "minimumBidders": 3,
      "maximumBidders": 10,
      "requiredBidders": ["appnexus", "rubicon"],
      "requiredAdsTxtEntries": ["google.com"],
      "timeoutRange": {"min": 1000, "max": 3000}
    }
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _dedupe(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


class TimeoutRange(BaseModel):
    """Accepted bidder timeout window in milliseconds (inclusive)."""

    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)

    @model_validator(mode="after")
    def enforce_ordering(self):
        if self.min > self.max:
            raise ValueError(
                f"timeoutRange.min ({self.min}) must not exceed "
                f"timeoutRange.max ({self.max})"
            )
        return self

    model_config = ConfigDict(frozen=True)


class RuleSet(BaseModel):
    """Compliance thresholds applied by the rule evaluator."""

    minimum_bidders: int = Field(
        ...,
        ge=0,
        alias="minimumBidders",
        description="Fewest distinct bidders considered healthy competition",
    )

    maximum_bidders: int = Field(
        ...,
        ge=0,
        alias="maximumBidders",
        description="Most distinct bidders before page performance suffers",
    )

    required_bidders: List[str] = Field(
        default_factory=list,
        alias="requiredBidders",
        description="Bidder codes expected on every page (case-sensitive)",
    )

    required_authorization_domains: List[str] = Field(
        default_factory=list,
        alias="requiredAdsTxtEntries",
        description="Seller domains expected in ads.txt (case-insensitive)",
    )

    timeout_range_ms: TimeoutRange = Field(
        ...,
        alias="timeoutRange",
        description="Accepted bidder timeout window",
    )

    @field_validator("required_bidders", "required_authorization_domains")
    @classmethod
    def keep_first_occurrence(cls, v: List[str]) -> List[str]:
        return _dedupe(v)

    @model_validator(mode="after")
    def enforce_bidder_bounds(self):
        if self.maximum_bidders < self.minimum_bidders:
            raise ValueError(
                f"maximumBidders ({self.maximum_bidders}) must be at least "
                f"minimumBidders ({self.minimum_bidders})"
            )
        return self

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )


__all__ = ["TimeoutRange", "RuleSet"]
