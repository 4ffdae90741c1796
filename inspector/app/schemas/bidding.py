"""
Header-bidding snapshot schema.

A BiddingSnapshot is the normalized, read-only view of a page's Prebid.js
runtime at the moment it was inspected. It carries no live references to
the runtime object.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BiddingSnapshot(BaseModel):
    """
    Normalized header-bidding state of a page.

    extraction_errors follows the "success suppresses errors" policy and
    is cleared whenever at least one bidder was found. diagnostic_errors
    always keeps the raw per-strategy failures.
    """

    detected: bool = Field(
        ...,
        description="Whether the header-bidding library is present",
    )

    bidders: List[str] = Field(
        default_factory=list,
        description="Distinct bidder codes (case-sensitive, first-seen order)",
    )

    timeout_ms: Optional[int] = Field(
        None,
        description="Global bidder timeout in milliseconds",
    )

    library_version: Optional[str] = Field(
        None,
        description="Reported library version string",
    )

    extraction_errors: List[str] = Field(
        default_factory=list,
        description="Errors surfaced to the report",
    )

    diagnostic_errors: List[str] = Field(
        default_factory=list,
        description="Raw strategy errors, retained for diagnostics",
    )

    @model_validator(mode="after")
    def enforce_detection_invariant(self):
        if not self.detected:
            if self.bidders:
                raise ValueError(
                    "bidders must be empty when the library is not detected"
                )
            if self.timeout_ms is not None or self.library_version is not None:
                raise ValueError(
                    "timeout_ms and library_version must be None when the "
                    "library is not detected"
                )
        if len(set(self.bidders)) != len(self.bidders):
            raise ValueError("bidders must not contain duplicates")
        return self

    @classmethod
    def not_detected(cls, *errors: str) -> "BiddingSnapshot":
        """Empty snapshot for a page without a reachable bidding runtime."""
        return cls(
            detected=False,
            extraction_errors=list(errors),
            diagnostic_errors=list(errors),
        )

    model_config = ConfigDict(frozen=True)


__all__ = ["BiddingSnapshot"]
