"""
ads.txt authorization schemas.

Defines the structured form of a publisher's ads.txt file as consumed by
the rule evaluator. Snapshots are built once per inspection from already
fetched content and are never mutated afterwards.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Fetch transport object
# ---------------------------------------------------------------------------

class AuthorizationFetchResult(BaseModel):
    """
    Outcome of fetching ads.txt from a publisher domain.

    Transport failures are carried as data. A 404 is distinguishable from
    other non-2xx statuses through status_code. skipped marks a fetch that
    was never attempted (local files, pages without a hostname).
    """

    ok: bool
    status_code: Optional[int] = None
    body: Optional[str] = None
    error_message: Optional[str] = None
    skipped: bool = False

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Parsed entries
# ---------------------------------------------------------------------------

class AuthorizationEntry(BaseModel):
    """One authorized seller line of an ads.txt file."""

    seller_domain: str = Field(
        ...,
        description="Domain of the advertising system (field 1)",
    )

    publisher_account_id: str = Field(
        ...,
        description="Publisher account identifier with the seller (field 2)",
    )

    account_type: str = Field(
        ...,
        description="Relationship type, DIRECT or RESELLER (field 3, verbatim)",
    )

    certification_authority_id: Optional[str] = Field(
        None,
        description="Certification authority identifier (optional field 4)",
    )

    source_line_number: int = Field(
        ...,
        ge=1,
        description="1-based line number in the original file",
    )

    model_config = ConfigDict(frozen=True)


class AuthorizationSnapshot(BaseModel):
    """
    Parsed ads.txt state for one domain.

    duplicate_raw_lines holds the exact trimmed text of every entry line
    that appears more than once, each listed once in first-seen order.
    """

    exists: bool = Field(
        ...,
        description="Whether the file was fetched successfully",
    )

    entries: List[AuthorizationEntry] = Field(
        default_factory=list,
        description="Parsed entries in file order",
    )

    duplicate_raw_lines: List[str] = Field(
        default_factory=list,
        description="Trimmed lines occurring more than once",
    )

    fetch_error: Optional[str] = Field(
        None,
        description="Human-readable reason the file is unavailable",
    )

    fetch_skipped: bool = Field(
        False,
        description="True when no fetch was attempted for this page",
    )

    malformed_line_numbers: List[int] = Field(
        default_factory=list,
        description=(
            "Line numbers dropped for having fewer than three fields. "
            "Diagnostic only; never reported as a compliance issue."
        ),
    )

    @model_validator(mode="after")
    def enforce_existence_invariant(self):
        if not self.exists and self.entries:
            raise ValueError(
                "entries must be empty when the ads.txt file does not exist"
            )
        if self.fetch_skipped and self.exists:
            raise ValueError("a skipped fetch cannot produce an ads.txt file")
        return self

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicate_raw_lines)

    model_config = ConfigDict(frozen=True)


__all__ = [
    "AuthorizationFetchResult",
    "AuthorizationEntry",
    "AuthorizationSnapshot",
]
