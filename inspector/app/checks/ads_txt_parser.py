"""
ads.txt parsing.

Turns raw ads.txt content into an AuthorizationSnapshot. Parsing is
deterministic and permissive by default:

- blank lines and lines starting with '#' are skipped
- every remaining line participates in duplicate detection
- lines with fewer than three comma-separated fields produce no entry
  and are NOT reported as errors

An opt-in strict mode rejects such lines instead of dropping them.
No case normalization is performed here; comparisons elsewhere must
lower-case seller domains themselves.
"""

from __future__ import annotations

import logging
from typing import List

from inspector.app.schemas.ads_txt import (
    AuthorizationEntry,
    AuthorizationFetchResult,
    AuthorizationSnapshot,
)

logger = logging.getLogger(__name__)


MIN_FIELDS = 3
BYTE_ORDER_MARK = "\ufeff"


class MalformedAuthorizationFileError(ValueError):
    """Raised in strict mode when ads.txt contains malformed lines."""

    def __init__(self, line_numbers: List[int]):
        self.line_numbers = list(line_numbers)
        super().__init__(
            "ads.txt contains lines with fewer than "
            f"{MIN_FIELDS} fields: {', '.join(map(str, self.line_numbers))}"
        )


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def parse_authorization_file(
    content: str,
    *,
    strict: bool = False,
) -> AuthorizationSnapshot:
    """
    Parse successfully fetched ads.txt content.

    Line numbers are 1-based and count skipped blank and comment lines.
    A leading byte order mark is dropped before splitting.
    """
    entries: List[AuthorizationEntry] = []
    malformed: List[int] = []

    if content.startswith(BYTE_ORDER_MARK):
        content = content[len(BYTE_ORDER_MARK):]

    seen: set[str] = set()
    duplicates: dict[str, None] = {}

    for index, line in enumerate(content.split("\n"), start=1):
        trimmed = line.strip()

        if not trimmed or trimmed.startswith("#"):
            continue

        if trimmed in seen:
            duplicates[trimmed] = None
        else:
            seen.add(trimmed)

        fields = [field.strip() for field in trimmed.split(",")]

        if len(fields) < MIN_FIELDS:
            malformed.append(index)
            continue

        entries.append(
            AuthorizationEntry(
                seller_domain=fields[0],
                publisher_account_id=fields[1],
                account_type=fields[2],
                certification_authority_id=(
                    fields[3] if len(fields) > 3 and fields[3] else None
                ),
                source_line_number=index,
            )
        )

    if strict and malformed:
        raise MalformedAuthorizationFileError(malformed)

    logger.debug(
        "ads_txt_parsed",
        extra={
            "entry_count": len(entries),
            "duplicate_count": len(duplicates),
            "malformed_count": len(malformed),
        },
    )

    return AuthorizationSnapshot(
        exists=True,
        entries=entries,
        duplicate_raw_lines=list(duplicates),
        malformed_line_numbers=malformed,
    )


def build_authorization_snapshot(
    fetch: AuthorizationFetchResult,
    *,
    strict: bool = False,
) -> AuthorizationSnapshot:
    """
    Map a fetch outcome to an AuthorizationSnapshot.

    Failures never raise; they yield exists=False with fetch_error set.
    """
    if fetch.skipped:
        return AuthorizationSnapshot(
            exists=False,
            fetch_error=fetch.error_message,
            fetch_skipped=True,
        )

    if not fetch.ok:
        if fetch.status_code == 404:
            error = "ads.txt not found (404)"
        elif fetch.status_code is not None:
            error = f"HTTP error: {fetch.status_code}"
        elif fetch.error_message:
            error = fetch.error_message
        else:
            error = "ads.txt not found"

        return AuthorizationSnapshot(exists=False, fetch_error=error)

    if fetch.body is None:
        return AuthorizationSnapshot(
            exists=False,
            fetch_error="ads.txt not found",
        )

    return parse_authorization_file(fetch.body, strict=strict)


__all__ = [
    "MalformedAuthorizationFileError",
    "parse_authorization_file",
    "build_authorization_snapshot",
]
