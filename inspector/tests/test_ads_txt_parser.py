"""
Tests for ads.txt parsing and fetch-outcome mapping.

Coverage matrix:

  Entry parsing       field mapping, line numbers counting skipped lines
  Duplicates          verbatim post-trim matches, set semantics
  Permissive mode     < 3 fields dropped silently, still tracked for duplicates
  Strict mode         malformed lines raise MalformedAuthorizationFileError
  Fetch mapping       404 vs other status vs transport error vs missing body
"""

import pytest

from inspector.app.checks.ads_txt_parser import (
    MalformedAuthorizationFileError,
    build_authorization_snapshot,
    parse_authorization_file,
)
from inspector.app.schemas.ads_txt import AuthorizationFetchResult
from inspector.tests.fixtures.runtime_factory import ADS_TXT_SAMPLE


# ---------------------------------------------------------------------------
# Entry parsing
# ---------------------------------------------------------------------------

def test_reference_example_entries_and_duplicates():
    content = "a,1,DIRECT\n# comment\n\na,1,DIRECT\nb,2,RESELLER,abc"

    snapshot = parse_authorization_file(content)

    assert snapshot.exists is True
    assert [
        (
            e.seller_domain,
            e.publisher_account_id,
            e.account_type,
            e.certification_authority_id,
            e.source_line_number,
        )
        for e in snapshot.entries
    ] == [
        ("a", "1", "DIRECT", None, 1),
        ("a", "1", "DIRECT", None, 4),
        ("b", "2", "RESELLER", "abc", 5),
    ]
    assert snapshot.duplicate_raw_lines == ["a,1,DIRECT"]


def test_fields_are_trimmed_and_case_preserved():
    snapshot = parse_authorization_file("  Google.com ,  pub-1 , direct , ABC  \n")

    entry = snapshot.entries[0]
    assert entry.seller_domain == "Google.com"
    assert entry.publisher_account_id == "pub-1"
    assert entry.account_type == "direct"
    assert entry.certification_authority_id == "ABC"


def test_crlf_line_endings_are_tolerated():
    snapshot = parse_authorization_file("a.com,1,DIRECT\r\nb.com,2,RESELLER\r\n")

    assert [e.seller_domain for e in snapshot.entries] == ["a.com", "b.com"]
    assert snapshot.duplicate_raw_lines == []


def test_sample_file():
    snapshot = parse_authorization_file(ADS_TXT_SAMPLE)

    assert len(snapshot.entries) == 4
    assert snapshot.entries[0].source_line_number == 2
    assert snapshot.entries[2].source_line_number == 5
    assert snapshot.duplicate_raw_lines == [
        "google.com, pub-1234567890, DIRECT, f08c47fec0942fa0"
    ]


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------

def test_no_repeated_lines_means_no_duplicates():
    content = "a,1,DIRECT\nb,1,DIRECT\n# a,1,DIRECT\n# a,1,DIRECT\n\n\n"

    assert parse_authorization_file(content).duplicate_raw_lines == []


def test_line_repeated_many_times_is_listed_once():
    content = "\n".join(["x.com,9,DIRECT"] * 4)

    snapshot = parse_authorization_file(content)

    assert snapshot.duplicate_raw_lines == ["x.com,9,DIRECT"]
    assert len(snapshot.entries) == 4


def test_duplicates_compare_after_trimming_only():
    content = "  a,1,DIRECT  \na,1,DIRECT\na, 1, DIRECT\n"

    snapshot = parse_authorization_file(content)

    assert snapshot.duplicate_raw_lines == ["a,1,DIRECT"]


# ---------------------------------------------------------------------------
# Permissive / strict handling of malformed lines
# ---------------------------------------------------------------------------

def test_short_lines_are_dropped_but_tracked_for_duplicates():
    content = "contact=ops@example.com\nbad,line\nbad,line\na,1,DIRECT\n"

    snapshot = parse_authorization_file(content)

    assert [e.seller_domain for e in snapshot.entries] == ["a"]
    assert snapshot.duplicate_raw_lines == ["bad,line"]
    assert snapshot.malformed_line_numbers == [1, 2, 3]


def test_strict_mode_rejects_malformed_lines():
    with pytest.raises(MalformedAuthorizationFileError) as excinfo:
        parse_authorization_file("a,1,DIRECT\nbroken\n", strict=True)

    assert excinfo.value.line_numbers == [2]


def test_strict_mode_accepts_well_formed_file():
    snapshot = parse_authorization_file(ADS_TXT_SAMPLE, strict=True)

    assert len(snapshot.entries) == 4


# ---------------------------------------------------------------------------
# Fetch outcome mapping
# ---------------------------------------------------------------------------

def test_404_is_reported_distinctly():
    snapshot = build_authorization_snapshot(
        AuthorizationFetchResult(ok=False, status_code=404)
    )

    assert snapshot.exists is False
    assert snapshot.entries == []
    assert snapshot.fetch_error == "ads.txt not found (404)"


def test_other_status_is_reported_as_http_error():
    snapshot = build_authorization_snapshot(
        AuthorizationFetchResult(ok=False, status_code=503)
    )

    assert snapshot.exists is False
    assert snapshot.fetch_error == "HTTP error: 503"


def test_transport_error_message_is_kept():
    snapshot = build_authorization_snapshot(
        AuthorizationFetchResult(
            ok=False,
            error_message="Fetch error: connection refused",
        )
    )

    assert snapshot.fetch_error == "Fetch error: connection refused"


def test_successful_fetch_without_body_counts_as_missing():
    snapshot = build_authorization_snapshot(
        AuthorizationFetchResult(ok=True, status_code=200, body=None)
    )

    assert snapshot.exists is False
    assert snapshot.fetch_error == "ads.txt not found"


def test_successful_fetch_is_parsed():
    snapshot = build_authorization_snapshot(
        AuthorizationFetchResult(ok=True, status_code=200, body="a,1,DIRECT")
    )

    assert snapshot.exists is True
    assert snapshot.fetch_error is None
    assert snapshot.entries[0].seller_domain == "a"


def test_skipped_fetch_is_flagged():
    snapshot = build_authorization_snapshot(
        AuthorizationFetchResult(
            ok=False,
            skipped=True,
            error_message="Skipped for local file",
        )
    )

    assert snapshot.exists is False
    assert snapshot.fetch_skipped is True
    assert snapshot.fetch_error == "Skipped for local file"


# ---------------------------------------------------------------------------
# Byte order mark
# ---------------------------------------------------------------------------

def test_leading_byte_order_mark_is_dropped():
    snapshot = parse_authorization_file("\ufeffgoogle.com, pub-1, DIRECT\n")

    assert snapshot.entries[0].seller_domain == "google.com"
    assert snapshot.entries[0].source_line_number == 1


def test_byte_order_mark_before_comment_keeps_comment_skipped():
    snapshot = parse_authorization_file("\ufeff# header\na.com, 1, DIRECT\n")

    assert [e.seller_domain for e in snapshot.entries] == ["a.com"]
    assert snapshot.malformed_line_numbers == []
