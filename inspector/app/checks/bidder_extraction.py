"""
Bidder extraction from a Prebid.js runtime.

Combines three independent discovery strategies into one deduplicated
bidder set:

    A. realized bid responses (getBidResponses)      primary
    B. static ad unit configuration (adUnits)        fallback
    C. bidder settings registry (bidderSettings)     supplemental

The runtime may be the live `pbjs` global exposed through a bridge object
or a JSON snapshot of it. Any strategy may be missing or fail; each failure
is recorded and does not abort its siblings. Values are copied out
immediately so a runtime mutating mid-inspection (an auction completing)
never leaks into a later strategy.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from numbers import Real
from typing import Any, Callable, Iterable, List, Optional

from inspector.app.schemas.bidding import BiddingSnapshot

logger = logging.getLogger(__name__)


# Default bucket of pbjs.bidderSettings; not a bidder.
STANDARD_SETTINGS_KEY = "standard"

_MISSING = object()


# ------------------------------------------------------------------
# Runtime access helpers
# ------------------------------------------------------------------


def _read(source: Any, name: str, default: Any = None) -> Any:
    """
    Read a member from a mapping or an attribute-style object.

    Callables (e.g. getBidResponses) are invoked without arguments.
    """
    if source is None:
        return default

    if isinstance(source, Mapping):
        value = source.get(name, _MISSING)
    else:
        value = getattr(source, name, _MISSING)

    if value is _MISSING or value is None:
        return default

    if callable(value):
        value = value()

    return default if value is None else value


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _bidders_from_bid_responses(runtime: Any) -> List[str]:
    responses = _read(runtime, "getBidResponses")
    if responses is None:
        responses = _read(runtime, "bidResponses", {})

    found: List[str] = []
    for ad_unit in list(dict(responses).values()):
        for bid in _as_list(_read(ad_unit, "bids", [])):
            for field in ("bidder", "bidderCode"):
                code = _read(bid, field)
                if code:
                    found.append(str(code))
    return found


def _bidders_from_ad_units(runtime: Any) -> List[str]:
    found: List[str] = []
    for ad_unit in _as_list(_read(runtime, "adUnits", [])):
        for bid in _as_list(_read(ad_unit, "bids", [])):
            code = _read(bid, "bidder")
            if code:
                found.append(str(code))
    return found


def _bidders_from_settings(runtime: Any) -> List[str]:
    settings = dict(_read(runtime, "bidderSettings", {}))
    return [
        str(code)
        for code in list(settings)
        if code != STANDARD_SETTINGS_KEY
    ]


_STRATEGIES: List[tuple[str, Callable[[Any], List[str]]]] = [
    ("Bid responses", _bidders_from_bid_responses),
    ("Ad units", _bidders_from_ad_units),
    ("Bidder settings", _bidders_from_settings),
]


def _read_timeout(runtime: Any) -> Optional[int]:
    config = _read(runtime, "getConfig")
    if config is None:
        config = _read(runtime, "config")

    timeout = _read(config, "bidderTimeout")

    if isinstance(timeout, bool) or not isinstance(timeout, Real):
        return None
    return int(timeout)


def _read_version(runtime: Any) -> Optional[str]:
    version = _read(runtime, "version")
    return str(version) if version else None


def _union(groups: Iterable[List[str]]) -> List[str]:
    merged: dict[str, None] = {}
    for group in groups:
        for code in group:
            merged[code] = None
    return list(merged)


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def extract_bidding_snapshot(runtime: Any) -> BiddingSnapshot:
    """
    Build a BiddingSnapshot from a bidding runtime (or None when absent).

    Error policy:
    - each strategy failure is appended to the error list
    - if the merged result contains at least one bidder, the reported
      extraction_errors are cleared; diagnostic_errors keeps them
    """
    if runtime is None:
        return BiddingSnapshot.not_detected()

    errors: List[str] = []
    groups: List[List[str]] = []

    for label, strategy in _STRATEGIES:
        try:
            groups.append(strategy(runtime))
        except Exception as exc:
            logger.warning(
                "bidder_strategy_failed",
                extra={"strategy": label, "error": str(exc)},
            )
            errors.append(f"{label} error: {exc}")

    timeout_ms: Optional[int] = None
    try:
        timeout_ms = _read_timeout(runtime)
    except Exception as exc:
        errors.append(f"Config error: {exc}")

    library_version: Optional[str] = None
    try:
        library_version = _read_version(runtime)
    except Exception as exc:
        errors.append(f"Version error: {exc}")

    bidders = _union(groups)

    return BiddingSnapshot(
        detected=True,
        bidders=bidders,
        timeout_ms=timeout_ms,
        library_version=library_version,
        extraction_errors=[] if bidders else list(errors),
        diagnostic_errors=errors,
    )


__all__ = [
    "STANDARD_SETTINGS_KEY",
    "extract_bidding_snapshot",
]
