"""
Page target resolution.

Derives the publisher domain to inspect from a page URL and decides
whether ads.txt can be fetched for it.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict


LOCAL_FILE_DOMAIN = "localhost (file://)"
UNKNOWN_DOMAIN = "unknown"

# Browser-internal pages never host a publisher ad stack.
INTERNAL_SCHEMES = frozenset(
    {"about", "chrome", "chrome-extension", "edge", "view-source", "devtools"}
)


class UnsupportedPageError(ValueError):
    """Raised for browser-internal pages that cannot be inspected."""


class PageTarget(BaseModel):
    """Resolved inspection target."""

    url: str
    domain: str
    is_local_file: bool = False
    ads_txt_skip_reason: Optional[str] = None

    @property
    def fetch_ads_txt(self) -> bool:
        return self.ads_txt_skip_reason is None

    model_config = ConfigDict(frozen=True)


def extract_domain(url: str) -> Optional[str]:
    """Return the hostname of a URL, or None when it has none."""
    try:
        hostname = urlsplit(url.strip()).hostname
    except ValueError:
        return None
    return hostname or None


def resolve_page_target(url: str) -> PageTarget:
    """
    Resolve a page URL into an inspection target.

    - browser-internal pages raise UnsupportedPageError
    - file:// pages skip ads.txt
    - URLs without a hostname resolve to "unknown" and skip ads.txt
    """
    try:
        scheme = urlsplit(url.strip()).scheme.lower()
    except ValueError:
        scheme = ""

    if scheme in INTERNAL_SCHEMES:
        raise UnsupportedPageError(
            "Cannot run on browser internal pages"
        )

    domain = extract_domain(url)

    if scheme == "file":
        return PageTarget(
            url=url,
            domain=domain or LOCAL_FILE_DOMAIN,
            is_local_file=True,
            ads_txt_skip_reason="Skipped for local file",
        )

    if domain is None:
        return PageTarget(
            url=url,
            domain=UNKNOWN_DOMAIN,
            ads_txt_skip_reason="Skipped: page has no hostname",
        )

    return PageTarget(url=url, domain=domain)


__all__ = [
    "LOCAL_FILE_DOMAIN",
    "UNKNOWN_DOMAIN",
    "UnsupportedPageError",
    "PageTarget",
    "extract_domain",
    "resolve_page_target",
]
