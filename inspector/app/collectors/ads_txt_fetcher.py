"""
ads.txt fetching.

Async client that retrieves https://<domain>/ads.txt over a shared
httpx.AsyncClient. Every outcome is returned as an
AuthorizationFetchResult; nothing is raised past this boundary.

Retry policy:
- transient transport failures (connect/read errors, timeouts) are
  retried with exponential backoff
- HTTP status codes are final and never retried
- URLs httpx rejects are reported as fetch errors, not raised
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from inspector.app.schemas.ads_txt import AuthorizationFetchResult

logger = logging.getLogger(__name__)


class AdsTxtFetcher:
    """
    Fetches ads.txt for a publisher domain.

    The HTTP client is owned by the caller (application lifespan or test)
    and is never closed here.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        scheme: str = "https",
        timeout_seconds: float = 10.0,
        retry_attempts: int = 3,
        user_agent: Optional[str] = None,
        retry_wait: Optional[wait_base] = None,
    ) -> None:
        self.client = http_client
        self.scheme = scheme
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.user_agent = user_agent
        self.retry_wait = (
            retry_wait
            if retry_wait is not None
            else wait_exponential(multiplier=0.5, min=0.5, max=4)
        )

    def url_for(self, domain: str) -> str:
        # IPv6 literals need brackets in the authority component
        host = f"[{domain}]" if ":" in domain else domain
        return f"{self.scheme}://{host}/ads.txt"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch(self, domain: str) -> AuthorizationFetchResult:
        url = self.url_for(domain)

        logger.info("ads_txt_fetch_started", extra={"url": url})

        try:
            response = await self._get_with_retry(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            message = str(exc) or type(exc).__name__
            logger.warning(
                "ads_txt_fetch_failed",
                extra={"url": url, "error": message},
            )
            return AuthorizationFetchResult(
                ok=False,
                error_message=f"Fetch error: {message}",
            )

        if not response.is_success:
            logger.info(
                "ads_txt_fetch_rejected",
                extra={"url": url, "status_code": response.status_code},
            )
            return AuthorizationFetchResult(
                ok=False,
                status_code=response.status_code,
            )

        return AuthorizationFetchResult(
            ok=True,
            status_code=response.status_code,
            body=response.text,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "text/plain, */*;q=0.8"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    async def _get_with_retry(self, url: str) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "ads_txt_fetch_retry",
                        extra={
                            "url": url,
                            "attempt": attempt.retry_state.attempt_number,
                        },
                    )
                return await self.client.get(
                    url,
                    headers=self._headers(),
                    timeout=self.timeout_seconds,
                    follow_redirects=True,
                )

        raise RuntimeError("unreachable: retry loop exited without result")


__all__ = ["AdsTxtFetcher"]
