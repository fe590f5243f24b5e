"""
Up Bank API client.

Async httpx client that authenticates with a personal access token and
follows JSON:API `links.next` pagination until the collection is exhausted.

Environment (via Settings):
  UP_TOKEN                         bearer token for every upstream call
  UP_API_BASE_URL                  default: https://api.up.com.au/api/v1
  UP_PAGE_SIZE                     default: 100
  UP_PAGE_DELAY_SECONDS            pause between pages (default 0.5)
  UP_RATE_LIMIT_COOLDOWN_SECONDS   pause after a 429 (default 30)
  UP_RATE_LIMIT_MAX_ATTEMPTS       requests per page before giving up (0 = forever)
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from upbank_proxy.config import DEFAULT_UP_API_BASE_URL, Settings
from upbank_proxy.errors import RateLimitExceeded, UpstreamError
from upbank_proxy.logging_config import get_logger
from upbank_proxy.retry import RateLimitRetryPolicy

logger = get_logger("upbank_proxy.up_client")

Sleep = Callable[[float], Awaitable[None]]


class UpBankClient:
    """
    HTTP client for the Up Bank API.
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_UP_API_BASE_URL,
        page_size: int = 100,
        page_delay_seconds: float = 0.5,
        retry_policy: Optional[RateLimitRetryPolicy] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.page_size = page_size
        self.page_delay_seconds = page_delay_seconds
        self.retry_policy = retry_policy or RateLimitRetryPolicy()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> "UpBankClient":
        return cls(
            token=settings.up_token,
            base_url=settings.up_api_base_url,
            page_size=settings.up_page_size,
            page_delay_seconds=settings.up_page_delay_seconds,
            retry_policy=RateLimitRetryPolicy(
                cooldown_seconds=settings.up_rate_limit_cooldown_seconds,
                max_attempts=settings.up_rate_limit_max_attempts,
            ),
            timeout=settings.up_request_timeout,
            http_client=http_client,
            sleep=sleep,
        )

    async def __aenter__(self) -> "UpBankClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_page(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET one page. A 429 is retried per the retry policy; any other
        failure raises UpstreamError.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = await self._client.get(url, params=params, headers=self._headers())
            except httpx.RequestError as e:
                logger.error("Up API request failed url=%s error=%s", url, e)
                raise UpstreamError(f"Up API unreachable: {e}", url=url) from e

            if resp.status_code == 429:
                if not self.retry_policy.should_retry(attempt):
                    logger.error("Up API rate limit: giving up on %s after %d attempts", url, attempt)
                    raise RateLimitExceeded(url, attempt)
                delay = self.retry_policy.delay_for(resp)
                logger.warning(
                    "Up API rate limited url=%s attempt=%d; retrying in %.1fs", url, attempt, delay
                )
                await self._sleep(delay)
                continue

            if resp.status_code >= 400:
                logger.error(
                    "Up API error url=%s status=%s body=%s",
                    url,
                    resp.status_code,
                    resp.text[:500],
                )
                raise UpstreamError(
                    f"Up API error: {resp.status_code}",
                    status_code=resp.status_code,
                    url=url,
                )

            try:
                payload = resp.json()
            except ValueError as e:
                logger.error("Up API returned invalid JSON url=%s", url)
                raise UpstreamError("Up API returned invalid JSON", status_code=resp.status_code, url=url) from e
            if not isinstance(payload, dict) or not isinstance(payload.get("data", []), list):
                logger.error("Up API returned an unexpected document url=%s type=%s", url, type(payload).__name__)
                raise UpstreamError("Up API returned an unexpected document", status_code=resp.status_code, url=url)
            return payload

    async def fetch_all(self, url: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Follow `links.next` from `url` and return every page's `data` items in
        the order the API returned them.
        """
        items: List[Dict[str, Any]] = []
        next_url: Optional[str] = url
        page_params = params
        pages = 0
        while next_url:
            if pages:
                await self._sleep(self.page_delay_seconds)
            payload = await self.get_page(next_url, params=page_params)
            pages += 1
            items.extend(payload.get("data") or [])
            links = payload.get("links")
            next_url = links.get("next") if isinstance(links, dict) else None
            # next links already carry the query string
            page_params = None
        logger.info("Fetched %d items from %s in %d page(s)", len(items), url, pages)
        return items

    async def fetch_all_transactions(self) -> List[Dict[str, Any]]:
        return await self.fetch_all(
            self._url("/transactions"),
            params={"page[size]": self.page_size},
        )

    async def fetch_accounts(self) -> List[Dict[str, Any]]:
        return await self.fetch_all(
            self._url("/accounts"),
            params={"page[size]": self.page_size},
        )
