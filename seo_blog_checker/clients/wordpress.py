import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_fixed

from ..errors import ApiError, ConnectivityError, ContentSourceError, GatewayError, NotFoundError
from ..schemas import ArticleIdentifier, CMSPost

logger = logging.getLogger(__name__)

USER_AGENT = "SEO-Blog-Checker/1.0.0"


def _failed_during_probe(exc: BaseException) -> bool:
    return isinstance(exc, ContentSourceError) and exc.during_probe


class WordPressClient:
    """Async client for the WordPress REST API (read only)."""

    def __init__(self, base_url: str, collection: str = "posts", timeout: float = 30.0,
                 max_retries: int = 3, retry_delay: float = 2.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.api_url = f"{self.base_url}/wp-json/wp/v2"
        self.collection = collection
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "WordPressClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self):
        await self.client.aclose()

    async def fetch_article(self, identifier: ArticleIdentifier) -> CMSPost:
        """
        Fetch a single post by slug or id.

        A connectivity probe runs before the real request. When the probe fails
        the whole fetch is retried after a fixed delay, up to ``max_retries``
        attempts, and the probe's own error is raised at the end. Errors from
        the real request are not retried.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception(_failed_during_probe),
            before_sleep=lambda state: logger.warning(
                f"⚠️ WordPress probe failed for '{identifier.value}' "
                f"(attempt {state.attempt_number}/{self.max_retries}): {state.outcome.exception()}"
            ),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._fetch_once(identifier)

    async def _fetch_once(self, identifier: ArticleIdentifier) -> CMSPost:
        await self.probe()

        if identifier.kind == "slug":
            url = f"{self.api_url}/{self.collection}"
            params = {"slug": identifier.value}
        elif identifier.kind == "id":
            url = f"{self.api_url}/{self.collection}/{identifier.value}"
            params = None
        else:
            raise ValueError(f"Invalid identifier type for WordPress: {identifier.kind}")

        logger.info(f"📡 Fetching {identifier.kind} '{identifier.value}' from WordPress")
        response = await self._get(url, params=params, identifier=identifier.value)
        try:
            data = response.json()
        except ValueError as e:
            raise ApiError(f"WordPress returned invalid JSON for '{identifier.value}'",
                           status_code=response.status_code, identifier=identifier.value) from e

        if identifier.kind == "slug":
            if not isinstance(data, list) or not data:
                raise NotFoundError(f"Post with slug '{identifier.value}' not found",
                                    identifier=identifier.value)
            # Take the first match
            data = data[0]

        return CMSPost.from_payload(data)

    async def probe(self) -> httpx.Response:
        """Lightweight GET against the API root."""
        return await self._get(f"{self.base_url}/wp-json/", identifier=self.base_url, during_probe=True)

    async def get_site_info(self) -> Dict[str, Any]:
        response = await self.probe()
        data = response.json()
        return {
            "name": data.get("name"),
            "description": data.get("description"),
            "url": data.get("url"),
            "version": data.get("version"),
        }

    async def test_connection(self) -> bool:
        try:
            await self.probe()
            return True
        except ContentSourceError as e:
            logger.error(f"WordPress API connection test failed: {e}")
            return False

    async def _get(self, url: str, params: Optional[Dict] = None, identifier: Optional[str] = None,
                   during_probe: bool = False) -> httpx.Response:
        try:
            response = await self.client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise ConnectivityError(f"Timed out contacting WordPress at {self.base_url}: {e}",
                                    identifier=identifier, during_probe=during_probe) from e
        except httpx.TransportError as e:
            raise ConnectivityError(f"Cannot connect to WordPress site at {self.base_url}: {e}",
                                    identifier=identifier, during_probe=during_probe) from e

        status = response.status_code
        if 200 <= status < 300:
            return response
        if status == 404 and not during_probe:
            raise NotFoundError(f"Post not found: {identifier}", identifier=identifier,
                                during_probe=during_probe)
        if status >= 500:
            raise GatewayError(f"WordPress API error ({status}): {response.reason_phrase}",
                               identifier=identifier, during_probe=during_probe)
        raise ApiError(f"WordPress API error ({status}): {response.reason_phrase}",
                       status_code=status, identifier=identifier, during_probe=during_probe)
