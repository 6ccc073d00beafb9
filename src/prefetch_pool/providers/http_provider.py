"""
HTTP Fetch Provider

Fetches one JSON item per request from a URL built from the pool key.
"""

import logging
from typing import Any, Dict, Optional

import aiohttp

from prefetch_pool.core.errors import ErrorCode, FetchError
from prefetch_pool.providers.base import FetchProvider

logger = logging.getLogger(__name__)


class HttpFetchProvider(FetchProvider):
    """
    GETs `url_template.format(key=key)` and returns the decoded JSON body

    A non-2xx status or a connection error is a fetch failure. An empty or
    null body is returned as None, which the scheduler treats as a failure.
    """

    def __init__(
        self,
        url_template: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
        provider_id: str = "http"
    ):
        super().__init__(provider_id)
        if "{key}" not in url_template:
            raise ValueError("url_template must contain a {key} placeholder")

        self.url_template = url_template
        self.headers = headers or {}
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            logger.info(f"HTTP provider {self.provider_id} ready for {self.url_template}")

    async def shutdown(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    def url_for(self, key: str) -> str:
        return self.url_template.format(key=key)

    async def fetch(self, key: str) -> Any:
        if self.session is None:
            await self.initialize()

        url = self.url_for(key)
        self.request_count += 1

        try:
            async with self.session.get(url) as response:
                if response.status < 200 or response.status >= 300:
                    self.error_count += 1
                    body = await response.text()
                    raise FetchError(
                        f"HTTP {response.status} from {url}",
                        key=key,
                        code=ErrorCode.FETCH_HTTP_ERROR,
                        data={"status": response.status, "body": body[:200]}
                    )
                # Empty body decodes to None
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            self.error_count += 1
            raise FetchError(f"Request to {url} failed: {e}", key=key, cause=e)
