"""
Source adapter contract for GapCube.

Every bibliographic provider is wrapped in a SourceAdapter. The sampler only
ever calls `search(query, limit)` and never looks at which provider it is
talking to.

Contract:
- `search` is async and never raises: failures are logged and yield []
- each adapter owns its RateLimiter and cache
- each HTTP request carries a bounded timeout
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from gapcube.config import config
from gapcube.models import Document
from gapcube.sources.cache import ApiCache
from gapcube.sources.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

USER_AGENT = "GapCube/1.0"
MAX_RETRIES = 2


class RateLimitedError(Exception):
    """HTTP 429 from the provider; retried with backoff."""


class SourceAdapter(ABC):
    """Boundary abstraction for one external data provider."""

    name: str = "source"

    @abstractmethod
    async def search(self, query: str, limit: int) -> list[Document]:
        """Return up to `limit` normalized documents. Must not raise."""

    async def aclose(self) -> None:
        """Release network resources (no-op by default)."""


@dataclass
class SourceRequest:
    """One HTTP GET to issue for a search."""

    url: str
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


class HttpSourceAdapter(SourceAdapter):
    """
    Shared plumbing for HTTP providers.

    search():
    1. Cache lookup (per query + limit)
    2. Throttle through the adapter's RateLimiter
    3. GET with bounded timeout, retrying HTTP 429 and transport errors
    4. parse_response() into Documents
    5. Cache store

    Subclasses implement build_request() and parse_response().
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        cache: Optional[ApiCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        max_retries: int = MAX_RETRIES,
        retry_backoff: float = 2.0,
    ):
        """
        Args:
            rate_limiter: Limiter owned by this source
            cache: Response cache (None disables caching)
            client: Shared httpx client (created lazily if None)
            timeout: Per-request timeout in seconds
            max_retries: Retries after the first attempt
            retry_backoff: Linear back-off step in seconds
        """
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT_SECONDS
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy load the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": f"{USER_AGENT} (mailto:{config.CONTACT_EMAIL})"},
            )
        return self._client

    @abstractmethod
    def build_request(self, query: str, limit: int) -> SourceRequest:
        """Translate a search into one HTTP request."""

    @abstractmethod
    def parse_response(self, payload: Any) -> list[Document]:
        """Translate a decoded response body into Documents."""

    def decode(self, response: httpx.Response) -> Any:
        """Decode a response body (JSON by default)."""
        return response.json()

    def cache_key(self, query: str, limit: int) -> str:
        digest = hashlib.sha1(query.strip().lower().encode("utf-8")).hexdigest()[:16]
        return f"{self.name}:search:{digest}:{limit}"

    async def search(self, query: str, limit: int) -> list[Document]:
        key = self.cache_key(query, limit)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"[{self.name}] cache hit for {query!r}")
                return [Document.from_dict(d) for d in cached]

        try:
            request = self.build_request(query, limit)
            payload = await self._fetch(request)
            if payload is None:
                return []
            documents = self.parse_response(payload)[:limit]
        except Exception as e:
            logger.warning(f"[{self.name}] search failed for {query[:50]!r}: {e}")
            return []

        if self.cache is not None:
            self.cache.set(key, [d.to_dict() for d in documents])

        logger.debug(f"[{self.name}] {len(documents)} documents for {query[:50]!r}")
        return documents

    async def _fetch(self, request: SourceRequest) -> Optional[Any]:
        """GET with retries. Returns decoded payload, or None after giving up."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries + 1),
                retry=retry_if_exception_type((httpx.TransportError, RateLimitedError)),
                wait=wait_incrementing(start=self.retry_backoff, increment=self.retry_backoff),
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    async with self.rate_limiter:
                        response = await self.client.get(
                            request.url,
                            params=request.params,
                            headers=request.headers,
                            timeout=self.timeout,
                        )
                    if response.status_code == 429:
                        raise RateLimitedError("rate limited (HTTP 429)")
        except (httpx.TransportError, RateLimitedError) as e:
            logger.error(f"[{self.name}] giving up after {self.max_retries + 1} attempts: {e}")
            return None

        if response.is_error:
            logger.error(f"[{self.name}] HTTP {response.status_code}: {request.url[:150]}")
            return None
        return self.decode(response)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.info(
            f"[{self.name}] {error}, retry {retry_state.attempt_number}/{self.max_retries} "
            f"in {wait:.1f}s"
        )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
