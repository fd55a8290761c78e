"""HTTP page fetching for search backends and candidate pages."""

from __future__ import annotations

import asyncio
import logging
import random
import socket
import ssl
from typing import Protocol

import httpx

from .errors import FetchError, FetchErrorCategory

logger = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; rv:128.0) Gecko/20100101 Firefox/128.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:115.0) Gecko/20100101 Firefox/115.0",
    "Mozilla/5.0 (Android 10; Mobile; rv:91.0) Gecko/91.0 Firefox/91.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

MAX_REDIRECTS = 5
RETRY_DELAY_SECONDS = 0.5


class Fetcher(Protocol):
    """Anything that can turn a URL into HTML."""

    async def fetch(self, url: str, timeout: float) -> str:
        raise NotImplementedError

    async def close(self) -> None:
        return


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def classify_error(exc: BaseException) -> FetchErrorCategory:
    """Map an httpx/transport exception to a fetch error category."""
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return FetchErrorCategory.TIMEOUT

    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and len(chain) < 8:
        chain.append(current)
        current = current.__cause__ or current.__context__

    for err in chain:
        if isinstance(err, ssl.SSLError):
            return FetchErrorCategory.TLS_ERROR
        if isinstance(err, socket.gaierror):
            return FetchErrorCategory.HOST_NOT_FOUND
        if isinstance(err, ConnectionRefusedError):
            return FetchErrorCategory.CONNECTION_REFUSED

    message = " ".join(str(err) for err in chain).lower()
    if "ssl" in message or "certificate" in message:
        return FetchErrorCategory.TLS_ERROR
    if "refused" in message:
        return FetchErrorCategory.CONNECTION_REFUSED
    if (
        "name or service not known" in message
        or "nodename nor servname" in message
        or "getaddrinfo" in message
        or "host unreachable" in message
    ):
        return FetchErrorCategory.HOST_NOT_FOUND
    return FetchErrorCategory.OTHER


_CATEGORY_MESSAGES = {
    FetchErrorCategory.TIMEOUT: "Timeout",
    FetchErrorCategory.CONNECTION_REFUSED: "Connection refused",
    FetchErrorCategory.HOST_NOT_FOUND: "Host not found",
    FetchErrorCategory.TLS_ERROR: "SSL error",
}


class HttpFetcher:
    """httpx-backed fetcher with rotating user agents and an optional Tor proxy for .onion hosts."""

    def __init__(
        self,
        *,
        onion_proxy: str = "",
        retries: int = 1,
        verify_tls: bool = False,
        user_agent: str | None = None,
    ):
        self._onion_proxy = onion_proxy.strip()
        self._retries = max(0, int(retries))
        self._verify_tls = verify_tls
        self._user_agent = user_agent
        self._client: httpx.AsyncClient | None = None

    def _build_client(self) -> httpx.AsyncClient:
        mounts: dict[str, httpx.AsyncBaseTransport] = {}
        if self._onion_proxy:
            mounts["all://*.onion"] = httpx.AsyncHTTPTransport(proxy=self._onion_proxy)
        return httpx.AsyncClient(
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            verify=self._verify_tls,
            mounts=mounts or None,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = self._build_client()
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _fetch_once(self, url: str, timeout: float) -> str:
        client = await self._get_client()
        headers = {"User-Agent": self._user_agent or random_user_agent()}
        try:
            resp = await client.get(url, headers=headers, timeout=timeout)
        except httpx.HTTPError as exc:
            category = classify_error(exc)
            message = _CATEGORY_MESSAGES.get(category) or str(exc) or exc.__class__.__name__
            raise FetchError(message, url=url, category=category) from exc

        if resp.status_code >= 400:
            raise FetchError(
                f"HTTP {resp.status_code}",
                url=url,
                category=FetchErrorCategory.HTTP_STATUS,
                status_code=resp.status_code,
            )
        return resp.text

    async def fetch(self, url: str, timeout: float = 10.0) -> str:
        """Fetch ``url`` and return the decoded body, raising :class:`FetchError` on failure."""
        for attempt in range(self._retries + 1):
            try:
                return await self._fetch_once(url, timeout)
            except FetchError as exc:
                if attempt >= self._retries:
                    raise
                logger.debug("Fetch attempt %d for %s failed (%s); retrying", attempt + 1, url, exc)
                await asyncio.sleep(RETRY_DELAY_SECONDS)
        raise FetchError("no fetch attempts made", url=url)
