"""HTTP transport used to reach the upstream quote provider.

The fetchers only need a small slice of HTTP: a GET with query parameters and
headers, the response status, the body text and any Set-Cookie values. That
slice is captured by UpstreamTransport so tests can swap in a fake.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when the upstream could not be reached at all."""


@dataclass
class UpstreamResponse:
    """Subset of an HTTP response the fetchers care about."""
    status: int
    text: str = ""
    set_cookies: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.text)


class UpstreamTransport(ABC):
    """Base class for upstream HTTP transports."""

    @abstractmethod
    async def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        allow_redirects: bool = True,
    ) -> UpstreamResponse:
        """Issue a GET request and return the buffered response."""
        pass

    async def close(self) -> None:
        """Release any pooled connections."""
        return None


class AiohttpTransport(UpstreamTransport):
    """Transport backed by a shared aiohttp session.

    Cookies are passed explicitly by the token provider, so the session uses a
    dummy cookie jar and never stores what upstream sends back.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        """Initialize the transport.

        Args:
            timeout_seconds: Total per-request timeout. None disables it.
        """
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                cookie_jar=aiohttp.DummyCookieJar(),
            )
        return self._session

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        allow_redirects: bool = True,
    ) -> UpstreamResponse:
        session = self._get_session()
        try:
            async with session.get(
                url, params=params, headers=headers, allow_redirects=allow_redirects
            ) as resp:
                text = await resp.text(errors="replace")
                return UpstreamResponse(
                    status=resp.status,
                    text=text,
                    set_cookies=resp.headers.getall("Set-Cookie", []),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Upstream request to {url} failed: {e!r}")
            raise TransportError(str(e) or type(e).__name__) from e

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
