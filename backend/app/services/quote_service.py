"""Quote service wiring.

Builds the transport, token provider, cache and fetchers from configuration
and exposes the operations the API routes need:
- Single quotes (cached)
- Batch quotes with per-symbol failure isolation
- Closing-price history (cached)
- Upstream status for health checks
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .batch import BatchOrchestrator, BatchResult
from .chart_api import ChartEndpoint
from .config import ConfigService
from .history import HistoryFetcher, HistoryPoint, HistoryRange
from .quote_cache import DEFAULT_HISTORY_TTL_SECONDS, DEFAULT_QUOTE_TTL_SECONDS, TTLCache
from .quotes import QuoteFetcher, QuoteRecord
from .token_provider import TokenProvider
from .upstream import AiohttpTransport, UpstreamTransport

logger = logging.getLogger(__name__)


@dataclass
class QuoteServiceSettings:
    """Upstream endpoints and cache lifetimes."""
    cookie_url: str = "https://fc.yahoo.com"
    crumb_url: str = "https://query2.finance.yahoo.com/v1/test/getcrumb"
    chart_url: str = "https://query2.finance.yahoo.com/v8/finance/chart"
    user_agent: str = "Mozilla/5.0"
    request_timeout_seconds: Optional[float] = None
    max_auth_retries: int = 1
    quote_ttl_seconds: int = DEFAULT_QUOTE_TTL_SECONDS
    history_ttl_seconds: int = DEFAULT_HISTORY_TTL_SECONDS

    @classmethod
    def from_config(cls, config: ConfigService) -> "QuoteServiceSettings":
        defaults = cls()
        return cls(
            cookie_url=config.get("upstream.cookie_url", defaults.cookie_url),
            crumb_url=config.get("upstream.crumb_url", defaults.crumb_url),
            chart_url=config.get("upstream.chart_url", defaults.chart_url),
            user_agent=config.get("upstream.user_agent", defaults.user_agent),
            request_timeout_seconds=config.get(
                "upstream.request_timeout_seconds", defaults.request_timeout_seconds
            ),
            max_auth_retries=config.get("upstream.max_auth_retries", defaults.max_auth_retries),
            quote_ttl_seconds=config.get("cache.quote_ttl_seconds", defaults.quote_ttl_seconds),
            history_ttl_seconds=config.get("cache.history_ttl_seconds", defaults.history_ttl_seconds),
        )


class QuoteService:
    """Facade over the upstream access layer."""

    def __init__(
        self,
        settings: Optional[QuoteServiceSettings] = None,
        transport: Optional[UpstreamTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._transport_override = transport
        self.configure(settings or QuoteServiceSettings())

    def configure(self, settings: QuoteServiceSettings) -> None:
        """(Re)build all components from `settings`. Drops the cache and token."""
        self.settings = settings
        self.transport = self._transport_override or AiohttpTransport(
            timeout_seconds=settings.request_timeout_seconds
        )
        self.tokens = TokenProvider(
            self.transport,
            cookie_url=settings.cookie_url,
            crumb_url=settings.crumb_url,
            user_agent=settings.user_agent,
        )
        chart = ChartEndpoint(self.transport, settings.chart_url, user_agent=settings.user_agent)
        self.cache = TTLCache(default_ttl_seconds=settings.quote_ttl_seconds, clock=self._clock)
        self.quotes = QuoteFetcher(self.tokens, chart, max_auth_retries=settings.max_auth_retries)
        self.history = HistoryFetcher(
            self.tokens, chart, self.cache, ttl_seconds=settings.history_ttl_seconds
        )
        self.batch = BatchOrchestrator(self.quotes, self.cache, ttl_seconds=settings.quote_ttl_seconds)

    async def start(self) -> bool:
        """Acquire a token ahead of the first request. Failure is not fatal."""
        ok = await self.tokens.refresh()
        if not ok:
            logger.warning("Startup crumb acquisition failed; will retry on demand")
        return ok

    async def close(self) -> None:
        await self.transport.close()

    async def get_quote(self, symbol: str) -> QuoteRecord:
        return await self.batch.get_quote(symbol)

    async def get_batch(self, symbols: Any) -> BatchResult:
        return await self.batch.fetch_batch(symbols)

    async def get_history(self, symbol: str, range_: HistoryRange = HistoryRange.ONE_DAY) -> List[HistoryPoint]:
        return await self.history.fetch(symbol, range_)

    def get_status(self) -> Dict[str, Any]:
        """Token readiness and cache size for the health endpoint."""
        token_age = None
        if self.tokens.acquired_at:
            token_age = int((datetime.now(timezone.utc) - self.tokens.acquired_at).total_seconds())

        return {
            "crumb_ready": self.tokens.get() is not None,
            "token_age_seconds": token_age,
            "last_error": self.tokens.last_error,
            "cached_entries": len(self.cache),
        }


# Global instance
quote_service = QuoteService()


def get_quote_service() -> QuoteService:
    """Dependency for getting the quote service."""
    return quote_service
