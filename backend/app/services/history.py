"""Closing-price history for charting."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Union

from .chart_api import (
    AuthUnavailable,
    ChartEndpoint,
    UpstreamError,
    extract_chart_result,
    first_quote_series,
)
from .quote_cache import DEFAULT_HISTORY_TTL_SECONDS, TTLCache, history_key
from .token_provider import TokenProvider

logger = logging.getLogger(__name__)


class HistoryRange(str, Enum):
    """Supported history windows."""
    ONE_DAY = "1d"
    FIVE_DAYS = "5d"
    ONE_MONTH = "1mo"
    THREE_MONTHS = "3mo"
    SIX_MONTHS = "6mo"
    ONE_YEAR = "1y"


# Ranges not listed here are sampled daily
RANGE_INTERVALS = {
    HistoryRange.ONE_DAY: "5m",
    HistoryRange.FIVE_DAYS: "15m",
}


def interval_for_range(range_: Union[HistoryRange, str]) -> str:
    """Return the upstream sampling interval for a history range."""
    try:
        range_ = HistoryRange(range_)
    except ValueError:
        return "1d"
    return RANGE_INTERVALS.get(range_, "1d")


@dataclass(frozen=True)
class HistoryPoint:
    """One closing price at an epoch-second timestamp."""
    time: int
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "price": self.price}


def build_history(result: Dict[str, Any]) -> List[HistoryPoint]:
    """Zip upstream timestamps with closes, dropping points without a price."""
    timestamps = result.get("timestamp") or []
    closes = first_quote_series(result).get("close") or []

    points = []
    for i, ts in enumerate(timestamps):
        price = closes[i] if i < len(closes) else None
        if ts is None or price is None:
            continue
        points.append(HistoryPoint(time=int(ts), price=float(price)))
    return points


class HistoryFetcher:
    """Read-through history lookups keyed by symbol and range."""

    def __init__(
        self,
        tokens: TokenProvider,
        chart: ChartEndpoint,
        cache: TTLCache,
        ttl_seconds: float = DEFAULT_HISTORY_TTL_SECONDS,
    ):
        self.tokens = tokens
        self.chart = chart
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def fetch(self, symbol: str, range_: Union[HistoryRange, str] = HistoryRange.ONE_DAY) -> List[HistoryPoint]:
        """Return the history for `symbol`, from cache when still fresh."""
        range_ = HistoryRange(range_)
        return await self.cache.get_or_fetch(
            history_key(symbol, range_.value),
            lambda: self._fetch_uncached(symbol, range_),
            self.ttl_seconds,
        )

    async def _fetch_uncached(self, symbol: str, range_: HistoryRange) -> List[HistoryPoint]:
        token = await self.tokens.ensure()
        if token is None:
            raise AuthUnavailable()

        interval = interval_for_range(range_)
        response = await self.chart.request(symbol, range_.value, interval, token)
        if not response.ok:
            raise UpstreamError(response.status, label="Upstream chart API")

        points = build_history(extract_chart_result(response))
        logger.debug(f"Fetched {len(points)} history points for {symbol} ({range_.value}/{interval})")
        return points
