"""Real-time quote fetching and normalization."""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from .chart_api import (
    AUTH_FAILURE_STATUSES,
    AuthUnavailable,
    ChartEndpoint,
    MalformedResponse,
    UpstreamError,
    extract_chart_result,
    first_quote_series,
)
from .token_provider import TokenProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteRecord:
    """Normalized quote for one symbol."""
    price: float
    change: float
    changePercent: float
    high: float
    low: float
    open: float
    previousClose: float
    isUp: bool
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _utc_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _present(values: Optional[Iterable[Any]]) -> list:
    return [v for v in (values or []) if v is not None]


def _first_truthy(*values: Any) -> Optional[float]:
    # Zero closes are treated as missing, same as absent ones
    for value in values:
        if value:
            return value
    return None


def build_quote_record(result: Dict[str, Any], now: Optional[datetime] = None) -> QuoteRecord:
    """Turn a chart result into a QuoteRecord.

    Args:
        result: The `chart.result[0]` object from upstream
        now: Parse time, defaults to the current UTC time

    Raises:
        MalformedResponse: If the meta block or current price is missing.
    """
    meta = result.get("meta")
    if not isinstance(meta, dict) or meta.get("regularMarketPrice") is None:
        raise MalformedResponse("Chart response has no regularMarketPrice")

    price = float(meta["regularMarketPrice"])
    series = first_quote_series(result)

    prev_close = _first_truthy(meta.get("chartPreviousClose"), meta.get("previousClose"), price)
    prev_close = float(prev_close) if prev_close is not None else price

    highs = _present(series.get("high"))
    lows = _present(series.get("low"))
    opens = _present(series.get("open"))

    high = meta.get("regularMarketDayHigh") or (max(highs) if highs else price)
    low = meta.get("regularMarketDayLow") or (min(lows) if lows else price)
    open_ = opens[0] if opens else price

    change = price - prev_close
    change_percent = (change / prev_close) * 100 if prev_close else 0.0

    return QuoteRecord(
        price=price,
        change=change,
        changePercent=change_percent,
        high=float(high),
        low=float(low),
        open=float(open_),
        previousClose=prev_close,
        isUp=price >= prev_close,
        timestamp=_utc_timestamp(now),
    )


class QuoteFetcher:
    """Fetches single quotes, refreshing the session token on 401/403."""

    def __init__(self, tokens: TokenProvider, chart: ChartEndpoint, max_auth_retries: int = 1):
        self.tokens = tokens
        self.chart = chart
        self.max_auth_retries = max_auth_retries

    async def fetch(self, symbol: str) -> QuoteRecord:
        """Fetch a fresh quote for `symbol`.

        Raises:
            AuthUnavailable: No token, or upstream still rejects it after the retry cap.
            UpstreamError: Upstream answered with another non-success status.
            MalformedResponse: The payload could not be parsed.
        """
        attempt = 0
        while True:
            token = await self.tokens.ensure()
            if token is None:
                raise AuthUnavailable()

            response = await self.chart.request(symbol, "1d", "1d", token)
            if response.status not in AUTH_FAILURE_STATUSES:
                break

            if attempt >= self.max_auth_retries:
                raise AuthUnavailable(
                    f"Upstream rejected crumb for {symbol} after {attempt} refresh(es): {response.status}"
                )
            attempt += 1
            logger.info(f"Crumb expired ({response.status}), refreshing...")
            await self.tokens.refresh()

        if not response.ok:
            raise UpstreamError(response.status)

        return build_quote_record(extract_chart_result(response))
