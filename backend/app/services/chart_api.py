"""Access to the upstream v8 chart endpoint shared by quote and history fetchers."""

import logging
from typing import Any, Dict
from urllib.parse import quote

from .token_provider import SessionToken
from .upstream import TransportError, UpstreamResponse, UpstreamTransport

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)


class FetchError(Exception):
    """Base class for quote and history fetch failures."""


class AuthUnavailable(FetchError):
    """Raised when no usable session token could be obtained."""

    def __init__(self, message: str = "Cannot acquire upstream crumb"):
        super().__init__(message)


class UpstreamError(FetchError):
    """Raised when upstream answers with a non-success status."""

    def __init__(self, status: int, label: str = "Upstream API"):
        self.status = status
        super().__init__(f"{label} error {status}")


class MalformedResponse(FetchError):
    """Raised when a chart payload lacks the fields we need."""


class ChartEndpoint:
    """Builds and issues chart requests for a symbol."""

    def __init__(self, transport: UpstreamTransport, chart_url: str, user_agent: str = "Mozilla/5.0"):
        self.transport = transport
        self.chart_url = chart_url.rstrip("/")
        self.user_agent = user_agent

    def url_for(self, symbol: str) -> str:
        return f"{self.chart_url}/{quote(symbol, safe='')}"

    async def request(
        self, symbol: str, range_: str, interval: str, token: SessionToken
    ) -> UpstreamResponse:
        """Request chart data for `symbol` using the given session token."""
        params = {"range": range_, "interval": interval, "crumb": token.crumb}
        headers = {"Cookie": token.cookie_header, "User-Agent": self.user_agent}
        try:
            return await self.transport.get(self.url_for(symbol), params=params, headers=headers)
        except TransportError as e:
            raise FetchError(f"Upstream request failed: {e}") from e


def extract_chart_result(response: UpstreamResponse) -> Dict[str, Any]:
    """Return `chart.result[0]` from a successful chart response.

    Raises:
        MalformedResponse: If the body is not JSON or has no result.
    """
    try:
        payload = response.json()
    except ValueError as e:
        raise MalformedResponse(f"Chart response is not valid JSON: {e}") from e

    chart = payload.get("chart") if isinstance(payload, dict) else None
    if not isinstance(chart, dict):
        raise MalformedResponse("Chart response has no 'chart' object")

    results = chart.get("result")
    if not results or not isinstance(results[0], dict):
        error = chart.get("error") or {}
        description = error.get("description") if isinstance(error, dict) else None
        raise MalformedResponse(description or "Chart response has no result")

    return results[0]


def first_quote_series(result: Dict[str, Any]) -> Dict[str, Any]:
    """Return `indicators.quote[0]`, or an empty dict when absent."""
    indicators = result.get("indicators") or {}
    series = indicators.get("quote") or []
    if series and isinstance(series[0], dict):
        return series[0]
    return {}
