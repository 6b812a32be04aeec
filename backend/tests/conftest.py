"""Pytest configuration and fixtures."""

import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import unquote

import pytest
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.services.quote_service import QuoteService, QuoteServiceSettings, get_quote_service
from app.services.upstream import UpstreamResponse, UpstreamTransport


SETTINGS = QuoteServiceSettings(
    cookie_url="https://cookies.test",
    crumb_url="https://api.test/v1/test/getcrumb",
    chart_url="https://api.test/v8/finance/chart",
)


@dataclass
class RecordedCall:
    """A request seen by the fake transport."""
    url: str
    params: Dict[str, str]
    headers: Dict[str, str]
    allow_redirects: bool


@dataclass
class FakeTransport(UpstreamTransport):
    """In-memory stand-in for the upstream provider.

    Queued responses are served in order; the last one repeats.
    """
    set_cookies: List[str] = field(
        default_factory=lambda: ["A3=d=abc; Expires=Wed, 01 Jan 2031 00:00:00 GMT; Path=/", "B=xyz; Domain=.test"]
    )
    crumb_responses: List[UpstreamResponse] = field(
        default_factory=lambda: [UpstreamResponse(status=200, text="crumb-1")]
    )
    chart_responses: Dict[str, List[UpstreamResponse]] = field(default_factory=dict)
    calls: List[RecordedCall] = field(default_factory=list)
    closed: bool = False

    @staticmethod
    def _next(queue: List[UpstreamResponse]) -> UpstreamResponse:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def get(self, url, params=None, headers=None, allow_redirects=True):
        self.calls.append(RecordedCall(url, dict(params or {}), dict(headers or {}), allow_redirects))

        if url == SETTINGS.cookie_url:
            return UpstreamResponse(status=302, set_cookies=list(self.set_cookies))
        if url == SETTINGS.crumb_url:
            return self._next(self.crumb_responses)
        if url.startswith(SETTINGS.chart_url + "/"):
            symbol = unquote(url.rsplit("/", 1)[1])
            queue = self.chart_responses.get(symbol)
            if queue:
                return self._next(queue)
            return UpstreamResponse(status=404, text=json.dumps({"chart": {"result": None}}))
        raise AssertionError(f"Unexpected upstream URL {url}")

    async def close(self):
        self.closed = True

    def calls_to(self, prefix: str) -> List[RecordedCall]:
        return [c for c in self.calls if c.url.startswith(prefix)]

    @property
    def crumb_calls(self) -> List[RecordedCall]:
        return self.calls_to(SETTINGS.crumb_url)

    @property
    def chart_calls(self) -> List[RecordedCall]:
        return self.calls_to(SETTINGS.chart_url)


def chart_response(
    price: Optional[float] = 105.0,
    chart_previous_close: Optional[float] = 100.0,
    previous_close: Optional[float] = None,
    day_high: Optional[float] = None,
    day_low: Optional[float] = None,
    timestamps: Optional[list] = None,
    opens: Optional[list] = None,
    highs: Optional[list] = None,
    lows: Optional[list] = None,
    closes: Optional[list] = None,
    status: int = 200,
) -> UpstreamResponse:
    """Build an upstream chart response."""
    meta = {"symbol": "TEST", "currency": "USD"}
    if price is not None:
        meta["regularMarketPrice"] = price
    if chart_previous_close is not None:
        meta["chartPreviousClose"] = chart_previous_close
    if previous_close is not None:
        meta["previousClose"] = previous_close
    if day_high is not None:
        meta["regularMarketDayHigh"] = day_high
    if day_low is not None:
        meta["regularMarketDayLow"] = day_low

    quote = {}
    for key, values in (("open", opens), ("high", highs), ("low", lows), ("close", closes)):
        if values is not None:
            quote[key] = values

    result = {"meta": meta, "indicators": {"quote": [quote]}}
    if timestamps is not None:
        result["timestamp"] = timestamps

    return UpstreamResponse(status=status, text=json.dumps({"chart": {"result": [result], "error": None}}))


@pytest.fixture
def fake_transport():
    """Fake upstream with a working cookie/crumb handshake."""
    return FakeTransport()


@pytest.fixture
def clock():
    """Manually advanced monotonic clock: clock.now += 31."""
    class ManualClock:
        now = 1000.0

        def __call__(self):
            return self.now

    return ManualClock()


@pytest.fixture
def service(fake_transport, clock):
    """Quote service wired to the fake upstream."""
    return QuoteService(settings=SETTINGS, transport=fake_transport, clock=clock)


@pytest.fixture(scope="function")
async def client(service):
    """Create test client backed by the fake quote service."""
    app.dependency_overrides[get_quote_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
