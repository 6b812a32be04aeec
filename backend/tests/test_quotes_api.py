"""Tests for the quote, batch and history endpoints."""

import pytest

from app.services.upstream import UpstreamResponse

from conftest import chart_response


@pytest.mark.asyncio
async def test_get_quote(client, fake_transport):
    """Test getting a single quote."""
    fake_transport.chart_responses["AAPL"] = [chart_response(price=105.0, chart_previous_close=100.0)]

    response = await client.get("/api/quote/AAPL")
    assert response.status_code == 200
    data = response.json()

    assert data["price"] == 105.0
    assert data["previousClose"] == 100.0
    assert data["change"] == 5.0
    assert data["changePercent"] == pytest.approx(5.0)
    assert data["isUp"] is True
    assert data["timestamp"].endswith("Z")


@pytest.mark.asyncio
async def test_get_quote_is_cached(client, fake_transport):
    fake_transport.chart_responses["AAPL"] = [chart_response()]

    first = await client.get("/api/quote/AAPL")
    second = await client.get("/api/quote/AAPL")

    assert first.json() == second.json()
    assert len(fake_transport.chart_calls) == 1


@pytest.mark.asyncio
async def test_get_quote_failure_returns_error_json(client, fake_transport):
    fake_transport.chart_responses["AAPL"] = [UpstreamResponse(status=503)]

    response = await client.get("/api/quote/AAPL")

    assert response.status_code == 500
    assert response.json() == {"error": "Upstream API error 503"}


@pytest.mark.asyncio
async def test_get_quote_without_crumb(client, fake_transport):
    fake_transport.crumb_responses = [UpstreamResponse(status=401)]

    response = await client.get("/api/quote/AAPL")

    assert response.status_code == 500
    assert response.json() == {"error": "Cannot acquire upstream crumb"}


@pytest.mark.asyncio
async def test_batch(client, fake_transport):
    """Test batch quotes with one failing symbol."""
    fake_transport.chart_responses["GOOD"] = [chart_response(price=50.0, chart_previous_close=40.0)]
    fake_transport.chart_responses["BAD"] = [UpstreamResponse(status=500)]

    response = await client.post("/api/batch", json={"symbols": ["GOOD", "BAD"]})
    assert response.status_code == 200
    data = response.json()

    assert data["GOOD"]["price"] == 50.0
    assert data["GOOD"]["changePercent"] == pytest.approx(25.0)
    assert data["BAD"] == {"error": "Upstream API error 500"}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"symbols": []},
    {"symbols": "AAPL"},
    {},
    ["AAPL"],
])
async def test_batch_rejects_invalid_body(client, fake_transport, body):
    response = await client.post("/api/batch", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "symbols must be a non-empty array"}
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_batch_rejects_non_json_body(client, fake_transport):
    response = await client.post(
        "/api/batch", content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "symbols must be a non-empty array"}


@pytest.mark.asyncio
async def test_history_defaults_to_one_day(client, fake_transport):
    fake_transport.chart_responses["AAPL"] = [
        chart_response(timestamps=[1, 2, 3], closes=[10, None, 12])
    ]

    response = await client.get("/api/history/AAPL")
    assert response.status_code == 200
    assert response.json() == [{"time": 1, "price": 10.0}, {"time": 3, "price": 12.0}]

    params = fake_transport.chart_calls[0].params
    assert params["range"] == "1d"
    assert params["interval"] == "5m"


@pytest.mark.asyncio
async def test_history_with_range(client, fake_transport):
    fake_transport.chart_responses["MSFT"] = [chart_response(timestamps=[1], closes=[3.0])]

    response = await client.get("/api/history/MSFT", params={"range": "1y"})

    assert response.status_code == 200
    assert fake_transport.chart_calls[0].params["interval"] == "1d"


@pytest.mark.asyncio
async def test_history_rejects_unknown_range(client, fake_transport):
    response = await client.get("/api/history/AAPL", params={"range": "10y"})

    assert response.status_code == 400
    assert "range must be one of" in response.json()["error"]
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_history_failure_returns_error_json(client, fake_transport):
    fake_transport.chart_responses["AAPL"] = [UpstreamResponse(status=404)]

    response = await client.get("/api/history/AAPL")

    assert response.status_code == 500
    assert response.json() == {"error": "Upstream chart API error 404"}
