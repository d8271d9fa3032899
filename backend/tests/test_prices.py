from __future__ import annotations

import asyncio

import httpx
import pytest

from ingestion.prices import fetch_sol_price


def _price(test_settings, handler):
    return asyncio.run(
        fetch_sol_price(settings=test_settings, transport=httpx.MockTransport(handler))
    )


def test_fetch_sol_price_reads_quote(test_settings):
    price = _price(test_settings, lambda request: httpx.Response(200, json={"solana": {"usd": 142.5}}))

    assert price == pytest.approx(142.5)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500),
        httpx.Response(200, json={"bitcoin": {"usd": 1}}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"solana": {"usd": 0}}),
    ],
)
def test_fetch_sol_price_falls_back(test_settings, response):
    assert _price(test_settings, lambda request: response) == pytest.approx(180.0)


def test_fetch_sol_price_falls_back_on_transport_error(test_settings):
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    assert _price(test_settings, handler) == pytest.approx(180.0)
