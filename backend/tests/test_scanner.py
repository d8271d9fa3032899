from __future__ import annotations

import asyncio

import pytest

from conftest import BATTLE_ADDRESS, VAULT_ADDRESS, transfer_record
from ingestion.client import UpstreamError
from ingestion.scanner import TransferLedgerScanner, classify_transfer, split_volume

LAMPORTS = 1_000_000_000


class FakeFeed:
    """Serves canned pages and records every request."""

    def __init__(self, pages, *, fail_on_call: int | None = None):
        self.pages = list(pages)
        self.calls: list[dict[str, object]] = []
        self.fail_on_call = fail_on_call

    async def __call__(self, address, *, limit, before=None):
        self.calls.append({"address": address, "limit": limit, "before": before})
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise UpstreamError("transactions failed: ReadTimeout")
        if not self.pages:
            return []
        return self.pages.pop(0)


def _buy_page(start: int, count: int, lamports: int = LAMPORTS):
    return [
        transfer_record(f"sig-{index}", [(f"trader-{index % 7}", VAULT_ADDRESS, lamports)])
        for index in range(start, start + count)
    ]


def _scan(feed, settings, balances=(10.0, 4.0)):
    scanner = TransferLedgerScanner(feed, settings=settings)
    return asyncio.run(scanner.scan(BATTLE_ADDRESS, VAULT_ADDRESS, *balances))


def test_classify_transfer_directions():
    buy = {"fromUserAccount": "wallet", "toUserAccount": VAULT_ADDRESS, "amount": 1}
    sell = {"fromUserAccount": BATTLE_ADDRESS, "toUserAccount": "wallet", "amount": 1}
    unrelated = {"fromUserAccount": "x", "toUserAccount": "y", "amount": 1}

    assert classify_transfer(buy, BATTLE_ADDRESS, VAULT_ADDRESS) == ("BUY", "wallet")
    assert classify_transfer(sell, BATTLE_ADDRESS, VAULT_ADDRESS) == ("SELL", "wallet")
    assert classify_transfer(unrelated, BATTLE_ADDRESS, VAULT_ADDRESS) is None


def test_scan_stops_after_short_page(test_settings):
    feed = FakeFeed([_buy_page(0, 50), _buy_page(50, 30)])

    attribution = _scan(feed, test_settings)

    assert len(feed.calls) == 2
    assert feed.calls[0] == {"address": BATTLE_ADDRESS, "limit": 50, "before": None}
    assert feed.calls[1]["before"] == "sig-49"
    assert attribution.trade_count == 80
    assert attribution.total_volume == pytest.approx(80.0)
    assert attribution.unique_traders == 7
    assert attribution.complete is True


def test_scan_respects_max_records(test_settings):
    feed = FakeFeed([_buy_page(0, 50), _buy_page(50, 50), _buy_page(100, 50)])

    attribution = _scan(feed, test_settings)

    assert len(feed.calls) == 2
    assert attribution.trade_count == 100


def test_scan_stops_on_empty_page(test_settings):
    feed = FakeFeed([])

    attribution = _scan(feed, test_settings)

    assert len(feed.calls) == 1
    assert attribution.trade_count == 0
    assert attribution.volume_a == 0
    assert attribution.volume_b == 0


def test_recent_trades_are_capped_in_feed_order(test_settings):
    feed = FakeFeed([_buy_page(0, 50)])

    attribution = _scan(feed, test_settings)

    assert len(attribution.recent_trades) == 20
    assert attribution.recent_trades[0].signature == "sig-0"
    assert attribution.recent_trades[-1].signature == "sig-19"
    first = attribution.recent_trades[0]
    assert first.direction == "BUY"
    assert first.side == "Unknown"
    assert first.timestamp == 1_700_000_100_000


def test_volume_split_sums_to_total(test_settings):
    feed = FakeFeed([_buy_page(0, 12, lamports=250_000_000)])

    attribution = _scan(feed, test_settings, balances=(3.0, 1.0))

    assert attribution.total_volume == pytest.approx(3.0)
    assert attribution.volume_a == pytest.approx(2.25)
    assert attribution.volume_a + attribution.volume_b == pytest.approx(attribution.total_volume)


def test_sells_and_trader_flows_are_tracked(test_settings):
    page = [
        transfer_record("buy", [("alice", VAULT_ADDRESS, 2 * LAMPORTS)]),
        transfer_record("sell", [(VAULT_ADDRESS, "alice", LAMPORTS // 2)]),
        transfer_record("noise", [("bob", "carol", 5 * LAMPORTS)]),
        transfer_record("zero", [("dave", VAULT_ADDRESS, 0)]),
    ]
    feed = FakeFeed([page])

    attribution = _scan(feed, test_settings)

    assert attribution.trade_count == 2
    assert [trade.direction for trade in attribution.recent_trades] == ["BUY", "SELL"]
    flow = attribution.trader_flows["alice"]
    assert flow.invested == pytest.approx(2.0)
    assert flow.payout == pytest.approx(0.5)
    assert "bob" not in attribution.trader_flows


def test_fetch_failure_returns_partial_results(test_settings):
    feed = FakeFeed([_buy_page(0, 50), _buy_page(50, 50)], fail_on_call=2)

    attribution = _scan(feed, test_settings)

    assert attribution.complete is False
    assert attribution.trade_count == 50


def test_split_volume_strategies():
    assert split_volume(10.0, 0.0, 0.0) == (0.0, 10.0)
    volume_a, volume_b = split_volume(10.0, 1.0, 1.0, strategy="fixed")
    assert volume_a == pytest.approx(5.5)
    assert volume_b == pytest.approx(4.5)
    with pytest.raises(ValueError):
        split_volume(1.0, 1.0, 1.0, strategy="even")
