from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_state, make_summary
from app.domain import TraderFlow
from pipelines.leaderboard_run import _write_summary, run_leaderboard


@pytest.fixture
def library_file(test_settings):
    rows = [
        {"id": "uuid-1", "battleId": 1, "createdAt": "2024-05-01T00:00:00Z",
         "artistA": {"name": "Nova"}, "artistB": {"name": "Echo"}},
        {"id": "uuid-2", "battleId": 2, "createdAt": "2024-06-01T00:00:00Z",
         "artistA": {"name": "Echo"}, "artistB": {"name": "Vega"}},
    ]
    path = test_settings.library_path
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(rows, handle)
    return path


def _args(tmp_path, **overrides) -> argparse.Namespace:
    values = {
        "library": None,
        "limit": None,
        "top": 25,
        "summary_path": tmp_path / "leaderboard.json",
        "sol_price": None,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def _service(states):
    service = MagicMock()
    service.scan_markets = AsyncMock(return_value=states)
    service.close = AsyncMock()
    return service


def test_run_leaderboard_builds_summary(tmp_path, test_settings, library_file):
    state = make_state(
        make_summary(1, artist_a="Nova", artist_b="Echo"),
        balance_a=120.0,
        balance_b=80.0,
        volume_a=1000.0,
        volume_b=500.0,
        flows={"alice": TraderFlow(invested=1.0, payout=3.0)},
    )
    service = _service([state])
    price = AsyncMock(return_value=100.0)
    args = _args(tmp_path)

    summary = asyncio.run(
        run_leaderboard(args, test_settings, service=service, price_fetcher=price)
    )

    assert summary.total_battles == 2
    assert summary.scanned_battles == 1
    assert summary.sol_price == 100.0
    assert summary.artists[0]["artist_name"] == "Nova"
    assert summary.artists[0]["total_earnings_usd"] == pytest.approx(1400.0)
    assert summary.activity[0]["name"] == "Echo"
    assert summary.traders[0]["wallet_address"] == "alice"
    service.close.assert_not_awaited()

    _write_summary(args.summary_path, summary)
    written = json.loads(args.summary_path.read_text(encoding="utf-8"))
    assert written["scanned_battles"] == 1


def test_run_leaderboard_respects_limit_and_fixed_price(tmp_path, test_settings, library_file):
    service = _service([])
    args = _args(tmp_path, limit=1, sol_price=150.0)

    summary = asyncio.run(run_leaderboard(args, test_settings, service=service))

    scanned = service.scan_markets.await_args.args[0]
    assert [item.battle_id for item in scanned] == [1]
    assert summary.sol_price == 150.0
    assert summary.artists == []


def test_run_leaderboard_reports_unreliable_battles(tmp_path, test_settings, library_file):
    state = replace(make_state(make_summary(2)), volume_reliable=False)
    service = _service([state])

    summary = asyncio.run(
        run_leaderboard(_args(tmp_path, sol_price=1.0), test_settings, service=service)
    )

    assert summary.unreliable_battles == [2]
