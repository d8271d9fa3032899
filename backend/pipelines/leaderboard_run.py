from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable

from loguru import logger

from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.domain import MarketState
from app.services.aggregation import (
    aggregate_artist_stats,
    aggregate_trader_stats,
    calculate_activity_leaderboard,
)
from app.services.market_service import CancellationToken, MarketService
from ingestion.library import load_library
from ingestion.prices import fetch_sol_price

PriceFetcher = Callable[[], Awaitable[float]]


@dataclass(slots=True)
class LeaderboardSummary:
    generated_at: str
    sol_price: float
    total_battles: int
    scanned_battles: int
    unreliable_battles: list[int] = field(default_factory=list)
    artists: list[dict[str, Any]] = field(default_factory=list)
    activity: list[dict[str, Any]] = field(default_factory=list)
    traders: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scan every listed battle and build leaderboards")
    parser.add_argument(
        "--library",
        type=Path,
        default=None,
        help="JSON or CSV battle library (defaults to LIBRARY_PATH from settings)",
    )
    parser.add_argument("--limit", type=int, default=None, help="Scan at most N battles")
    parser.add_argument(
        "--top",
        type=int,
        default=25,
        help="Number of trader rows kept in the summary",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Write the leaderboard summary JSON to this path instead of stdout",
    )
    parser.add_argument(
        "--sol-price",
        type=float,
        default=None,
        help="Use a fixed SOL/USD price instead of querying the price feed",
    )
    return parser.parse_args(argv)


async def run_leaderboard(
    args: argparse.Namespace,
    settings: Settings,
    *,
    service: MarketService | None = None,
    price_fetcher: PriceFetcher | None = None,
    cancel: CancellationToken | None = None,
) -> LeaderboardSummary:
    library_path = args.library or settings.library_path
    if not library_path:
        raise SystemExit("No battle library given; pass --library or set LIBRARY_PATH")

    summaries = load_library(library_path)
    if args.limit is not None:
        summaries = summaries[: args.limit]

    owns_service = service is None
    service = service or MarketService(settings=settings)

    def _progress(states: list[MarketState], processed: int) -> None:
        logger.info("Scanned {}/{} battles ({} loaded)", processed, len(summaries), len(states))

    try:
        states = await service.scan_markets(summaries, cancel=cancel, on_batch=_progress)
    finally:
        if owns_service:
            await service.close()

    if args.sol_price is not None:
        sol_price = args.sol_price
    elif price_fetcher is not None:
        sol_price = await price_fetcher()
    else:
        sol_price = await fetch_sol_price(settings=settings)

    artists = aggregate_artist_stats(
        states,
        sol_price,
        usd_per_stream=settings.usd_per_stream,
        tie_break=settings.tie_break_side,
    )
    traders = aggregate_trader_stats(states)[: args.top]
    unreliable = [state.battle_id for state in states if not state.volume_reliable]
    if unreliable:
        logger.warning("{} battles have incomplete volume data", len(unreliable))

    return LeaderboardSummary(
        generated_at=datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
        sol_price=sol_price,
        total_battles=len(summaries),
        scanned_battles=len(states),
        unreliable_battles=unreliable,
        artists=[asdict(entry) for entry in artists],
        activity=[asdict(entry) for entry in calculate_activity_leaderboard(summaries)],
        traders=[asdict(entry) for entry in traders],
    )


def _write_summary(path: Path, summary: LeaderboardSummary) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(summary.to_dict(), indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    summary = asyncio.run(run_leaderboard(args, settings))
    logger.info(
        "Leaderboard built from {}/{} battles at SOL ${:.2f}",
        summary.scanned_battles,
        summary.total_battles,
        summary.sol_price,
    )

    if args.summary_path:
        _write_summary(args.summary_path, summary)
        logger.info("Wrote leaderboard summary to {}", args.summary_path)
    else:
        print(json.dumps(summary.to_dict(), indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
