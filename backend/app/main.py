from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query
from loguru import logger

from . import schemas
from .core.config import settings
from .core.logging import configure_logging
from .domain import MarketState, MarketSummary
from .services.aggregation import (
    aggregate_artist_stats,
    aggregate_trader_stats,
    build_trader_profile,
    calculate_activity_leaderboard,
    group_markets_into_events,
)
from .services.market_service import MarketService
from .services.replay import ReplayMode, synthesize
from .services.roi import simulate
from .services.settlement import settle
from ingestion.client import UpstreamError
from ingestion.decoder import MalformedRecordError
from ingestion.library import find_summary, load_library
from ingestion.prices import fetch_sol_price

app = FastAPI(title="Battle Analytics API", version="0.1.0", debug=settings.debug)


@app.on_event("startup")
def on_startup() -> None:
    """Configure logging when the API boots."""

    configure_logging(settings)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    if _shared_market_service.cache_info().currsize:
        await _shared_market_service().close()


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


@lru_cache
def _cached_library(path: str) -> tuple[MarketSummary, ...]:
    return tuple(load_library(path))


def _library() -> list[MarketSummary]:
    """Provide the battle library configured in settings."""

    if not settings.library_path or not Path(settings.library_path).exists():
        logger.warning("Battle library not configured or missing: {}", settings.library_path)
        return []
    return list(_cached_library(settings.library_path))


@lru_cache
def _shared_market_service() -> MarketService:
    return MarketService(settings=settings)


def _market_service() -> MarketService:
    """Provide the process-wide market service and its state cache."""

    return _shared_market_service()


async def _sol_price() -> float:
    return await fetch_sol_price(settings=settings)


def _summary_or_404(summaries: list[MarketSummary], market_id: str) -> MarketSummary:
    summary = find_summary(summaries, market_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Battle not found")
    return summary


async def _load_state(
    service: MarketService, summary: MarketSummary, *, force_refresh: bool = False
) -> MarketState:
    try:
        return await service.get_market_state(summary, force_refresh=force_refresh)
    except MalformedRecordError as exc:
        logger.error("Battle {} account could not be decoded: {}", summary.battle_id, exc)
        raise HTTPException(status_code=502, detail="Battle account could not be decoded") from exc
    except UpstreamError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@app.get("/markets", response_model=schemas.BattleList, tags=["markets"])
def list_markets(
    *,
    artist: Annotated[str | None, Query(description="Case-insensitive artist name filter")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
    library: list[MarketSummary] = Depends(_library),
):
    """List battles from the library, optionally filtered by artist name."""

    items = library
    if artist:
        needle = artist.strip().lower()
        items = [
            summary
            for summary in items
            if needle in summary.side_a.name.lower() or needle in summary.side_b.name.lower()
        ]
    return schemas.BattleList(total=len(items), items=items[offset : offset + limit])


@app.get("/markets/{market_id}", response_model=schemas.BattleState, tags=["markets"])
async def get_market(
    market_id: str,
    refresh: Annotated[bool, Query(description="Bypass the state cache")] = False,
    library: list[MarketSummary] = Depends(_library),
    service: MarketService = Depends(_market_service),
):
    """Return the live state of one battle with its projected settlement."""

    summary = _summary_or_404(library, market_id)
    state = await _load_state(service, summary, force_refresh=refresh)
    settlement = schemas.Settlement.model_validate(settle(state, tie_break=settings.tie_break_side))
    return schemas.BattleState.from_state(state, settlement)


@app.get("/markets/{market_id}/settlement", response_model=schemas.Settlement, tags=["markets"])
async def get_settlement(
    market_id: str,
    library: list[MarketSummary] = Depends(_library),
    service: MarketService = Depends(_market_service),
):
    summary = _summary_or_404(library, market_id)
    state = await _load_state(service, summary)
    return settle(state, tie_break=settings.tie_break_side)


@app.get("/markets/{market_id}/roi", response_model=schemas.RoiSimulation, tags=["markets"])
async def simulate_roi(
    market_id: str,
    side: Annotated[str, Query(pattern="^[AB]$")],
    invested: Annotated[float, Query(ge=0, description="Hypothetical stake in SOL")],
    library: list[MarketSummary] = Depends(_library),
    service: MarketService = Depends(_market_service),
):
    """Project payout and ROI for a stake on one side if the battle settled now."""

    summary = _summary_or_404(library, market_id)
    state = await _load_state(service, summary)
    return simulate(state, side, invested, tie_break=settings.tie_break_side)


@app.get("/markets/{market_id}/replay", response_model=schemas.ReplayTimeline, tags=["markets"])
async def get_replay(
    market_id: str,
    points: Annotated[int | None, Query(ge=1, le=1000)] = None,
    mode: Annotated[ReplayMode | None, Query()] = None,
    seed: Annotated[int | None, Query(description="Seed for reproducible stochastic replays")] = None,
    library: list[MarketSummary] = Depends(_library),
    service: MarketService = Depends(_market_service),
):
    """Synthesize a display timeline for one battle."""

    summary = _summary_or_404(library, market_id)
    state = await _load_state(service, summary)
    return synthesize(
        state,
        points or settings.replay_points,
        mode=mode or settings.replay_mode,
        seed=seed,
        whale_threshold=settings.whale_trade_threshold_sol,
    )


@app.get("/events", response_model=list[schemas.BattleEvent], tags=["events"])
def list_events(library: list[MarketSummary] = Depends(_library)):
    """Return battles grouped by community round."""

    return group_markets_into_events(library)


@app.get("/leaderboard/activity", response_model=list[schemas.ArtistActivity], tags=["leaderboard"])
def activity_leaderboard(library: list[MarketSummary] = Depends(_library)):
    """Rank artists by number of battles, without touching the chain."""

    return calculate_activity_leaderboard(library)


@app.get("/leaderboard/artists", response_model=schemas.ArtistLeaderboard, tags=["leaderboard"])
async def artist_leaderboard(
    library: list[MarketSummary] = Depends(_library),
    service: MarketService = Depends(_market_service),
    sol_price: float = Depends(_sol_price),
):
    """Scan every listed battle and rank artists by earnings."""

    states = await service.scan_markets(library)
    stats = aggregate_artist_stats(
        states,
        sol_price,
        usd_per_stream=settings.usd_per_stream,
        tie_break=settings.tie_break_side,
    )
    return schemas.ArtistLeaderboard(
        sol_price=sol_price,
        battles_scanned=len(states),
        items=[schemas.ArtistLeaderboardEntry.model_validate(entry) for entry in stats],
    )


@app.get("/leaderboard/traders", response_model=list[schemas.TraderEntry], tags=["leaderboard"])
async def trader_leaderboard(
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    library: list[MarketSummary] = Depends(_library),
    service: MarketService = Depends(_market_service),
):
    """Rank wallets by net PnL across the scanned history of every battle."""

    states = await service.scan_markets(library)
    return aggregate_trader_stats(states)[:limit]


@app.get("/traders/{wallet}", response_model=schemas.TraderProfile, tags=["traders"])
async def trader_profile(
    wallet: str,
    library: list[MarketSummary] = Depends(_library),
    service: MarketService = Depends(_market_service),
):
    """Return one wallet's flows across every scanned battle."""

    states = await service.scan_markets(library)
    profile = build_trader_profile(wallet, states)
    if not profile.history:
        raise HTTPException(status_code=404, detail="Trader not found")
    return schemas.TraderProfile.model_validate(profile)
