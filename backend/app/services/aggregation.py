"""Leaderboard and profile rollups across many battles."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Iterable, Sequence

from dateutil import parser as date_parser

from app.domain import (
    ArtistActivityStats,
    ArtistBattleRecord,
    ArtistLeaderboardStats,
    BattleEvent,
    MarketState,
    MarketSummary,
    Side,
    TraderBattleRecord,
    TraderLeaderboardEntry,
    TraderProfile,
)
from app.domain.models import SideTag

from .settlement import calculate_side_earnings

USD_PER_STREAM = 0.003

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _date_key(value: str) -> datetime:
    if not value:
        return _EPOCH
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, TypeError):
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole else 0.0


def aggregate_artist_stats(
    states: Iterable[MarketState],
    sol_price: float,
    *,
    usd_per_stream: float = USD_PER_STREAM,
    tie_break: SideTag = "A",
) -> list[ArtistLeaderboardStats]:
    """Fold battle outcomes into per-artist earnings, sorted by SOL earned."""

    stats_by_artist: dict[str, ArtistLeaderboardStats] = {}

    def get_or_init(side: Side) -> ArtistLeaderboardStats:
        if side.key not in stats_by_artist:
            stats_by_artist[side.key] = ArtistLeaderboardStats(
                artist_name=side.name,
                wallet_address=side.wallet,
                avatar=side.avatar,
                twitter=side.twitter,
                music_link=side.music_link,
            )
        return stats_by_artist[side.key]

    for state in states:
        summary = state.summary
        for tag, artist, opponent in (
            ("A", summary.side_a, summary.side_b),
            ("B", summary.side_b, summary.side_a),
        ):
            stats = get_or_init(artist)
            earnings = calculate_side_earnings(state, tag, tie_break=tie_break)
            total = earnings.total

            stats.battles_participated += 1
            if earnings.result == "WIN":
                stats.wins += 1
            else:
                stats.losses += 1
            stats.total_volume_generated += earnings.volume
            stats.total_earnings_sol += total
            stats.history.append(
                ArtistBattleRecord(
                    battle_id=summary.battle_id,
                    opponent_name=opponent.name,
                    date=summary.created_at,
                    result=earnings.result,
                    volume_generated=earnings.volume,
                    trading_fees=earnings.trading_fees,
                    settlement_fees=earnings.settlement_fees,
                    total_earnings=total,
                )
            )
            if total > stats.best_battle_earnings:
                stats.best_battle_earnings = total
                stats.best_battle_opponent = opponent.name

    results = list(stats_by_artist.values())
    for stats in results:
        stats.win_rate = _percent(stats.wins, stats.battles_participated)
        stats.total_earnings_usd = stats.total_earnings_sol * sol_price
        stats.stream_equivalents = math.floor(stats.total_earnings_usd / usd_per_stream)
        stats.history.sort(key=lambda record: _date_key(record.date), reverse=True)

    results.sort(key=lambda stats: stats.total_earnings_sol, reverse=True)
    return results


def calculate_activity_leaderboard(summaries: Iterable[MarketSummary]) -> list[ArtistActivityStats]:
    """Participation counts straight from the library, without chain data."""

    by_artist: dict[str, ArtistActivityStats] = {}
    for summary in summaries:
        for side in (summary.side_a, summary.side_b):
            stats = by_artist.setdefault(
                side.key, ArtistActivityStats(name=side.name, avatar=side.avatar)
            )
            stats.total_battles += 1
            if _date_key(summary.created_at) > _date_key(stats.last_active):
                stats.last_active = summary.created_at

    return sorted(by_artist.values(), key=lambda stats: stats.total_battles, reverse=True)


def _finalize_trader(entry: TraderLeaderboardEntry) -> TraderLeaderboardEntry:
    entry.net_pnl = entry.total_payout - entry.total_invested
    entry.roi = _percent(entry.net_pnl, entry.total_invested)
    entry.win_rate = _percent(entry.wins, entry.battles_participated)
    return entry


def aggregate_trader_stats(states: Iterable[MarketState]) -> list[TraderLeaderboardEntry]:
    """Per-wallet flows across battles, sorted by net PnL.

    Only wallets seen in the scanned portion of each battle's history are
    included, so totals are lower bounds for active battles.
    """

    by_wallet: dict[str, TraderLeaderboardEntry] = {}
    for state in states:
        for wallet, flow in state.attribution.trader_flows.items():
            entry = by_wallet.setdefault(wallet, TraderLeaderboardEntry(wallet_address=wallet))
            entry.total_invested += flow.invested
            entry.total_payout += flow.payout
            entry.battles_participated += 1
            net = flow.payout - flow.invested
            if net > 0:
                entry.wins += 1
            elif net < 0:
                entry.losses += 1

    results = [_finalize_trader(entry) for entry in by_wallet.values()]
    results.sort(key=lambda entry: entry.net_pnl, reverse=True)
    return results


def build_trader_profile(wallet: str, states: Sequence[MarketState]) -> TraderProfile:
    entry = TraderLeaderboardEntry(wallet_address=wallet)
    history: list[TraderBattleRecord] = []
    for state in states:
        flow = state.attribution.trader_flows.get(wallet)
        if flow is None:
            continue
        summary = state.summary
        record = TraderBattleRecord(
            battle_id=summary.battle_id,
            artist_a=summary.side_a.name,
            artist_b=summary.side_b.name,
            date=summary.created_at,
            invested=flow.invested,
            payout=flow.payout,
        )
        history.append(record)
        entry.total_invested += flow.invested
        entry.total_payout += flow.payout
        entry.battles_participated += 1
        if record.net_pnl > 0:
            entry.wins += 1
        elif record.net_pnl < 0:
            entry.losses += 1

    history.sort(key=lambda record: _date_key(record.date), reverse=True)
    return TraderProfile(stats=_finalize_trader(entry), history=history)


def group_markets_into_events(summaries: Iterable[MarketSummary]) -> list[BattleEvent]:
    """Group community battles by round; other battles stand alone."""

    events: dict[str, BattleEvent] = {}
    for summary in summaries:
        if summary.is_community_battle and summary.community_round_id:
            event_id = f"round-{summary.community_round_id}"
            event = events.setdefault(
                event_id,
                BattleEvent(
                    event_id=event_id,
                    title=f"Community Round {summary.community_round_id}",
                    created_at=summary.created_at,
                    is_community_event=True,
                ),
            )
            if _date_key(summary.created_at) < _date_key(event.created_at):
                event.created_at = summary.created_at
        else:
            event_id = f"battle-{summary.id}"
            event = events.setdefault(
                event_id,
                BattleEvent(
                    event_id=event_id,
                    title=f"{summary.side_a.name} vs {summary.side_b.name}",
                    created_at=summary.created_at,
                ),
            )
        event.battles.append(summary)

    return sorted(events.values(), key=lambda event: _date_key(event.created_at), reverse=True)
