"""Domain models representing battles and the analytics derived from them."""

from .models import (
    ArtistActivityStats,
    ArtistBattleRecord,
    ArtistLeaderboardStats,
    BattleEvent,
    DecodedAccountRecord,
    HistoryPoint,
    MarketState,
    MarketSummary,
    RecentTrade,
    ReplayEvent,
    ReplayTimeline,
    RoiSimulation,
    SettlementResult,
    Side,
    SideEarnings,
    TraderBattleRecord,
    TraderFlow,
    TraderLeaderboardEntry,
    TraderProfile,
    TransferAttribution,
    build_market_state,
    empty_market_state,
)

__all__ = [
    "ArtistActivityStats",
    "ArtistBattleRecord",
    "ArtistLeaderboardStats",
    "BattleEvent",
    "DecodedAccountRecord",
    "HistoryPoint",
    "MarketState",
    "MarketSummary",
    "RecentTrade",
    "ReplayEvent",
    "ReplayTimeline",
    "RoiSimulation",
    "SettlementResult",
    "Side",
    "SideEarnings",
    "TraderBattleRecord",
    "TraderFlow",
    "TraderLeaderboardEntry",
    "TraderProfile",
    "TransferAttribution",
    "build_market_state",
    "empty_market_state",
]
