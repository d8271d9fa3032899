"""Typed domain representations shared by ingestion, analytics, and the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

SideTag = Literal["A", "B"]
TradeSide = Literal["A", "B", "Unknown"]
TradeDirection = Literal["BUY", "SELL"]
BattleResult = Literal["WIN", "LOSS"]
ReplayEventType = Literal["LEAD_CHANGE", "WHALE_BUY", "WHALE_SELL", "START", "END"]


@dataclass(frozen=True, slots=True)
class Side:
    """One of the two competing artists of a battle."""

    name: str
    wallet: str
    side_id: str = ""
    color: str = ""
    avatar: str = ""
    mint: str | None = None
    twitter: str | None = None
    music_link: str | None = None

    @property
    def key(self) -> str:
        return self.name.strip()


@dataclass(frozen=True, slots=True)
class MarketSummary:
    """Battle listing entry loaded from the library source."""

    id: str
    battle_id: int
    created_at: str
    status: str
    side_a: Side
    side_b: Side
    battle_duration: int
    winner_decided: bool = False
    image_url: str = ""
    stream_link: str | None = None
    creator_wallet: str | None = None
    is_community_battle: bool = False
    community_round_id: str | None = None

    def side(self, tag: SideTag) -> Side:
        return self.side_a if tag == "A" else self.side_b


@dataclass(frozen=True, slots=True)
class DecodedAccountRecord:
    """Battle account fields decoded from the on-chain binary layout."""

    battle_id: int
    start_time: int
    end_time: int
    is_active: bool
    is_ended: bool
    side_a_balance: float
    side_b_balance: float
    side_a_supply: float
    side_b_supply: float
    winner_is_side_a: bool
    winner_decided: bool
    total_distribution: float


@dataclass(frozen=True, slots=True)
class RecentTrade:
    signature: str
    amount: float
    direction: TradeDirection
    trader: str
    timestamp: int
    side: TradeSide = "Unknown"


@dataclass(slots=True)
class TraderFlow:
    """Native value a wallet moved into (invested) and out of (payout) one battle."""

    invested: float = 0.0
    payout: float = 0.0


@dataclass(frozen=True, slots=True)
class TransferAttribution:
    trade_count: int = 0
    unique_traders: int = 0
    recent_trades: tuple[RecentTrade, ...] = ()
    total_volume: float = 0.0
    volume_a: float = 0.0
    volume_b: float = 0.0
    trader_flows: dict[str, TraderFlow] = field(default_factory=dict)
    complete: bool = True


@dataclass(frozen=True, slots=True)
class MarketState:
    """Everything the analytics engine needs to know about one battle."""

    summary: MarketSummary
    battle_address: str
    vault_address: str
    start_time: int
    end_time: int
    is_ended: bool
    side_a_balance: float
    side_b_balance: float
    side_a_supply: float
    side_b_supply: float
    winner_decided: bool
    attribution: TransferAttribution
    fetched_at: int
    account_found: bool = True
    volume_reliable: bool = True

    @property
    def battle_id(self) -> int:
        return self.summary.battle_id

    @property
    def total_volume_a(self) -> float:
        return self.attribution.volume_a

    @property
    def total_volume_b(self) -> float:
        return self.attribution.volume_b

    @property
    def trade_count(self) -> int:
        return self.attribution.trade_count

    @property
    def unique_traders(self) -> int:
        return self.attribution.unique_traders

    @property
    def recent_trades(self) -> tuple[RecentTrade, ...]:
        return self.attribution.recent_trades

    def balance(self, tag: SideTag) -> float:
        return self.side_a_balance if tag == "A" else self.side_b_balance

    def supply(self, tag: SideTag) -> float:
        return self.side_a_supply if tag == "A" else self.side_b_supply

    def volume(self, tag: SideTag) -> float:
        return self.total_volume_a if tag == "A" else self.total_volume_b


def build_market_state(
    summary: MarketSummary,
    record: DecodedAccountRecord,
    attribution: TransferAttribution,
    *,
    battle_address: str,
    vault_address: str,
    fetched_at: int,
    volume_reliable: bool = True,
) -> MarketState:
    """Combine a decoded account and its transfer attribution into a state."""

    return MarketState(
        summary=summary,
        battle_address=battle_address,
        vault_address=vault_address,
        start_time=record.start_time,
        end_time=record.end_time,
        is_ended=record.is_ended,
        side_a_balance=max(record.side_a_balance, 0.0),
        side_b_balance=max(record.side_b_balance, 0.0),
        side_a_supply=max(record.side_a_supply, 0.0),
        side_b_supply=max(record.side_b_supply, 0.0),
        winner_decided=record.winner_decided,
        attribution=attribution,
        fetched_at=fetched_at,
        account_found=True,
        volume_reliable=volume_reliable,
    )


def empty_market_state(
    summary: MarketSummary,
    *,
    now_ms: int,
    battle_address: str = "",
    vault_address: str = "",
) -> MarketState:
    """State used when the battle account does not exist on-chain."""

    return MarketState(
        summary=summary,
        battle_address=battle_address,
        vault_address=vault_address,
        start_time=now_ms,
        end_time=now_ms + summary.battle_duration * 1000,
        is_ended=False,
        side_a_balance=0.0,
        side_b_balance=0.0,
        side_a_supply=0.0,
        side_b_supply=0.0,
        winner_decided=False,
        attribution=TransferAttribution(),
        fetched_at=now_ms,
        account_found=False,
    )


@dataclass(frozen=True, slots=True)
class SettlementResult:
    winner: SideTag
    win_margin: float
    loser_pool_total: float
    to_winning_traders: float
    to_winning_artist: float
    to_losing_artist: float
    to_platform: float
    to_losing_traders: float
    artist_a_earnings: float
    artist_b_earnings: float
    platform_earnings: float


@dataclass(frozen=True, slots=True)
class SideEarnings:
    side: SideTag
    volume: float
    trading_fees: float
    settlement_fees: float
    result: BattleResult

    @property
    def total(self) -> float:
        return self.trading_fees + self.settlement_fees


@dataclass(frozen=True, slots=True)
class RoiSimulation:
    side: SideTag
    invested: float
    tokens_held: float
    token_share: float
    payout: float
    profit: float
    roi_percent: float
    note: str


@dataclass(frozen=True, slots=True)
class HistoryPoint:
    timestamp: int
    tvl_a: float
    tvl_b: float
    volume_a: float
    volume_b: float
    price_a: float = 0.0
    price_b: float = 0.0


@dataclass(frozen=True, slots=True)
class ReplayEvent:
    timestamp: int
    type: ReplayEventType
    description: str
    side: SideTag | None = None


@dataclass(frozen=True, slots=True)
class ReplayTimeline:
    history: list[HistoryPoint]
    events: list[ReplayEvent]


@dataclass(slots=True)
class ArtistBattleRecord:
    battle_id: int
    opponent_name: str
    date: str
    result: BattleResult
    volume_generated: float
    trading_fees: float
    settlement_fees: float
    total_earnings: float


@dataclass(slots=True)
class ArtistLeaderboardStats:
    artist_name: str
    wallet_address: str
    avatar: str = ""
    twitter: str | None = None
    music_link: str | None = None
    total_earnings_sol: float = 0.0
    total_earnings_usd: float = 0.0
    stream_equivalents: int = 0
    battles_participated: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    total_volume_generated: float = 0.0
    best_battle_earnings: float = 0.0
    best_battle_opponent: str = ""
    history: list[ArtistBattleRecord] = field(default_factory=list)


@dataclass(slots=True)
class ArtistActivityStats:
    name: str
    avatar: str = ""
    total_battles: int = 0
    last_active: str = ""


@dataclass(slots=True)
class TraderBattleRecord:
    battle_id: int
    artist_a: str
    artist_b: str
    date: str
    invested: float
    payout: float

    @property
    def net_pnl(self) -> float:
        return self.payout - self.invested


@dataclass(slots=True)
class TraderLeaderboardEntry:
    wallet_address: str
    total_invested: float = 0.0
    total_payout: float = 0.0
    net_pnl: float = 0.0
    roi: float = 0.0
    battles_participated: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0


@dataclass(slots=True)
class TraderProfile:
    stats: TraderLeaderboardEntry
    history: list[TraderBattleRecord] = field(default_factory=list)


@dataclass(slots=True)
class BattleEvent:
    """Group of battles sharing a community round."""

    event_id: str
    title: str
    created_at: str
    battles: list[MarketSummary] = field(default_factory=list)
    is_community_event: bool = False
