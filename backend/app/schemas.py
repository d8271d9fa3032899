from typing import Literal

from pydantic import BaseModel, Field

from app.domain import MarketState

_ORM = {"from_attributes": True}


class Side(BaseModel):
    name: str
    wallet: str
    side_id: str = ""
    color: str = ""
    avatar: str = ""
    mint: str | None = None
    twitter: str | None = None
    music_link: str | None = None

    model_config = _ORM


class BattleSummary(BaseModel):
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

    model_config = _ORM


class BattleList(BaseModel):
    total: int
    items: list[BattleSummary]


class RecentTrade(BaseModel):
    signature: str
    amount: float
    direction: Literal["BUY", "SELL"]
    trader: str
    timestamp: int
    side: Literal["A", "B", "Unknown"] = "Unknown"

    model_config = _ORM


class Settlement(BaseModel):
    winner: Literal["A", "B"]
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

    model_config = _ORM


class BattleState(BaseModel):
    summary: BattleSummary
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
    total_volume_a: float
    total_volume_b: float
    trade_count: int
    unique_traders: int
    recent_trades: list[RecentTrade] = Field(default_factory=list)
    fetched_at: int
    account_found: bool
    volume_reliable: bool
    settlement: Settlement | None = None

    @classmethod
    def from_state(cls, state: MarketState, settlement: Settlement | None = None) -> "BattleState":
        return cls(
            summary=BattleSummary.model_validate(state.summary),
            battle_address=state.battle_address,
            vault_address=state.vault_address,
            start_time=state.start_time,
            end_time=state.end_time,
            is_ended=state.is_ended,
            side_a_balance=state.side_a_balance,
            side_b_balance=state.side_b_balance,
            side_a_supply=state.side_a_supply,
            side_b_supply=state.side_b_supply,
            winner_decided=state.winner_decided,
            total_volume_a=state.total_volume_a,
            total_volume_b=state.total_volume_b,
            trade_count=state.trade_count,
            unique_traders=state.unique_traders,
            recent_trades=[RecentTrade.model_validate(trade) for trade in state.recent_trades],
            fetched_at=state.fetched_at,
            account_found=state.account_found,
            volume_reliable=state.volume_reliable,
            settlement=settlement,
        )


class RoiSimulation(BaseModel):
    side: Literal["A", "B"]
    invested: float
    tokens_held: float
    token_share: float
    payout: float
    profit: float
    roi_percent: float
    note: str

    model_config = _ORM


class HistoryPoint(BaseModel):
    timestamp: int
    tvl_a: float
    tvl_b: float
    volume_a: float
    volume_b: float
    price_a: float = 0.0
    price_b: float = 0.0

    model_config = _ORM


class ReplayEvent(BaseModel):
    timestamp: int
    type: str
    description: str
    side: Literal["A", "B"] | None = None

    model_config = _ORM


class ReplayTimeline(BaseModel):
    history: list[HistoryPoint]
    events: list[ReplayEvent]

    model_config = _ORM


class ArtistBattleRecord(BaseModel):
    battle_id: int
    opponent_name: str
    date: str
    result: Literal["WIN", "LOSS"]
    volume_generated: float
    trading_fees: float
    settlement_fees: float
    total_earnings: float

    model_config = _ORM


class ArtistLeaderboardEntry(BaseModel):
    artist_name: str
    wallet_address: str
    avatar: str = ""
    twitter: str | None = None
    music_link: str | None = None
    total_earnings_sol: float
    total_earnings_usd: float
    stream_equivalents: int
    battles_participated: int
    wins: int
    losses: int
    win_rate: float
    total_volume_generated: float
    best_battle_earnings: float
    best_battle_opponent: str
    history: list[ArtistBattleRecord] = Field(default_factory=list)

    model_config = _ORM


class ArtistLeaderboard(BaseModel):
    sol_price: float
    battles_scanned: int
    items: list[ArtistLeaderboardEntry]


class ArtistActivity(BaseModel):
    name: str
    avatar: str = ""
    total_battles: int
    last_active: str

    model_config = _ORM


class TraderEntry(BaseModel):
    wallet_address: str
    total_invested: float
    total_payout: float
    net_pnl: float
    roi: float
    battles_participated: int
    wins: int
    losses: int
    win_rate: float

    model_config = _ORM


class TraderBattleRecord(BaseModel):
    battle_id: int
    artist_a: str
    artist_b: str
    date: str
    invested: float
    payout: float
    net_pnl: float

    model_config = _ORM


class TraderProfile(BaseModel):
    stats: TraderEntry
    history: list[TraderBattleRecord] = Field(default_factory=list)

    model_config = _ORM


class BattleEvent(BaseModel):
    event_id: str
    title: str
    created_at: str
    is_community_event: bool
    battles: list[BattleSummary] = Field(default_factory=list)

    model_config = _ORM
