"""Prize pool distribution and fee earnings for a settled battle."""

from __future__ import annotations

from app.domain import MarketState, SettlementResult, SideEarnings
from app.domain.models import SideTag

ARTIST_TRADING_FEE = 0.01
PLATFORM_TRADING_FEE = 0.005

# Shares of the loser's pool; they sum to exactly 1.0.
WINNING_TRADERS_SHARE = 0.40
WINNING_ARTIST_SHARE = 0.05
LOSING_ARTIST_SHARE = 0.02
PLATFORM_SHARE = 0.03
LOSING_TRADERS_SHARE = 0.50

DISTRIBUTION = {
    "winning_traders": WINNING_TRADERS_SHARE,
    "winning_artist": WINNING_ARTIST_SHARE,
    "losing_artist": LOSING_ARTIST_SHARE,
    "platform": PLATFORM_SHARE,
    "losing_traders": LOSING_TRADERS_SHARE,
}


def other_side(side: SideTag) -> SideTag:
    return "B" if side == "A" else "A"


def calculate_winner(state: MarketState, *, tie_break: SideTag = "A") -> SideTag:
    """Side holding the larger pool; exact ties go to ``tie_break``."""

    if state.side_a_balance > state.side_b_balance:
        return "A"
    if state.side_b_balance > state.side_a_balance:
        return "B"
    return tie_break


def settle(state: MarketState, *, tie_break: SideTag = "A") -> SettlementResult:
    winner = calculate_winner(state, tie_break=tie_break)
    winner_pool = state.balance(winner)
    loser_pool = state.balance(other_side(winner))

    to_winning_traders = loser_pool * WINNING_TRADERS_SHARE
    to_winning_artist = loser_pool * WINNING_ARTIST_SHARE
    to_losing_artist = loser_pool * LOSING_ARTIST_SHARE
    to_platform = loser_pool * PLATFORM_SHARE
    to_losing_traders = loser_pool * LOSING_TRADERS_SHARE

    artist_a_fees = state.total_volume_a * ARTIST_TRADING_FEE
    artist_b_fees = state.total_volume_b * ARTIST_TRADING_FEE
    platform_fees = (state.total_volume_a + state.total_volume_b) * PLATFORM_TRADING_FEE

    a_wins = winner == "A"
    return SettlementResult(
        winner=winner,
        win_margin=abs(winner_pool - loser_pool),
        loser_pool_total=loser_pool,
        to_winning_traders=to_winning_traders,
        to_winning_artist=to_winning_artist,
        to_losing_artist=to_losing_artist,
        to_platform=to_platform,
        to_losing_traders=to_losing_traders,
        artist_a_earnings=artist_a_fees + (to_winning_artist if a_wins else to_losing_artist),
        artist_b_earnings=artist_b_fees + (to_losing_artist if a_wins else to_winning_artist),
        platform_earnings=platform_fees + to_platform,
    )


def calculate_side_earnings(
    state: MarketState, side: SideTag, *, tie_break: SideTag = "A"
) -> SideEarnings:
    """Trading fees plus settlement share earned by one artist in one battle."""

    winner = calculate_winner(state, tie_break=tie_break)
    volume = state.volume(side)
    loser_pool = state.balance(other_side(winner))
    is_winner = winner == side
    share = WINNING_ARTIST_SHARE if is_winner else LOSING_ARTIST_SHARE
    return SideEarnings(
        side=side,
        volume=volume,
        trading_fees=volume * ARTIST_TRADING_FEE,
        settlement_fees=loser_pool * share,
        result="WIN" if is_winner else "LOSS",
    )
