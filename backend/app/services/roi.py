"""Hypothetical trader payout for a position on one side of a battle.

Token quantity uses the side's average implied price (pool / supply), not
the bonding curve integral, so results are an approximation.
"""

from __future__ import annotations

from app.domain import MarketState, RoiSimulation
from app.domain.models import SideTag

from .settlement import LOSING_TRADERS_SHARE, calculate_winner, other_side, settle


def _safe_div(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


def simulate(
    state: MarketState,
    side: SideTag,
    invested: float,
    *,
    tie_break: SideTag = "A",
) -> RoiSimulation:
    pool = state.balance(side)
    supply = state.supply(side)
    implied_price = _safe_div(pool, supply)
    tokens_held = _safe_div(invested, implied_price)
    token_share = _safe_div(tokens_held, supply)

    winner = calculate_winner(state, tie_break=tie_break)
    if side == winner:
        settlement = settle(state, tie_break=tie_break)
        payout = token_share * pool + token_share * settlement.to_winning_traders
        note = "Winner payout + share of loser pool"
    else:
        loser_pool = state.balance(other_side(winner))
        payout = token_share * loser_pool * LOSING_TRADERS_SHARE
        note = "Loser retains 50% of value"

    profit = payout - invested
    return RoiSimulation(
        side=side,
        invested=invested,
        tokens_held=tokens_held,
        token_share=token_share,
        payout=payout,
        profit=profit,
        roi_percent=_safe_div(profit, invested) * 100 if invested > 0 else 0.0,
        note=note,
    )
