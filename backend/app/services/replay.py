"""Synthetic replay timelines for battles.

Only the final balances and volumes of a battle are known, so the replay is
generated: either an eased interpolation towards the final values or a
seeded random walk.
"""

from __future__ import annotations

import random
import time
from enum import Enum

from app.domain import HistoryPoint, MarketState, ReplayEvent, ReplayTimeline
from app.domain.models import SideTag

DEFAULT_WINDOW_MS = 60 * 60 * 1000

WALK_FLOOR_SOL = 1.0
WALK_UP_PROBABILITY = 0.7
WALK_MAX_UP_STEP = 1.0
WALK_MAX_DOWN_STEP = 0.3
WHALE_STEP_THRESHOLD = 0.9


class ReplayMode(str, Enum):
    INTERPOLATED = "interpolated"
    STOCHASTIC = "stochastic"


def _leader(tvl_a: float, tvl_b: float) -> SideTag | None:
    if tvl_a > tvl_b:
        return "A"
    if tvl_b > tvl_a:
        return "B"
    return None


def _timestamps(state: MarketState, count: int, now: int) -> list[int]:
    start = state.start_time or now - DEFAULT_WINDOW_MS
    end = state.end_time or now
    step = (end - start) / count
    return [int(start + step * index) for index in range(count + 1)]


def _interpolated_history(state: MarketState, stamps: list[int]) -> list[HistoryPoint]:
    count = len(stamps) - 1
    history: list[HistoryPoint] = []
    for index, stamp in enumerate(stamps):
        progress = index / count
        ease = 1 - (1 - progress) ** 3
        history.append(
            HistoryPoint(
                timestamp=stamp,
                tvl_a=state.side_a_balance * ease,
                tvl_b=state.side_b_balance * ease,
                volume_a=state.total_volume_a * ease,
                volume_b=state.total_volume_b * ease,
            )
        )
    return history


def _walk_step(rng: random.Random) -> float:
    if rng.random() < WALK_UP_PROBABILITY:
        return rng.uniform(0.0, WALK_MAX_UP_STEP)
    return -rng.uniform(0.0, WALK_MAX_DOWN_STEP)


def _stochastic_history(
    stamps: list[int], rng: random.Random, whale_threshold: float
) -> tuple[list[HistoryPoint], list[ReplayEvent]]:
    tvl = {"A": WALK_FLOOR_SOL, "B": WALK_FLOOR_SOL}
    volume = {"A": 0.0, "B": 0.0}
    history = [HistoryPoint(timestamp=stamps[0], tvl_a=tvl["A"], tvl_b=tvl["B"], volume_a=0.0, volume_b=0.0)]
    whales: list[ReplayEvent] = []

    for stamp in stamps[1:]:
        for side in ("A", "B"):
            delta = _walk_step(rng)
            tvl[side] = max(tvl[side] + delta, 0.0)
            volume[side] += abs(delta)
            if delta > whale_threshold:
                whales.append(
                    ReplayEvent(
                        timestamp=stamp,
                        type="WHALE_BUY",
                        description=f"Whale buy of {delta:.2f} SOL on side {side}",
                        side=side,
                    )
                )
        history.append(
            HistoryPoint(
                timestamp=stamp,
                tvl_a=tvl["A"],
                tvl_b=tvl["B"],
                volume_a=volume["A"],
                volume_b=volume["B"],
            )
        )
    return history, whales


def _lead_changes(history: list[HistoryPoint]) -> list[ReplayEvent]:
    events: list[ReplayEvent] = []
    previous: SideTag | None = None
    for point in history:
        current = _leader(point.tvl_a, point.tvl_b)
        if current is None:
            continue
        if previous is not None and current != previous:
            events.append(
                ReplayEvent(
                    timestamp=point.timestamp,
                    type="LEAD_CHANGE",
                    description=f"Side {current} takes the lead",
                    side=current,
                )
            )
        previous = current
    return events


def synthesize(
    state: MarketState,
    point_count: int = 100,
    *,
    mode: ReplayMode | str = ReplayMode.INTERPOLATED,
    seed: int | None = None,
    whale_threshold: float = WHALE_STEP_THRESHOLD,
    now: int | None = None,
) -> ReplayTimeline:
    if point_count < 1:
        raise ValueError("point_count must be at least 1")
    mode = ReplayMode(mode)
    current = now if now is not None else int(time.time() * 1000)
    stamps = _timestamps(state, point_count, current)

    if mode is ReplayMode.INTERPOLATED:
        history = _interpolated_history(state, stamps)
        whales: list[ReplayEvent] = []
    else:
        history, whales = _stochastic_history(stamps, random.Random(seed), whale_threshold)

    events = [ReplayEvent(timestamp=stamps[0], type="START", description="Battle Begins")]
    events.extend(sorted(_lead_changes(history) + whales, key=lambda event: event.timestamp))
    if state.is_ended:
        events.append(ReplayEvent(timestamp=stamps[-1], type="END", description="Battle Ends"))
    return ReplayTimeline(history=history, events=events)
