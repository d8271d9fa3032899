from __future__ import annotations

import pytest

from conftest import make_state
from app.services.replay import DEFAULT_WINDOW_MS, ReplayMode, synthesize

NOW = 1_700_010_000_000


def test_interpolated_replay_eases_to_final_values():
    state = make_state(balance_a=12.0, balance_b=6.0, volume_a=30.0, volume_b=10.0)

    timeline = synthesize(state, 10, now=NOW)

    assert len(timeline.history) == 11
    first, last = timeline.history[0], timeline.history[-1]
    assert first.timestamp == state.start_time
    assert last.timestamp == state.end_time
    assert (first.tvl_a, first.tvl_b) == (0.0, 0.0)
    assert last.tvl_a == pytest.approx(12.0)
    assert last.volume_b == pytest.approx(10.0)
    tvl_a = [point.tvl_a for point in timeline.history]
    assert tvl_a == sorted(tvl_a)


def test_replay_events_bracket_the_timeline():
    state = make_state(balance_a=1.0, balance_b=2.0, is_ended=True)

    timeline = synthesize(state, 5, now=NOW)

    assert timeline.events[0].type == "START"
    assert timeline.events[0].timestamp == state.start_time
    assert timeline.events[-1].type == "END"
    assert timeline.events[-1].timestamp == state.end_time
    # the leader is constant while easing, so no lead changes are emitted
    assert [event.type for event in timeline.events] == ["START", "END"]


def test_active_battle_has_no_end_event():
    timeline = synthesize(make_state(balance_a=1.0), 5, now=NOW)

    assert all(event.type != "END" for event in timeline.events)


def test_missing_times_fall_back_to_last_hour():
    state = make_state(start_time=0, end_time=0)

    timeline = synthesize(state, 4, now=NOW)

    assert timeline.history[0].timestamp == NOW - DEFAULT_WINDOW_MS
    assert timeline.history[-1].timestamp == NOW


def test_stochastic_replay_is_reproducible_with_seed():
    state = make_state(balance_a=5.0, balance_b=5.0)

    first = synthesize(state, 50, mode=ReplayMode.STOCHASTIC, seed=42, now=NOW)
    second = synthesize(state, 50, mode="stochastic", seed=42, now=NOW)

    assert first == second
    assert first.history[0].tvl_a == pytest.approx(1.0)
    assert all(point.tvl_a >= 0 and point.tvl_b >= 0 for point in first.history)


def test_stochastic_replay_flags_whales_and_lead_changes():
    state = make_state(balance_a=5.0, balance_b=5.0)

    timeline = synthesize(
        state, 200, mode=ReplayMode.STOCHASTIC, seed=7, whale_threshold=0.0, now=NOW
    )

    assert any(event.type == "WHALE_BUY" for event in timeline.events)
    leaders = [
        "A" if point.tvl_a > point.tvl_b else "B"
        for point in timeline.history
        if point.tvl_a != point.tvl_b
    ]
    flips = sum(1 for previous, current in zip(leaders, leaders[1:]) if previous != current)
    assert flips == sum(1 for event in timeline.events if event.type == "LEAD_CHANGE")
    timestamps = [event.timestamp for event in timeline.events]
    assert timestamps == sorted(timestamps)
    for event in timeline.events:
        if event.type == "LEAD_CHANGE":
            point = next(p for p in timeline.history if p.timestamp == event.timestamp)
            leader = "A" if point.tvl_a > point.tvl_b else "B"
            assert event.side == leader


def test_replay_rejects_empty_point_count():
    with pytest.raises(ValueError):
        synthesize(make_state(), 0)
