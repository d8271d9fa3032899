from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import Settings


def test_retry_backoff_schedule_doubles():
    settings = Settings(retry_attempts=3, retry_base_delay_seconds=0.5)

    assert settings.retry_backoff_schedule == (0.5, 1.0, 2.0)


def test_rpc_url_defaults_to_helius():
    settings = Settings(helius_api_key="abc", solana_rpc_url=None)

    assert settings.resolved_rpc_url == "https://mainnet.helius-rpc.com/?api-key=abc"


def test_choice_fields_are_normalized():
    settings = Settings(volume_split_strategy=" Fixed ", tie_break_side="b", replay_mode="STOCHASTIC")

    assert settings.volume_split_strategy == "fixed"
    assert settings.tie_break_side == "B"
    assert settings.replay_mode == "stochastic"


@pytest.mark.parametrize(
    "overrides",
    [
        {"volume_split_strategy": "even"},
        {"tie_break_side": "C"},
        {"replay_mode": "live"},
    ],
)
def test_invalid_choices_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_recent_trades_limit_is_capped_at_twenty():
    assert Settings(recent_trades_limit=20).recent_trades_limit == 20
    with pytest.raises(ValidationError):
        Settings(recent_trades_limit=21)
