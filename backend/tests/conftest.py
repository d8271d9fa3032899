from __future__ import annotations

import struct
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from app.core.config import Settings
from app.domain import (
    MarketState,
    MarketSummary,
    Side,
    TraderFlow,
    TransferAttribution,
)

BATTLE_ADDRESS = "Battle1111111111111111111111111111111111111"
VAULT_ADDRESS = "Vault11111111111111111111111111111111111111"


def build_account_bytes(
    *,
    battle_id: int = 7,
    start_time: int = 1_700_000_000,
    end_time: int = 1_700_003_600,
    side_a_supply: int = 5_000_000,
    side_b_supply: int = 2_000_000,
    side_a_balance: int = 10_000_000_000,
    side_b_balance: int = 4_000_000_000,
    winner_is_side_a: bool = False,
    winner_decided: bool = False,
    is_active: bool = True,
    total_distribution: int = 0,
    trailing: bytes = b"",
) -> bytes:
    """Serialize a battle account the way the program lays it out on-chain."""

    return b"".join(
        [
            b"\x00" * 8,
            struct.pack("<Q", battle_id),
            b"\x00" * 4,
            struct.pack("<q", start_time),
            struct.pack("<q", end_time),
            b"\x11" * 160,
            struct.pack("<QQ", side_a_supply, side_b_supply),
            struct.pack("<QQ", side_a_balance, side_b_balance),
            b"\x00" * 16,
            struct.pack("<BBBBB", int(winner_is_side_a), int(winner_decided), 0, 1, int(is_active)),
            struct.pack("<Q", total_distribution),
            trailing,
        ]
    )


def make_summary(
    battle_id: int = 7,
    *,
    artist_a: str = "Nova",
    artist_b: str = "Echo",
    created_at: str = "2024-05-01T12:00:00Z",
    duration: int = 3600,
    community_round_id: str | None = None,
) -> MarketSummary:
    return MarketSummary(
        id=f"uuid-{battle_id}",
        battle_id=battle_id,
        created_at=created_at,
        status="active",
        side_a=Side(name=artist_a, wallet=f"{artist_a}Wallet", avatar=f"https://img/{artist_a}.png"),
        side_b=Side(name=artist_b, wallet=f"{artist_b}Wallet", avatar=f"https://img/{artist_b}.png"),
        battle_duration=duration,
        is_community_battle=community_round_id is not None,
        community_round_id=community_round_id,
    )


def make_state(
    summary: MarketSummary | None = None,
    *,
    balance_a: float = 0.0,
    balance_b: float = 0.0,
    supply_a: float = 0.0,
    supply_b: float = 0.0,
    volume_a: float = 0.0,
    volume_b: float = 0.0,
    flows: dict[str, TraderFlow] | None = None,
    is_ended: bool = False,
    start_time: int = 1_700_000_000_000,
    end_time: int = 1_700_003_600_000,
) -> MarketState:
    return MarketState(
        summary=summary or make_summary(),
        battle_address=BATTLE_ADDRESS,
        vault_address=VAULT_ADDRESS,
        start_time=start_time,
        end_time=end_time,
        is_ended=is_ended,
        side_a_balance=balance_a,
        side_b_balance=balance_b,
        side_a_supply=supply_a,
        side_b_supply=supply_b,
        winner_decided=False,
        attribution=TransferAttribution(
            total_volume=volume_a + volume_b,
            volume_a=volume_a,
            volume_b=volume_b,
            trader_flows=flows or {},
        ),
        fetched_at=end_time,
    )


def transfer_record(
    signature: str,
    transfers: list[tuple[str, str, int]],
    *,
    timestamp: int = 1_700_000_100,
) -> dict[str, object]:
    """Enhanced-transaction record with ``(from, to, lamports)`` native transfers."""

    return {
        "signature": signature,
        "timestamp": timestamp,
        "nativeTransfers": [
            {"fromUserAccount": source, "toUserAccount": dest, "amount": amount}
            for source, dest, amount in transfers
        ],
    }


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        helius_api_key="test-key",
        solana_rpc_url="https://rpc.test",
        helius_api_base="https://api.helius.test",
        library_path=str(tmp_path / "battles.json"),
        retry_attempts=2,
        retry_base_delay_seconds=0.5,
        history_page_size=50,
        history_max_records=100,
        scan_batch_size=2,
        scan_batch_delay_seconds=0.0,
        cache_ttl_seconds=30,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings
