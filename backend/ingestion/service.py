from __future__ import annotations

import time
from typing import Callable

import httpx
from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import (
    MarketState,
    MarketSummary,
    TransferAttribution,
    build_market_state,
    empty_market_state,
)

from .addresses import BattleAddresses, derive_battle_addresses
from .client import SolanaClient, UpstreamError
from .decoder import decode_battle_account
from .scanner import TransferLedgerScanner


def now_ms() -> int:
    return int(time.time() * 1000)


async def fetch_market_state(
    summary: MarketSummary,
    client: SolanaClient,
    *,
    settings: Settings | None = None,
    addresses: BattleAddresses | None = None,
    clock: Callable[[], int] = now_ms,
) -> MarketState:
    """Fetch, decode and scan one battle into a :class:`MarketState`.

    Account fetch failures propagate; transfer history failures degrade to
    zeroed (or partial) volume with ``volume_reliable=False``.
    """

    settings = settings or get_settings()
    addresses = addresses or derive_battle_addresses(summary.battle_id, settings=settings)

    data = await client.get_account_info(addresses.battle)
    current_ms = clock()
    if data is None:
        logger.warning(
            "Battle account {} for battle {} not found on-chain", addresses.battle, summary.battle_id
        )
        return empty_market_state(
            summary,
            now_ms=current_ms,
            battle_address=addresses.battle,
            vault_address=addresses.vault,
        )

    record = decode_battle_account(data, now_ms=current_ms)

    scanner = TransferLedgerScanner(client.get_transactions, settings=settings)
    volume_reliable = True
    try:
        attribution = await scanner.scan(
            addresses.battle,
            addresses.vault,
            record.side_a_balance,
            record.side_b_balance,
        )
    except (UpstreamError, httpx.HTTPError, ValueError) as exc:
        logger.warning(
            "History fetch failed for battle {}; returning account data without volume: {}",
            summary.battle_id,
            exc,
        )
        attribution = TransferAttribution(complete=False)
        volume_reliable = False
    else:
        if not attribution.complete:
            logger.warning(
                "Volume for battle {} is based on a partial history scan", summary.battle_id
            )
            volume_reliable = False

    return build_market_state(
        summary,
        record,
        attribution,
        battle_address=addresses.battle,
        vault_address=addresses.vault,
        fetched_at=current_ms,
        volume_reliable=volume_reliable,
    )
