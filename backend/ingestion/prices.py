"""SOL/USD quote used to convert earnings into fiat estimates."""

from __future__ import annotations

import httpx
from loguru import logger

from app.core.config import Settings, get_settings


async def fetch_sol_price(
    *,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> float:
    """Return the current SOL price in USD, or the configured fallback on any failure."""

    settings = settings or get_settings()
    fallback = settings.sol_price_fallback_usd
    try:
        async with httpx.AsyncClient(
            timeout=settings.request_timeout_seconds, transport=transport
        ) as client:
            resp = await client.get(str(settings.sol_price_url))
            resp.raise_for_status()
            data = resp.json()
        price = float(data["solana"]["usd"])
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
        logger.warning("SOL price fetch failed, using fallback {}: {}", fallback, exc)
        return fallback
    if price <= 0:
        return fallback
    return price
