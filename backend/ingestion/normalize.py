from __future__ import annotations

import json
from typing import Any

from app.domain import MarketSummary, Side

_TRUTHY = {"1", "true", "yes", "y", "t"}


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


def _parse_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(round(float(value)))
        except (TypeError, ValueError):
            return default


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_dict(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


def _flat_side(raw: dict[str, Any], prefix: str) -> dict[str, Any]:
    """Collect ``artist1_name``/``artistAName`` style columns of a flat CSV row."""

    collected: dict[str, Any] = {}
    for key, value in raw.items():
        lowered = key.lower().replace("_", "")
        if lowered.startswith(prefix):
            collected[lowered[len(prefix):]] = value
    return collected


def normalize_side(raw: dict[str, Any]) -> Side:
    name = str(_first(raw, "name", "artistName") or "Unknown").strip() or "Unknown"
    return Side(
        name=name,
        wallet=str(_first(raw, "wallet", "walletAddress", "wallet_address") or ""),
        side_id=str(_first(raw, "id", "sideId", "side_id") or ""),
        color=str(_first(raw, "color") or ""),
        avatar=str(_first(raw, "avatar", "imageUrl", "image_url", "imageurl") or ""),
        mint=_optional_str(_first(raw, "mint", "mintAddress", "mint_address")),
        twitter=_optional_str(_first(raw, "twitter")),
        music_link=_optional_str(_first(raw, "musicLink", "music_link", "musiclink")),
    )


def _side_payload(raw: dict[str, Any], nested_keys: tuple[str, ...], flat_prefixes: tuple[str, ...]) -> dict[str, Any]:
    for key in nested_keys:
        nested = _as_dict(raw.get(key))
        if nested:
            return nested
    for prefix in flat_prefixes:
        flat = _flat_side(raw, prefix)
        if flat:
            return flat
    return {}


def normalize_summary(raw: dict[str, Any]) -> MarketSummary:
    """Build a :class:`MarketSummary` from a library row (JSON object or CSV record)."""

    battle_id = _parse_int(_first(raw, "battleId", "battle_id"), default=-1)
    if battle_id < 0:
        raise ValueError(f"library entry is missing a numeric battle id: {raw!r}")
    identifier = str(_first(raw, "id", "uuid") or battle_id)

    side_a = normalize_side(
        _side_payload(raw, ("artistA", "artist_a", "sideA"), ("artista", "artist1"))
    )
    side_b = normalize_side(
        _side_payload(raw, ("artistB", "artist_b", "sideB"), ("artistb", "artist2"))
    )

    return MarketSummary(
        id=identifier,
        battle_id=battle_id,
        created_at=str(_first(raw, "createdAt", "created_at") or ""),
        status=str(_first(raw, "status") or "active").lower(),
        side_a=side_a,
        side_b=side_b,
        battle_duration=_parse_int(_first(raw, "battleDuration", "battle_duration")),
        winner_decided=_parse_bool(_first(raw, "winnerDecided", "winner_decided")),
        image_url=str(_first(raw, "imageUrl", "image_url") or ""),
        stream_link=_optional_str(_first(raw, "streamLink", "stream_link")),
        creator_wallet=_optional_str(_first(raw, "creatorWallet", "creator_wallet")),
        is_community_battle=_parse_bool(_first(raw, "isCommunityBattle", "is_community_battle")),
        community_round_id=_optional_str(_first(raw, "communityRoundId", "community_round_id")),
    )
