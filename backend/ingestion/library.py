"""Load the battle library (the external listing of known battles)."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Iterable

from loguru import logger

from app.domain import MarketSummary

from .normalize import normalize_summary


def _read_rows(path: Path) -> Iterable[dict[str, Any]]:
    if path.suffix.lower() == ".csv":
        with path.open(newline="", encoding="utf-8") as handle:
            yield from csv.DictReader(handle)
        return

    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("battles") or payload.get("items") or []
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a list of battles")
    for row in payload:
        if isinstance(row, dict):
            yield row


def load_library(path: str | Path) -> list[MarketSummary]:
    """Normalize every row of ``path``; malformed rows are skipped with a warning."""

    source = Path(path)
    summaries: list[MarketSummary] = []
    seen: set[str] = set()
    for index, row in enumerate(_read_rows(source)):
        try:
            summary = normalize_summary(row)
        except ValueError as exc:
            logger.warning("Skipping library row {} in {}: {}", index, source, exc)
            continue
        if summary.id in seen:
            logger.warning("Duplicate battle {} in {}; keeping first entry", summary.id, source)
            continue
        seen.add(summary.id)
        summaries.append(summary)
    logger.info("Loaded {} battles from {}", len(summaries), source)
    return summaries


def find_summary(summaries: Iterable[MarketSummary], market_id: str) -> MarketSummary | None:
    """Look a battle up by its listing id or its numeric on-chain id."""

    for summary in summaries:
        if summary.id == market_id or str(summary.battle_id) == market_id:
            return summary
    return None
