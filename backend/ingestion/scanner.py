"""Transfer ledger scanning for a single battle.

The transaction feed does not say which side of a battle a deposit went to,
so per-side volume is an estimate produced by :func:`split_volume`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Mapping, Protocol

from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import RecentTrade, TraderFlow, TransferAttribution

from .client import UpstreamError
from .decoder import LAMPORTS_PER_SOL

FIXED_SPLIT_RATIO_A = 0.55


class TransactionFetcher(Protocol):
    def __call__(
        self, address: str, *, limit: int, before: str | None = None
    ) -> Awaitable[list[dict[str, Any]]]: ...


def split_volume(
    total_volume: float,
    balance_a: float,
    balance_b: float,
    *,
    strategy: str = "tvl_ratio",
    fixed_ratio_a: float = FIXED_SPLIT_RATIO_A,
) -> tuple[float, float]:
    """Attribute ``total_volume`` to sides A and B.

    ``tvl_ratio`` weights by the current pool balances; ``fixed`` applies a
    constant share. Either way the two parts add back up to the total.
    """

    if strategy == "fixed":
        ratio_a = fixed_ratio_a
    elif strategy == "tvl_ratio":
        total_tvl = (balance_a + balance_b) or 1
        ratio_a = balance_a / total_tvl
    else:
        raise ValueError(f"Unknown volume split strategy: {strategy}")
    volume_a = total_volume * ratio_a
    return volume_a, total_volume - volume_a


def classify_transfer(
    transfer: Mapping[str, Any], battle_address: str, vault_address: str
) -> tuple[str, str] | None:
    """Return ``(direction, counterparty)`` or ``None`` when unrelated to the battle."""

    battle_accounts = (vault_address, battle_address)
    destination = transfer.get("toUserAccount")
    source = transfer.get("fromUserAccount")
    if destination in battle_accounts:
        return "BUY", source or ""
    if source in battle_accounts:
        return "SELL", destination or ""
    return None


@dataclass(slots=True)
class _ScanAccumulator:
    recent_limit: int
    trade_count: int = 0
    total_volume: float = 0.0
    traders: set[str] = field(default_factory=set)
    recent_trades: list[RecentTrade] = field(default_factory=list)
    flows: dict[str, TraderFlow] = field(default_factory=dict)

    def add_record(self, record: Mapping[str, Any], battle_address: str, vault_address: str) -> None:
        transfers = record.get("nativeTransfers") or []
        trade_value = 0.0
        direction: str | None = None
        trader = ""

        for transfer in transfers:
            classified = classify_transfer(transfer, battle_address, vault_address)
            if classified is None:
                continue
            direction, counterparty = classified
            amount = abs(float(transfer.get("amount") or 0)) / LAMPORTS_PER_SOL
            trade_value += amount
            if not counterparty:
                continue
            trader = counterparty
            self.traders.add(counterparty)
            flow = self.flows.setdefault(counterparty, TraderFlow())
            if direction == "BUY":
                flow.invested += amount
            else:
                flow.payout += amount

        if trade_value <= 0 or not trader or direction is None:
            return

        self.trade_count += 1
        self.total_volume += trade_value
        if len(self.recent_trades) < self.recent_limit:
            self.recent_trades.append(
                RecentTrade(
                    signature=str(record.get("signature") or ""),
                    amount=trade_value,
                    direction=direction,
                    trader=trader,
                    timestamp=int(record.get("timestamp") or 0) * 1000,
                )
            )


class TransferLedgerScanner:
    """Pages a battle's transaction feed and folds it into a :class:`TransferAttribution`."""

    def __init__(
        self,
        fetch_transactions: TransactionFetcher,
        *,
        settings: Settings | None = None,
        page_size: int | None = None,
        max_records: int | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._fetch = fetch_transactions
        self.page_size = page_size or settings.history_page_size
        self.max_records = max_records or settings.history_max_records
        self.recent_limit = settings.recent_trades_limit
        self.split_strategy = settings.volume_split_strategy
        self.fixed_ratio_a = settings.fixed_split_ratio_a

    async def scan(
        self,
        battle_address: str,
        vault_address: str,
        balance_a: float,
        balance_b: float,
    ) -> TransferAttribution:
        acc = _ScanAccumulator(recent_limit=self.recent_limit)
        cursor: str | None = None
        fetched = 0
        complete = True

        while fetched < self.max_records:
            limit = min(self.page_size, self.max_records - fetched)
            try:
                page = await self._fetch(battle_address, limit=limit, before=cursor)
            except UpstreamError as exc:
                logger.warning(
                    "History scan for {} stopped after {} records: {}",
                    battle_address,
                    fetched,
                    exc,
                )
                complete = False
                break

            if not page:
                break

            for record in page:
                acc.add_record(record, battle_address, vault_address)
                cursor = record.get("signature") or cursor

            fetched += len(page)
            if len(page) < limit:
                break

        volume_a, volume_b = split_volume(
            acc.total_volume,
            balance_a,
            balance_b,
            strategy=self.split_strategy,
            fixed_ratio_a=self.fixed_ratio_a,
        )
        return TransferAttribution(
            trade_count=acc.trade_count,
            unique_traders=len(acc.traders),
            recent_trades=tuple(acc.recent_trades),
            total_volume=acc.total_volume,
            volume_a=volume_a,
            volume_b=volume_b,
            trader_flows=acc.flows,
            complete=complete,
        )
