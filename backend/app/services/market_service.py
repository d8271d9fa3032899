"""Battle state retrieval: caching, batched scans, and live polling."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence

from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import MarketState, MarketSummary
from ingestion.client import SolanaClient, UpstreamError
from ingestion.decoder import MalformedRecordError
from ingestion.service import fetch_market_state

from .cache import MarketStateCache

StateFetcher = Callable[[MarketSummary], Awaitable[MarketState]]
StateCallback = Callable[[MarketState], None]


class CancellationToken:
    """Caller-owned flag checked between scan batches."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class MarketService:
    """Read-through access to battle states backed by a TTL cache."""

    def __init__(
        self,
        client: SolanaClient | None = None,
        *,
        settings: Settings | None = None,
        cache: MarketStateCache | None = None,
        fetcher: StateFetcher | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else MarketStateCache(self.settings.cache_ttl_seconds)
        if fetcher is None:
            if client is None:
                client = SolanaClient(settings=self.settings)
            bound_client = client

            async def fetcher(summary: MarketSummary) -> MarketState:
                return await fetch_market_state(summary, bound_client, settings=self.settings)

        self._client = client
        self._fetch = fetcher
        self._sleep = sleep

    async def get_market_state(
        self, summary: MarketSummary, *, force_refresh: bool = False
    ) -> MarketState:
        key = summary.id
        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        async with self.cache.lock_for(key):
            if not force_refresh:
                cached = self.cache.get(key)
                if cached is not None:
                    return cached
            state = await self._fetch(summary)
            self.cache.put(key, state)
            return state

    async def scan_markets(
        self,
        summaries: Sequence[MarketSummary],
        *,
        cancel: CancellationToken | None = None,
        on_batch: Callable[[list[MarketState], int], None] | None = None,
    ) -> list[MarketState]:
        """Hydrate ``summaries`` in bounded concurrent batches.

        Battles that fail to load are logged and left out. Once ``cancel`` is
        set no further batch starts; states gathered so far are returned.
        """

        batch_size = self.settings.scan_batch_size
        delay = self.settings.scan_batch_delay_seconds
        results: list[MarketState] = []

        for offset in range(0, len(summaries), batch_size):
            if cancel is not None and cancel.cancelled:
                logger.info("Battle scan cancelled after {} of {}", offset, len(summaries))
                break

            batch = summaries[offset : offset + batch_size]
            outcomes = await asyncio.gather(
                *(self.get_market_state(summary) for summary in batch),
                return_exceptions=True,
            )
            for summary, outcome in zip(batch, outcomes):
                if isinstance(outcome, (UpstreamError, MalformedRecordError)):
                    logger.warning("Skipping battle {} during scan: {}", summary.battle_id, outcome)
                    continue
                if isinstance(outcome, BaseException):
                    raise outcome
                results.append(outcome)

            processed = min(offset + batch_size, len(summaries))
            if on_batch is not None:
                on_batch(list(results), processed)
            if processed < len(summaries) and delay > 0:
                await self._sleep(delay)

        return results

    def poll(
        self, summary: MarketSummary, on_update: StateCallback | None = None
    ) -> "MarketPoller":
        return MarketPoller(
            self,
            summary,
            interval_seconds=self.settings.poll_interval_seconds,
            on_update=on_update,
            sleep=self._sleep,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


class MarketPoller:
    """Background refresh of one battle until it ends or ``stop`` is called."""

    def __init__(
        self,
        service: MarketService,
        summary: MarketSummary,
        *,
        interval_seconds: float,
        on_update: StateCallback | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._service = service
        self._sleep = sleep
        self._summary = summary
        self.interval_seconds = interval_seconds
        self._on_update = on_update
        self._task: asyncio.Task[None] | None = None
        self.latest: MarketState | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "MarketPoller":
        if not self.running:
            self._task = asyncio.create_task(self._run())
        return self

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        while True:
            await self._sleep(self.interval_seconds)
            try:
                state = await self._service.get_market_state(self._summary, force_refresh=True)
            except UpstreamError as exc:
                logger.warning("Refresh of battle {} failed: {}", self._summary.battle_id, exc)
                continue
            except MalformedRecordError:
                logger.exception("Battle {} account no longer decodes; polling stopped", self._summary.battle_id)
                return

            self.latest = state
            if self._on_update is not None:
                self._on_update(state)
            if state.is_ended:
                logger.info("Battle {} ended; polling stopped", self._summary.battle_id)
                return
