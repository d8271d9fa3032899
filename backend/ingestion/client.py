from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from loguru import logger

from app.core.config import Settings, get_settings

from .decoder import decode_account_data

T = TypeVar("T")

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class UpstreamError(RuntimeError):
    """Raised when an upstream call keeps failing after the retry budget."""


def _should_retry_exception(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS_CODES
    return isinstance(exc, httpx.TransportError)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    backoff_schedule: tuple[float, ...],
    description: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` retrying rate limits and transport failures.

    ``backoff_schedule`` holds one delay per retry, so its length is the
    retry budget.
    """

    total_attempts = len(backoff_schedule) + 1
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except (httpx.HTTPStatusError, httpx.TransportError) as exc:
            retryable = _should_retry_exception(exc) and attempt < total_attempts
            status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
            logger.warning(
                "Upstream request failed call={} error={} status={} attempt={}/{} retryable={}",
                description,
                exc.__class__.__name__,
                status,
                attempt,
                total_attempts,
                retryable,
            )
            if not retryable:
                raise UpstreamError(f"{description} failed: {exc.__class__.__name__}") from exc
            await sleep(backoff_schedule[attempt - 1])


class SolanaClient:
    """Async wrapper around Solana JSON-RPC and the Helius transactions API."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        rpc_url: str | None = None,
        api_base: str | None = None,
        api_key: str | None = None,
        backoff_schedule: tuple[float, ...] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        settings = settings or get_settings()
        self.rpc_url = rpc_url or settings.resolved_rpc_url
        self.api_base = (api_base or str(settings.helius_api_base)).rstrip("/")
        self.api_key = settings.helius_api_key if api_key is None else api_key
        self.backoff_schedule = (
            settings.retry_backoff_schedule if backoff_schedule is None else backoff_schedule
        )
        self._sleep = sleep
        self.client = httpx.AsyncClient(
            timeout=settings.request_timeout_seconds, transport=transport
        )

    async def _get_json(self, url: str, params: dict[str, Any]) -> Any:
        response = await self.client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    async def _post_json(self, url: str, payload: dict[str, Any]) -> Any:
        response = await self.client.post(url, json=payload)
        response.raise_for_status()
        return response.json()

    async def get_account_info(self, address: str) -> bytes | None:
        """Return the raw account data, or ``None`` when the account does not exist."""

        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getAccountInfo",
            "params": [address, {"encoding": "base64"}],
        }
        data = await call_with_retry(
            lambda: self._post_json(self.rpc_url, payload),
            backoff_schedule=self.backoff_schedule,
            description=f"getAccountInfo {address}",
            sleep=self._sleep,
        )
        if isinstance(data, dict) and data.get("error"):
            raise UpstreamError(f"getAccountInfo {address} returned error: {data['error']}")
        value = (data.get("result") or {}).get("value") if isinstance(data, dict) else None
        if not value:
            return None
        return decode_account_data(value.get("data"))

    async def get_transactions(
        self, address: str, *, limit: int, before: str | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"api-key": self.api_key, "limit": limit}
        if before:
            params["before"] = before
        url = f"{self.api_base}/v0/addresses/{address}/transactions"
        logger.debug("Helius GET {} limit={} before={}", url, limit, before)
        data = await call_with_retry(
            lambda: self._get_json(url, params),
            backoff_schedule=self.backoff_schedule,
            description=f"transactions {address}",
            sleep=self._sleep,
        )
        return data if isinstance(data, list) else []

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "SolanaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
