from functools import lru_cache
from typing import Any

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


VOLUME_SPLIT_STRATEGIES = {"tvl_ratio", "fixed"}
REPLAY_MODES = {"interpolated", "stochastic"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    log_level: str = Field(default="INFO", description="Minimum loguru level for the stderr sink")
    helius_api_key: str = Field(
        default="",
        description="Helius API key used for both RPC and enhanced transaction endpoints",
    )
    solana_rpc_url: AnyUrl | str | None = Field(
        default=None,
        description="Override for the Solana JSON-RPC endpoint (defaults to Helius mainnet RPC)",
    )
    helius_api_base: AnyUrl = Field(
        default="https://api-mainnet.helius-rpc.com",
        description="Base URL for the Helius enhanced transactions API",
    )
    program_id: str = Field(
        default="9TUfEHvk5fN5vogtQyrefgNqzKy2Bqb4nWVhSFUg2fYo",
        description="Battle program id used to derive battle and vault addresses",
    )
    battle_seed: str = Field(default="battle", description="PDA seed for the battle account")
    vault_seed: str = Field(default="battle_vault", description="PDA seed for the battle vault")
    library_path: str | None = Field(
        default=None,
        description="JSON or CSV file listing known battles",
    )
    request_timeout_seconds: float = Field(default=15.0, gt=0)
    retry_attempts: int = Field(
        default=2,
        description="Number of retries after the first failed upstream request",
        ge=0,
    )
    retry_base_delay_seconds: float = Field(
        default=0.5,
        description="Initial backoff delay; doubled after every retry",
        gt=0,
    )
    history_page_size: int = Field(
        default=50, description="Transactions requested per history page", ge=1
    )
    history_max_records: int = Field(
        default=100, description="Upper bound on transactions scanned per battle", ge=1
    )
    recent_trades_limit: int = Field(
        default=20, description="Most recent trades kept per battle scan", ge=0, le=20
    )
    volume_split_strategy: str = Field(
        default="tvl_ratio",
        description="How scanned volume is attributed to sides (tvl_ratio|fixed)",
    )
    fixed_split_ratio_a: float = Field(
        default=0.55,
        description="Share of volume attributed to side A by the fixed split strategy",
        ge=0.0,
        le=1.0,
    )
    tie_break_side: str = Field(
        default="A",
        description="Side awarded the win when both pools are exactly equal",
    )
    cache_ttl_seconds: float = Field(default=30.0, description="Battle state cache TTL", ge=0)
    scan_batch_size: int = Field(
        default=2,
        description="Number of battles fetched concurrently during leaderboard scans",
        ge=1,
    )
    scan_batch_delay_seconds: float = Field(
        default=1.0,
        description="Pause between scan batches to respect upstream rate limits",
        ge=0,
    )
    poll_interval_seconds: float = Field(default=15.0, gt=0)
    sol_price_url: AnyUrl = Field(
        default="https://api.coingecko.com/api/v3/simple/price?ids=solana&vs_currencies=usd",
        description="Endpoint returning the SOL/USD quote",
    )
    sol_price_fallback_usd: float = Field(
        default=180.0,
        description="SOL/USD rate used when the price quote is unavailable",
        gt=0,
    )
    usd_per_stream: float = Field(
        default=0.003,
        description="Payout per stream used for the stream-equivalent metric",
        gt=0,
    )
    whale_trade_threshold_sol: float = Field(default=0.5, ge=0)
    replay_mode: str = Field(default="interpolated", description="interpolated|stochastic")
    replay_points: int = Field(default=100, ge=1)

    @field_validator("volume_split_strategy")
    @classmethod
    def _validate_split_strategy(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in VOLUME_SPLIT_STRATEGIES:
            raise ValueError(
                "volume_split_strategy must be one of: "
                + ", ".join(sorted(VOLUME_SPLIT_STRATEGIES))
            )
        return normalized

    @field_validator("replay_mode")
    @classmethod
    def _validate_replay_mode(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in REPLAY_MODES:
            raise ValueError("replay_mode must be interpolated or stochastic")
        return normalized

    @field_validator("tie_break_side", mode="before")
    @classmethod
    def _validate_tie_break(cls, value: Any) -> str:
        candidate = str(value or "").strip().upper()
        if candidate not in {"A", "B"}:
            raise ValueError("tie_break_side must be A or B")
        return candidate

    @property
    def resolved_rpc_url(self) -> str:
        if self.solana_rpc_url:
            return str(self.solana_rpc_url)
        return f"https://mainnet.helius-rpc.com/?api-key={self.helius_api_key}"

    @property
    def retry_backoff_schedule(self) -> tuple[float, ...]:
        return tuple(
            self.retry_base_delay_seconds * (2**attempt) for attempt in range(self.retry_attempts)
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
