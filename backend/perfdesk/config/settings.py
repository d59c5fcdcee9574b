from __future__ import annotations

from typing import List, Literal

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SOURCE_URL = "https://my.socialtradertools.com/view/MyimZHO9sgMkMxiw"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class MetricLabels(BaseModel):
    account_details: List[str] = Field(
        default_factory=lambda: [
            "Growth",
            "Profit/Loss",
            "Balance",
            "Equity",
            "Equity Percentage",
        ]
    )
    trading_stats: List[str] = Field(
        default_factory=lambda: [
            "Total Trades",
            "Win %",
            "Loss %",
            "Lots",
            "Best Trade",
            "Worst Trade",
            "Average Win",
            "Average Loss",
            "Longs Won",
            "Shorts Won",
            "Commissions",
            "Swap",
        ]
    )
    account_info: List[str] = Field(
        default_factory=lambda: [
            "Broker",
            "Broker Server",
            "Deposits",
            "Withdrawals",
            "Application",
            "Leverage",
            "Account Type",
        ]
    )
    updated: str = "Updated"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PERFDESK_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    source_url: str = DEFAULT_SOURCE_URL
    user_agent: str = DEFAULT_USER_AGENT
    fetch_timeout_seconds: float = 10.0
    cache_ttl_seconds: int = 24 * 60 * 60

    series_variable: str = "growthData"
    series_timeout_ms: int = 50

    snapshot_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "PERFDESK_REDIS_URL"),
    )
    snapshot_cache_key: str = "perfdesk:social-trading:snapshot"

    log_level: str = "INFO"

    labels: MetricLabels = Field(default_factory=MetricLabels)


settings = Settings()
