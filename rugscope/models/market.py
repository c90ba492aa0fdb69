"""Normalized data-source DTOs.

Adapters translate their wire formats into these shapes; nothing else
crosses from a data source into the aggregator.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from rugscope.models.token import (
    PoolTransactions,
    TimeframePriceChange,
    TimeframeVolume,
    TokenAuthorities,
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class TokenInfo(_Frozen):
    """Metadata, holder stats, authority flags and security metadata."""

    name: str | None = None
    symbol: str | None = None
    image_url: str | None = None
    websites: tuple[str, ...] = ()
    twitter_handle: str | None = None
    telegram_handle: str | None = None
    holder_count: int = 0
    top10_percentage: float = 0.0
    authorities: TokenAuthorities | None = None
    gt_score: float = 0.0
    is_honeypot: bool | None = None


class PoolRef(_Frozen):
    """Basic pool reference as returned alongside market data."""

    address: str
    reserve_usd: float = 0.0
    volume_24h: float = 0.0
    created_at: datetime | None = None
    locked_liquidity_percentage: float = 0.0
    transactions: PoolTransactions | None = None
    volume_usd: TimeframeVolume | None = None
    price_change_percentage: TimeframePriceChange | None = None


class PoolDetail(_Frozen):
    """Enhanced pool data: buy/sell counts and timeframe breakdowns."""

    address: str
    reserve_usd: float = 0.0
    price_usd: float = 0.0
    price_change_percentage: TimeframePriceChange = Field(default_factory=TimeframePriceChange)
    transactions: PoolTransactions = Field(default_factory=PoolTransactions)
    volume_usd: TimeframeVolume = Field(default_factory=TimeframeVolume)
    created_at: datetime | None = None
    locked_liquidity_percentage: float = 0.0


class MarketData(_Frozen):
    address: str
    name: str | None = None
    symbol: str | None = None
    decimals: int = 9
    price_usd: float = 0.0
    fdv_usd: float = 0.0
    market_cap_usd: float | None = None
    volume_24h: float = 0.0
    price_change_24h: float = 0.0
    image_url: str | None = None
    top_pool: PoolRef | None = None


class TrendingPool(_Frozen):
    """One trending pool, keyed by its base token."""

    token_address: str
    name: str = ""
    pool: PoolRef


class FallbackMarketData(_Frozen):
    """Secondary market source snapshot (price/volume when primary fails)."""

    address: str
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    price_usd: float = 0.0
    price_change_24h: float = 0.0
    volume_24h: float = 0.0
    market_cap: float = 0.0
    liquidity_usd: float = 0.0
    holder_count: int = 0
