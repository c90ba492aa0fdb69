"""Collaborator interfaces consumed by the aggregator.

Every fetch returns a normalized DTO or an explicit absence value
(``None``, ``[]``, ``{}``); none raise for 404/429/5xx upstream errors.
"""

from typing import Protocol

from rugscope.models.market import (
    FallbackMarketData,
    MarketData,
    PoolDetail,
    TokenInfo,
    TrendingPool,
)
from rugscope.models.token import Candle, TokenAuthorities, TokenHolder, Trade


class MarketDataSource(Protocol):
    async def fetch_token_info(self, mint: str) -> TokenInfo | None: ...

    async def fetch_token_market_data(self, mint: str) -> MarketData | None: ...

    async def fetch_multiple_market_data(self, mints: list[str]) -> dict[str, MarketData]: ...

    async def fetch_pool_detail(self, pool_address: str) -> PoolDetail | None: ...

    async def fetch_top_holders(self, mint: str, count: int = 10) -> list[TokenHolder]: ...

    async def fetch_recent_trades(self, mint: str, min_volume_usd: float = 0) -> list[Trade]: ...

    async def fetch_ohlcv(self, mint: str, timeframe: str = "day", limit: int = 30) -> list[Candle]: ...

    async def fetch_trending_pools(self, limit: int = 100, window: str = "24h") -> list[TrendingPool]: ...


class OnchainSource(Protocol):
    async def fetch_onchain_supply(self, mint: str) -> int | None: ...

    async def fetch_onchain_authorities(self, mint: str) -> TokenAuthorities | None: ...


class FallbackMarketSource(Protocol):
    async def fetch_fallback_market(self, mint: str) -> FallbackMarketData | None: ...


class Cache(Protocol):
    """Advisory text cache. Never raises; errors read as a miss."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_sec: int) -> None: ...
