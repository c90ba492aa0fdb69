"""Shared test fixtures: fake data sources and snapshot builders."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from rugscope.models.market import (
    FallbackMarketData,
    MarketData,
    PoolDetail,
    PoolRef,
    TokenInfo,
    TrendingPool,
)
from rugscope.models.token import (
    Candle,
    LiquidityPool,
    PoolTransactions,
    Token,
    TokenAuthorities,
    TokenHolder,
    Trade,
    TxCounts,
)

BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
JUP = "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN"
WIF = "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm"

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class FakeMarketSource:
    """In-memory primary market source. Names in ``fail`` raise on call."""

    def __init__(
        self,
        *,
        infos: dict[str, TokenInfo] | None = None,
        markets: dict[str, MarketData] | None = None,
        details: dict[str, PoolDetail] | None = None,
        holders: dict[str, list[TokenHolder]] | None = None,
        trades: dict[tuple[str, float], list[Trade]] | None = None,
        candles: dict[tuple[str, str], list[Candle]] | None = None,
        trending: list[TrendingPool] | None = None,
        fail: set[str] | None = None,
    ) -> None:
        self.infos = infos or {}
        self.markets = markets or {}
        self.details = details or {}
        self.holders = holders or {}
        self.trades = trades or {}
        self.candles = candles or {}
        self.trending = trending or []
        self.fail = fail or set()
        self.calls: list[tuple[Any, ...]] = []
        self.closed = False

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.fail:
            raise RuntimeError(f"{name} exploded")

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]

    async def fetch_token_info(self, mint: str) -> TokenInfo | None:
        self._record("info", mint)
        return self.infos.get(mint)

    async def fetch_token_market_data(self, mint: str) -> MarketData | None:
        self._record("market", mint)
        return self.markets.get(mint)

    async def fetch_multiple_market_data(self, mints: list[str]) -> dict[str, MarketData]:
        self._record("multi", tuple(mints))
        return {m: self.markets[m] for m in mints if m in self.markets}

    async def fetch_pool_detail(self, pool_address: str) -> PoolDetail | None:
        self._record("pool", pool_address)
        return self.details.get(pool_address)

    async def fetch_top_holders(self, mint: str, count: int = 10) -> list[TokenHolder]:
        self._record("holders", mint, count)
        return self.holders.get(mint, [])[:count]

    async def fetch_recent_trades(self, mint: str, min_volume_usd: float = 0) -> list[Trade]:
        self._record("trades", mint, min_volume_usd)
        return self.trades.get((mint, min_volume_usd), [])

    async def fetch_ohlcv(self, mint: str, timeframe: str = "day", limit: int = 30) -> list[Candle]:
        self._record("ohlcv", mint, timeframe, limit)
        return self.candles.get((mint, timeframe), [])

    async def fetch_trending_pools(self, limit: int = 100, window: str = "24h") -> list[TrendingPool]:
        self._record("trending", limit, window)
        return self.trending[:limit]

    async def close(self) -> None:
        self.closed = True


class FakeOnchainSource:
    def __init__(
        self,
        supply: dict[str, int] | None = None,
        authorities: dict[str, TokenAuthorities] | None = None,
    ) -> None:
        self.supply = supply or {}
        self.authorities = authorities or {}

    async def fetch_onchain_supply(self, mint: str) -> int | None:
        return self.supply.get(mint)

    async def fetch_onchain_authorities(self, mint: str) -> TokenAuthorities | None:
        return self.authorities.get(mint)


class FakeFallbackSource:
    def __init__(self, data: dict[str, FallbackMarketData] | None = None) -> None:
        self.data = data or {}
        self.calls: list[str] = []

    async def fetch_fallback_market(self, mint: str) -> FallbackMarketData | None:
        self.calls.append(mint)
        return self.data.get(mint)


class MemoryCache:
    """Dict-backed cache that records writes."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.writes: list[tuple[str, int]] = []

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, ttl_sec: int) -> None:
        self.store[key] = value
        self.writes.append((key, ttl_sec))


def pool_ref(address: str = "pool_main", **overrides: Any) -> PoolRef:
    defaults: dict[str, Any] = {
        "address": address,
        "reserve_usd": 250_000.0,
        "volume_24h": 400_000.0,
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
    }
    defaults.update(overrides)
    return PoolRef(**defaults)


def market_data(mint: str, **overrides: Any) -> MarketData:
    defaults: dict[str, Any] = {
        "address": mint,
        "name": "Market Name",
        "symbol": "MKT",
        "decimals": 6,
        "price_usd": 0.5,
        "fdv_usd": 9_000_000.0,
        "market_cap_usd": 5_000_000.0,
        "volume_24h": 400_000.0,
        "price_change_24h": 3.5,
        "top_pool": pool_ref(f"pool_{mint[:6]}"),
    }
    defaults.update(overrides)
    return MarketData(**defaults)


def token_info(**overrides: Any) -> TokenInfo:
    defaults: dict[str, Any] = {
        "name": "Info Name",
        "symbol": "INFO",
        "image_url": "https://img.example/token.png",
        "websites": ("https://token.example",),
        "twitter_handle": "tokenx",
        "telegram_handle": "tokenchat",
        "holder_count": 12_000,
        "top10_percentage": 22.0,
        "authorities": TokenAuthorities(),
        "gt_score": 80.0,
        "is_honeypot": False,
    }
    defaults.update(overrides)
    return TokenInfo(**defaults)


def make_token(mint: str = BONK, **overrides: Any) -> Token:
    """A healthy, established token; override fields to make it risky."""
    defaults: dict[str, Any] = {
        "mint": mint,
        "symbol": "TKN",
        "name": "Token",
        "price": 1.0,
        "market_cap": 5_000_000.0,
        "volume_24h": 2_000_000.0,
        "holder_count": 10_000,
        "top_holders_percentage": 15.0,
        "authorities": TokenAuthorities(),
        "total_liquidity": 2_000_000.0,
        "pools": (
            LiquidityPool(
                pool_address="pool_main",
                base_token=mint,
                tvl_usd=2_000_000.0,
                transactions=PoolTransactions(
                    h24=TxCounts(buys=600, sells=400, buyers=300, sellers=200),
                ),
            ),
        ),
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
        "gt_score": 90.0,
        "is_honeypot": False,
    }
    defaults.update(overrides)
    return Token(**defaults)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def token_factory() -> Callable[..., Token]:
    return make_token


@pytest.fixture
def fake_market() -> FakeMarketSource:
    return FakeMarketSource()


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()
