"""Token aggregation pipeline.

Fetches from the primary market source, the on-chain source and (when the
primary has no market data) the fallback source, merges the partial results
into one immutable ``Token`` snapshot, scores it and writes it through the
cache.

Single lookup:
    Phase 1 (concurrent): token info, market data + top pool, on-chain supply,
    on-chain authorities, top holders, recent-trades cascade, OHLCV cascade.
    Phase 2: pool detail for the top pool (needs its address from phase 1).

Only the absence of market data from both the primary and the fallback
source makes a lookup fail (``None`` / dropped from a batch). Every other
failure leaves its field absent and is logged.
"""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

from loguru import logger

from rugscope.db.cache import NullCache, RedisCache, token_key, trending_key
from rugscope.db.codec import decode_token, decode_tokens, encode_token, encode_tokens
from rugscope.models.market import (
    FallbackMarketData,
    MarketData,
    PoolDetail,
    PoolRef,
    TokenInfo,
    TrendingPool,
)
from rugscope.models.token import (
    LiquidityPool,
    OHLCVAnalysis,
    RecentTrades,
    Token,
    TokenAuthorities,
    TokenHolder,
)
from rugscope.parsers.ohlcv_analysis import build_ohlcv_analysis
from rugscope.parsers.risk_calculator import RiskCalculator
from rugscope.parsers.sources import Cache, FallbackMarketSource, MarketDataSource, OnchainSource
from rugscope.parsers.trade_analysis import build_recent_trades
from rugscope.utils.addr import EXCLUDED_TRENDING_MINTS, is_valid_mint

T = TypeVar("T")

# Minimum trade size (USD) per attempt, first non-empty result wins
TRADE_VOLUME_CASCADE: tuple[float, ...] = (10.0, 1.0)
# (timeframe, candle limit) per attempt, coarse to fine
OHLCV_CASCADE: tuple[tuple[str, int], ...] = (("day", 30), ("hour", 24), ("minute", 60))

TRENDING_WINDOW = "24h"

WELL_KNOWN_MINTS: tuple[str, ...] = (
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",  # BONK
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",  # JUP
    "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",  # WIF
)


@dataclass(frozen=True)
class AggregatorConfig:
    token_cache_ttl_sec: int = 60
    trending_cache_ttl_sec: int = 3600
    fetch_timeout_sec: float = 20.0
    batch_size: int = 50
    max_batch_mints: int = 100
    single_holders_count: int = 10
    batch_holders_count: int = 5
    trending_batch_size: int = 5
    trending_token_delay_sec: float = 0.2
    trending_call_delay_sec: float = 0.5
    trending_batch_delay_sec: float = 1.0

    @classmethod
    def from_settings(cls, settings: Any) -> "AggregatorConfig":
        return cls(
            token_cache_ttl_sec=settings.token_cache_ttl_sec,
            trending_cache_ttl_sec=settings.trending_cache_ttl_sec,
            fetch_timeout_sec=settings.fetch_timeout_sec,
            batch_size=settings.batch_size,
            max_batch_mints=settings.max_batch_mints,
            single_holders_count=settings.single_holders_count,
            batch_holders_count=settings.batch_holders_count,
            trending_batch_size=settings.trending_batch_size,
            trending_token_delay_sec=settings.trending_token_delay_sec,
            trending_call_delay_sec=settings.trending_call_delay_sec,
            trending_batch_delay_sec=settings.trending_batch_delay_sec,
        )


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenAggregator:
    def __init__(
        self,
        market: MarketDataSource,
        onchain: OnchainSource | None = None,
        fallback: FallbackMarketSource | None = None,
        cache: Cache | None = None,
        calculator: RiskCalculator | None = None,
        config: AggregatorConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._market = market
        self._onchain = onchain
        self._fallback = fallback
        self._cache: Cache = cache or NullCache()
        self._calculator = calculator or RiskCalculator()
        self._config = config or AggregatorConfig()
        self._clock = clock
        self._sleep = sleep

    async def close(self) -> None:
        """Close adapters and the cache that expose ``close()``."""
        for resource in (self._market, self._onchain, self._fallback, self._cache):
            close = getattr(resource, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.warning(f"[AGG] close failed for {type(resource).__name__}: {e}")

    # --- guarded branches ---

    async def _guarded(self, what: str, coro: Coroutine[Any, Any, T], default: T) -> T:
        """Await one branch within the timeout budget; any failure gives ``default``."""
        try:
            return await asyncio.wait_for(coro, timeout=self._config.fetch_timeout_sec)
        except TimeoutError:
            logger.warning(f"[AGG] {what} timed out after {self._config.fetch_timeout_sec}s")
        except Exception as e:
            logger.warning(f"[AGG] {what} failed: {type(e).__name__}: {e}")
        return default

    async def _recent_trades(self, mint: str) -> RecentTrades | None:
        for min_volume in TRADE_VOLUME_CASCADE:
            trades = await self._guarded(
                f"trades >${min_volume:g} for {mint[:12]}",
                self._market.fetch_recent_trades(mint, min_volume),
                [],
            )
            if trades:
                return build_recent_trades(trades, min_volume)
        logger.debug(f"[AGG] no recent trades for {mint[:12]}")
        return None

    async def _ohlcv(self, mint: str) -> OHLCVAnalysis | None:
        for timeframe, limit in OHLCV_CASCADE:
            candles = await self._guarded(
                f"ohlcv/{timeframe} for {mint[:12]}",
                self._market.fetch_ohlcv(mint, timeframe, limit),
                [],
            )
            if candles:
                return build_ohlcv_analysis(candles, timeframe)
        logger.debug(f"[AGG] no OHLCV for {mint[:12]}")
        return None

    async def _onchain_supply(self, mint: str) -> int | None:
        if self._onchain is None:
            return None
        return await self._guarded(f"supply for {mint[:12]}", self._onchain.fetch_onchain_supply(mint), None)

    async def _onchain_authorities(self, mint: str) -> TokenAuthorities | None:
        if self._onchain is None:
            return None
        return await self._guarded(
            f"authorities for {mint[:12]}", self._onchain.fetch_onchain_authorities(mint), None,
        )

    async def _pool_detail(self, pool: PoolRef | None) -> PoolDetail | None:
        if pool is None:
            return None
        return await self._guarded(
            f"pool detail {pool.address[:12]}", self._market.fetch_pool_detail(pool.address), None,
        )

    # --- single lookup ---

    async def get_complete_token_data(self, mint: str) -> Token | None:
        """Full scored snapshot for one mint, or None when no source knows it."""
        if not is_valid_mint(mint):
            logger.debug(f"[AGG] rejecting malformed mint {mint!r}")
            return None

        cached = decode_token(await self._cache.get(token_key(mint)))
        if cached is not None:
            logger.debug(f"[AGG] cache hit {mint[:12]}")
            return cached

        try:
            token = await self._build_token(mint)
        except Exception as e:
            logger.warning(f"[AGG] aggregation failed for {mint[:12]}: {type(e).__name__}: {e}")
            return None
        if token is None:
            return None

        await self._cache.set(token_key(mint), encode_token(token), self._config.token_cache_ttl_sec)
        return token

    async def _build_token(self, mint: str) -> Token | None:
        short = mint[:12]
        results = await asyncio.gather(
            self._guarded(f"token info for {short}", self._market.fetch_token_info(mint), None),
            self._guarded(f"market data for {short}", self._market.fetch_token_market_data(mint), None),
            self._onchain_supply(mint),
            self._onchain_authorities(mint),
            self._guarded(
                f"top holders for {short}",
                self._market.fetch_top_holders(mint, self._config.single_holders_count),
                [],
            ),
            self._recent_trades(mint),
            self._ohlcv(mint),
            return_exceptions=True,
        )

        # Sanitize: replace any leaked exceptions with absence
        names = ("info", "market", "supply", "authorities", "holders", "trades", "ohlcv")
        clean: list[Any] = []
        for name, value in zip(names, results, strict=True):
            if isinstance(value, BaseException):
                logger.warning(f"[AGG] {name} branch leaked {type(value).__name__} for {short}: {value}")
                value = [] if name == "holders" else None
            clean.append(value)
        info, market, supply, onchain_auth, holders, trades, ohlcv = clean

        if market is not None and market.address != mint:
            logger.warning(f"[AGG] market data for {short} names {market.address[:12]}, discarding")
            market = None

        now = self._clock()
        if market is None:
            return await self._from_fallback(
                mint,
                info=info,
                supply=supply,
                onchain_auth=onchain_auth,
                holders=holders,
                trades=trades,
                ohlcv=ohlcv,
                now=now,
            )

        detail = await self._pool_detail(market.top_pool)
        pool = _pool_from_ref(market.top_pool, mint, detail) if market.top_pool else None
        token = _assemble(
            mint,
            info=info,
            market=market,
            pool=pool,
            supply=supply,
            authorities=onchain_auth or (info.authorities if info else None),
            holders=holders,
            trades=trades,
            ohlcv=ohlcv,
            now=now,
        )
        return self._score(token, now)

    async def _from_fallback(
        self,
        mint: str,
        *,
        info: TokenInfo | None,
        supply: int | None,
        onchain_auth: TokenAuthorities | None,
        holders: list[TokenHolder],
        trades: RecentTrades | None,
        ohlcv: OHLCVAnalysis | None,
        now: datetime,
    ) -> Token | None:
        if self._fallback is None:
            logger.info(f"[AGG] {mint[:12]} not found on primary source, no fallback configured")
            return None
        data = await self._guarded(
            f"fallback market for {mint[:12]}", self._fallback.fetch_fallback_market(mint), None,
        )
        if data is None:
            logger.info(f"[AGG] {mint[:12]} not found on any market source")
            return None
        logger.info(f"[AGG] {mint[:12]} served from fallback market source")
        token = _assemble_fallback(
            mint,
            data=data,
            info=info,
            supply=supply,
            authorities=onchain_auth or (info.authorities if info else None),
            holders=holders,
            trades=trades,
            ohlcv=ohlcv,
            now=now,
        )
        return self._score(token, now)

    def _score(self, token: Token, now: datetime) -> Token:
        risk = self._calculator.calculate_risk_score(token, now)
        return token.model_copy(update={"risk_score": risk})

    # --- batch lookup ---

    def _normalize_mints(self, mints: list[str]) -> list[str]:
        seen: set[str] = set()
        result: list[str] = []
        for mint in mints:
            if mint in seen or not is_valid_mint(mint):
                continue
            seen.add(mint)
            result.append(mint)
        if len(result) > self._config.max_batch_mints:
            logger.warning(
                f"[AGG] batch of {len(result)} mints capped at {self._config.max_batch_mints}"
            )
            result = result[:self._config.max_batch_mints]
        return result

    async def get_multiple_tokens(self, mints: list[str]) -> list[Token]:
        """Scored snapshots for many mints, input order kept.

        Mints missing token info or market data are dropped, never returned partial.
        Sub-batches run one after another with a fixed pause between them.
        """
        unique = self._normalize_mints(mints)
        size = max(1, self._config.batch_size)
        tokens: list[Token] = []
        for start in range(0, len(unique), size):
            if start:
                await self._sleep(self._config.trending_batch_delay_sec)
            chunk = unique[start:start + size]
            try:
                tokens.extend(await self._process_batch(chunk))
            except Exception as e:
                logger.warning(f"[AGG] batch of {len(chunk)} failed: {type(e).__name__}: {e}")
        logger.debug(f"[AGG] batch lookup: {len(tokens)}/{len(unique)} tokens")
        return tokens

    async def _process_batch(self, mints: list[str]) -> list[Token]:
        holders_count = self._config.batch_holders_count
        market_map, infos, holders = await asyncio.gather(
            self._guarded(
                f"multi market data ({len(mints)} mints)",
                self._market.fetch_multiple_market_data(mints),
                {},
            ),
            asyncio.gather(*(
                self._guarded(f"token info for {m[:12]}", self._market.fetch_token_info(m), None)
                for m in mints
            )),
            asyncio.gather(*(
                self._guarded(
                    f"top holders for {m[:12]}", self._market.fetch_top_holders(m, holders_count), [],
                )
                for m in mints
            )),
        )

        markets: list[MarketData | None] = [market_map.get(m) for m in mints]
        details = await asyncio.gather(*(
            self._pool_detail(market.top_pool if market else None) for market in markets
        ))

        now = self._clock()
        tokens: list[Token] = []
        for mint, info, market, holder_list, detail in zip(
            mints, infos, markets, holders, details, strict=True,
        ):
            if info is None or market is None:
                logger.debug(f"[AGG] dropping {mint[:12]} from batch: missing info or market data")
                continue
            pool = _pool_from_ref(market.top_pool, mint, detail) if market.top_pool else None
            token = _assemble(
                mint,
                info=info,
                market=market,
                pool=pool,
                supply=None,
                authorities=info.authorities,
                holders=holder_list,
                trades=None,
                ohlcv=None,
                now=now,
            )
            tokens.append(self._score(token, now))
        return tokens

    # --- trending ---

    async def get_trending_tokens(self, limit: int = 100) -> list[Token]:
        """Cache, then live trending pools, then the well-known list."""
        if limit <= 0:
            return []
        cached = decode_tokens(await self._cache.get(trending_key()))
        if cached:
            logger.debug(f"[AGG] trending cache hit ({len(cached)} tokens)")
            return cached[:limit]
        return await self.refresh_trending_tokens(limit)

    async def refresh_trending_tokens(self, limit: int = 100) -> list[Token]:
        """Live trending path, bypassing the cache read. Writes back on success."""
        if limit <= 0:
            return []
        try:
            tokens = await self._live_trending(limit)
        except Exception as e:
            logger.warning(f"[AGG] live trending failed: {type(e).__name__}: {e}")
            tokens = []

        if tokens:
            await self._cache.set(
                trending_key(), encode_tokens(tokens), self._config.trending_cache_ttl_sec,
            )
            return tokens

        logger.warning("[AGG] trending unavailable, serving well-known tokens")
        well_known = await self.get_multiple_tokens(list(WELL_KNOWN_MINTS))
        return well_known[:limit]

    async def _live_trending(self, limit: int) -> list[Token]:
        pools = await self._guarded(
            "trending pools", self._market.fetch_trending_pools(limit * 2, TRENDING_WINDOW), [],
        )
        candidates: list[TrendingPool] = []
        seen: set[str] = set()
        for item in pools:
            address = item.token_address
            if address in EXCLUDED_TRENDING_MINTS or address in seen or not is_valid_mint(address):
                continue
            seen.add(address)
            candidates.append(item)
        candidates = candidates[:limit]
        if not candidates:
            return []

        size = max(1, self._config.trending_batch_size)
        tokens: list[Token] = []
        for start in range(0, len(candidates), size):
            if start:
                await self._sleep(self._config.trending_batch_delay_sec)
            tokens.extend(await self._process_trending_batch(candidates[start:start + size]))
        logger.info(f"[AGG] trending: {len(tokens)} tokens from {len(candidates)} candidates")
        return tokens

    async def _process_trending_batch(self, items: list[TrendingPool]) -> list[Token]:
        mints = [item.token_address for item in items]
        holders_count = self._config.batch_holders_count
        infos, market_map, holders = await asyncio.gather(
            asyncio.gather(*(
                self._guarded(f"token info for {m[:12]}", self._market.fetch_token_info(m), None)
                for m in mints
            )),
            self._guarded(
                f"multi market data ({len(mints)} mints)",
                self._market.fetch_multiple_market_data(mints),
                {},
            ),
            asyncio.gather(*(
                self._guarded(
                    f"top holders for {m[:12]}", self._market.fetch_top_holders(m, holders_count), [],
                )
                for m in mints
            )),
        )

        tokens: list[Token] = []
        # Per token, sequentially: trades cascade, pause, OHLCV cascade, pause
        for index, item in enumerate(items):
            mint = item.token_address
            info = infos[index]
            market = market_map.get(mint)
            if info is None or market is None:
                logger.debug(f"[AGG] dropping trending {mint[:12]}: missing info or market data")
                continue

            trades = await self._recent_trades(mint)
            await self._sleep(self._config.trending_call_delay_sec)
            ohlcv = await self._ohlcv(mint)

            now = self._clock()
            token = _assemble(
                mint,
                info=info,
                market=market,
                pool=_pool_from_ref(item.pool, mint, None),
                supply=None,
                authorities=info.authorities,
                holders=holders[index],
                trades=trades,
                ohlcv=ohlcv,
                now=now,
            )
            tokens.append(self._score(token, now))

            if index < len(items) - 1:
                await self._sleep(self._config.trending_token_delay_sec)
        return tokens


# --- merge helpers ---


def _pool_from_ref(ref: PoolRef, mint: str, detail: PoolDetail | None) -> LiquidityPool:
    """Representative pool; enhanced detail overrides the basic reference."""
    if detail is None:
        return LiquidityPool(
            pool_address=ref.address,
            base_token=mint,
            tvl_usd=ref.reserve_usd,
            volume_24h=ref.volume_24h,
            created_at=ref.created_at,
            locked_liquidity_percentage=ref.locked_liquidity_percentage,
            transactions=ref.transactions,
            volume_usd=ref.volume_usd,
            price_change_percentage=ref.price_change_percentage,
        )
    volume_24h = detail.volume_usd.h24
    return LiquidityPool(
        pool_address=ref.address,
        base_token=mint,
        tvl_usd=detail.reserve_usd or ref.reserve_usd,
        volume_24h=volume_24h if volume_24h is not None else ref.volume_24h,
        created_at=detail.created_at or ref.created_at,
        locked_liquidity_percentage=detail.locked_liquidity_percentage or ref.locked_liquidity_percentage,
        transactions=detail.transactions,
        volume_usd=detail.volume_usd,
        price_change_percentage=detail.price_change_percentage,
    )


def _social(info: TokenInfo | None) -> dict[str, str | None]:
    if info is None:
        return {"website": None, "twitter": None, "telegram": None}
    return {
        "website": info.websites[0] if info.websites else None,
        "twitter": f"https://twitter.com/{info.twitter_handle}" if info.twitter_handle else None,
        "telegram": f"https://t.me/{info.telegram_handle}" if info.telegram_handle else None,
    }


def _assemble(
    mint: str,
    *,
    info: TokenInfo | None,
    market: MarketData,
    pool: LiquidityPool | None,
    supply: int | None,
    authorities: TokenAuthorities | None,
    holders: list[TokenHolder],
    trades: RecentTrades | None,
    ohlcv: OHLCVAnalysis | None,
    now: datetime,
) -> Token:
    changes = pool.price_change_percentage if pool else None
    change_24h = changes.h24 if changes and changes.h24 is not None else market.price_change_24h

    return Token(
        mint=mint,
        symbol=(info.symbol if info else None) or market.symbol or "UNKNOWN",
        name=(info.name if info else None) or market.name or "Unknown",
        decimals=market.decimals,
        logo_uri=(info.image_url if info else None) or market.image_url,
        price=market.price_usd,
        price_change_5m=changes.m5 if changes else None,
        price_change_1h=changes.h1 if changes else None,
        price_change_6h=changes.h6 if changes else None,
        price_change_24h=change_24h,
        market_cap=market.market_cap_usd or market.fdv_usd,
        volume_24h=market.volume_24h,
        total_supply=supply,
        holder_count=info.holder_count if info else 0,
        top_holders_percentage=info.top10_percentage if info else 0.0,
        top_holders=tuple(holders),
        authorities=authorities,
        total_liquidity=pool.tvl_usd if pool else 0.0,
        pools=(pool,) if pool else (),
        created_at=pool.created_at if pool else None,
        gt_score=info.gt_score if info else 0.0,
        is_honeypot=info.is_honeypot if info else None,
        recent_trades=trades,
        ohlcv_analysis=ohlcv,
        source="primary",
        last_updated=now,
        **_social(info),
    )


def _assemble_fallback(
    mint: str,
    *,
    data: FallbackMarketData,
    info: TokenInfo | None,
    supply: int | None,
    authorities: TokenAuthorities | None,
    holders: list[TokenHolder],
    trades: RecentTrades | None,
    ohlcv: OHLCVAnalysis | None,
    now: datetime,
) -> Token:
    return Token(
        mint=mint,
        symbol=(info.symbol if info else None) or data.symbol or "UNKNOWN",
        name=(info.name if info else None) or data.name or "Unknown",
        decimals=data.decimals if data.decimals is not None else 9,
        logo_uri=info.image_url if info else None,
        price=data.price_usd,
        price_change_24h=data.price_change_24h,
        market_cap=data.market_cap,
        volume_24h=data.volume_24h,
        total_supply=supply,
        holder_count=data.holder_count or (info.holder_count if info else 0),
        top_holders_percentage=info.top10_percentage if info else 0.0,
        top_holders=tuple(holders),
        authorities=authorities,
        total_liquidity=data.liquidity_usd,
        pools=(),
        gt_score=info.gt_score if info else 0.0,
        is_honeypot=info.is_honeypot if info else None,
        recent_trades=trades,
        ohlcv_analysis=ohlcv,
        source="fallback",
        last_updated=now,
        **_social(info),
    )


# --- composition root ---


def build_aggregator(settings: Any) -> TokenAggregator:
    """Wire real adapters from settings."""
    from rugscope.parsers.birdeye.client import BirdeyeClient
    from rugscope.parsers.geckoterminal.client import GeckoTerminalClient
    from rugscope.parsers.helius.client import HeliusClient

    market = GeckoTerminalClient(
        settings.coingecko_api_key,
        settings.coingecko_base_url,
        max_rps=settings.coingecko_max_rps,
        timeout=settings.http_timeout_sec,
    )

    onchain = None
    if settings.helius_api_key or settings.helius_rpc_url:
        onchain = HeliusClient(
            settings.helius_api_key,
            settings.resolved_helius_rpc_url,
            max_rps=settings.helius_max_rps,
            timeout=settings.http_timeout_sec,
        )
    else:
        logger.warning("[AGG] no Helius credentials, on-chain supply/authorities disabled")

    fallback = None
    if settings.birdeye_enabled:
        fallback = BirdeyeClient(
            settings.birdeye_api_key,
            max_rps=settings.birdeye_max_rps,
            timeout=settings.http_timeout_sec,
        )

    cache: Cache = RedisCache(settings.redis_url) if settings.enable_cache else NullCache()

    return TokenAggregator(
        market,
        onchain,
        fallback,
        cache,
        RiskCalculator(),
        AggregatorConfig.from_settings(settings),
    )
