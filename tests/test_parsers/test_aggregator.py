"""Tests for TokenAggregator: merge precedence, fallback, degradation, caching, batch and trending."""

import asyncio
from datetime import UTC, datetime

import pytest
from solders.pubkey import Pubkey

from conftest import (
    BONK,
    JUP,
    NOW,
    WIF,
    FakeFallbackSource,
    FakeMarketSource,
    FakeOnchainSource,
    MemoryCache,
    market_data,
    pool_ref,
    token_info,
)
from rugscope.db.cache import NullCache, RedisCache, token_key, trending_key
from rugscope.models.market import FallbackMarketData, PoolDetail, TrendingPool
from rugscope.models.risk import RiskLevel
from rugscope.models.token import (
    Candle,
    PoolTransactions,
    TimeframePriceChange,
    TimeframeVolume,
    TokenAuthorities,
    TokenHolder,
    Trade,
    TxCounts,
)
from rugscope.parsers.aggregator import (
    AggregatorConfig,
    TokenAggregator,
    WELL_KNOWN_MINTS,
)
from rugscope.utils.addr import USDC_MINT, WSOL_MINT

POOL = f"pool_{BONK[:6]}"
WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
BIG_SUPPLY = 2**70 + 12345


def _aggregator(market, *, onchain=None, fallback=None, cache=None, config=None, sleeps=None):
    async def fake_sleep(delay: float) -> None:
        if sleeps is not None:
            sleeps.append(delay)

    return TokenAggregator(
        market,
        onchain,
        fallback,
        cache,
        config=config or AggregatorConfig(),
        clock=lambda: NOW,
        sleep=fake_sleep,
    )


def _candles(n=5):
    return [
        Candle(timestamp=1_700_000_000 + i * 3600, open=1.0, high=1.1, low=0.9, close=1.0 + i * 0.01, volume=100.0)
        for i in range(n)
    ]


def _trades():
    return [
        Trade(tx_hash="a", kind="buy", volume_usd=50.0, from_address=WALLET),
        Trade(tx_hash="b", kind="sell", volume_usd=40.0, from_address=WALLET),
    ]


def _detail():
    return PoolDetail(
        address=POOL,
        reserve_usd=300_000.0,
        price_change_percentage=TimeframePriceChange(m5=1.0, h1=2.0, h6=3.0, h24=4.0),
        transactions=PoolTransactions(h24=TxCounts(buys=300, sells=200, buyers=150, sellers=120)),
        volume_usd=TimeframeVolume(h24=410_000.0),
        created_at=datetime(2024, 3, 1, tzinfo=UTC),
        locked_liquidity_percentage=0.0,
    )


def _full_market(**overrides):
    defaults = dict(
        infos={BONK: token_info()},
        markets={BONK: market_data(BONK)},
        details={POOL: _detail()},
        holders={BONK: [TokenHolder(address=WALLET, amount=BIG_SUPPLY // 10, percentage=10.0, rank=1)]},
        trades={(BONK, 10.0): _trades()},
        candles={(BONK, "day"): _candles()},
    )
    defaults.update(overrides)
    return FakeMarketSource(**defaults)


# --- single lookup ---


@pytest.mark.asyncio
async def test_complete_lookup_merges_all_sources():
    market = _full_market()
    onchain = FakeOnchainSource(
        supply={BONK: BIG_SUPPLY},
        authorities={BONK: TokenAuthorities(mint_authority="MintAuth", mint_renounced=False)},
    )
    token = await _aggregator(market, onchain=onchain).get_complete_token_data(BONK)

    assert token is not None
    assert token.mint == BONK
    assert token.source == "primary"
    # identity: info wins over market
    assert token.symbol == "INFO"
    assert token.name == "Info Name"
    assert token.decimals == 6
    assert token.logo_uri == "https://img.example/token.png"
    # market
    assert token.price == 0.5
    assert token.market_cap == 5_000_000.0
    assert token.volume_24h == 400_000.0
    # pool detail overrides the basic reference
    assert token.total_liquidity == 300_000.0
    assert token.created_at == datetime(2024, 3, 1, tzinfo=UTC)
    assert token.price_change_24h == 4.0
    assert (token.price_change_5m, token.price_change_1h, token.price_change_6h) == (1.0, 2.0, 3.0)
    assert token.top_pool.transactions.h24.buys == 300
    assert token.top_pool.volume_24h == 410_000.0
    # on-chain wins over info authorities
    assert token.total_supply == BIG_SUPPLY
    assert token.authorities.mint_renounced is False
    assert token.top_holders[0].amount == BIG_SUPPLY // 10
    # socials
    assert token.website == "https://token.example"
    assert token.twitter == "https://twitter.com/tokenx"
    assert token.telegram == "https://t.me/tokenchat"
    # enrichments from the first cascade step
    assert token.recent_trades.min_volume_usd == 10.0
    assert token.recent_trades.total_trades == 2
    assert token.ohlcv_analysis.timeframe == "day"
    # scored
    assert token.risk_score is not None
    assert token.risk_score.breakdown.authority_risk.score == 15
    assert token.risk_score.calculated_at == NOW
    assert token.last_updated == NOW
    assert market.called("holders") == [("holders", BONK, 10)]


@pytest.mark.asyncio
async def test_cascades_fall_through_to_next_step():
    market = _full_market(
        trades={(BONK, 1.0): _trades()},
        candles={(BONK, "minute"): _candles(3)},
    )
    token = await _aggregator(market).get_complete_token_data(BONK)

    assert token.recent_trades.min_volume_usd == 1.0
    assert token.ohlcv_analysis.timeframe == "minute"
    assert [c[2] for c in market.called("trades")] == [10.0, 1.0]
    assert [(c[2], c[3]) for c in market.called("ohlcv")] == [("day", 30), ("hour", 24), ("minute", 60)]


@pytest.mark.asyncio
async def test_empty_cascades_leave_enrichments_absent():
    token = await _aggregator(_full_market(trades={}, candles={})).get_complete_token_data(BONK)

    assert token.recent_trades is None
    assert token.ohlcv_analysis is None
    assert token.risk_score.breakdown.trading_pattern_risk.score == 0


@pytest.mark.asyncio
async def test_info_authorities_used_without_onchain_source():
    info = token_info(authorities=TokenAuthorities(freeze_authority="F", freeze_renounced=False))
    token = await _aggregator(_full_market(infos={BONK: info})).get_complete_token_data(BONK)

    assert token.total_supply is None
    assert token.authorities.freeze_renounced is False


@pytest.mark.asyncio
async def test_malformed_mint_returns_none_without_fetching():
    market = _full_market()
    assert await _aggregator(market).get_complete_token_data("not-a-mint") is None
    assert market.calls == []


@pytest.mark.asyncio
async def test_unknown_mint_without_fallback_is_none():
    market = FakeMarketSource()
    assert await _aggregator(market).get_complete_token_data(BONK) is None


@pytest.mark.asyncio
async def test_fallback_when_primary_has_no_market_data():
    fallback = FakeFallbackSource({
        BONK: FallbackMarketData(
            address=BONK, name="Bonk", symbol="BONK", decimals=5,
            price_usd=0.00002, volume_24h=5_000_000.0, market_cap=1_500_000_000.0,
            liquidity_usd=9_000_000.0, holder_count=800_000,
        ),
    })
    market = _full_market(markets={})
    token = await _aggregator(market, fallback=fallback).get_complete_token_data(BONK)

    assert token.source == "fallback"
    assert token.pools == ()
    assert token.total_liquidity == 9_000_000.0
    assert token.holder_count == 800_000
    assert token.symbol == "INFO"  # info still wins identity
    assert token.decimals == 5
    assert token.recent_trades is not None
    assert token.risk_score.breakdown.liquidity_risk.has_pool is False
    assert fallback.calls == [BONK]
    assert market.called("pool") == []


@pytest.mark.asyncio
async def test_fallback_empty_is_none():
    fallback = FakeFallbackSource()
    assert await _aggregator(FakeMarketSource(), fallback=fallback).get_complete_token_data(BONK) is None
    assert fallback.calls == [BONK]


@pytest.mark.asyncio
async def test_market_data_for_other_address_is_discarded():
    market = _full_market(markets={BONK: market_data(JUP)})
    assert await _aggregator(market).get_complete_token_data(BONK) is None


@pytest.mark.asyncio
async def test_missing_info_degrades_to_market_identity():
    token = await _aggregator(_full_market(infos={})).get_complete_token_data(BONK)

    assert token.symbol == "MKT"
    assert token.name == "Market Name"
    assert token.holder_count == 0
    assert token.is_honeypot is None
    assert token.website is None


@pytest.mark.asyncio
async def test_failing_branches_degrade_only_their_fields():
    market = _full_market(fail={"holders", "trades", "ohlcv", "pool", "info"})
    token = await _aggregator(market).get_complete_token_data(BONK)

    assert token is not None
    assert token.top_holders == ()
    assert token.recent_trades is None
    assert token.ohlcv_analysis is None
    # basic pool reference survives a failed detail fetch
    assert token.top_pool.pool_address == POOL
    assert token.top_pool.transactions is None
    assert token.total_liquidity == 250_000.0
    assert token.price_change_24h == 3.5


class _SlowHolders(FakeMarketSource):
    async def fetch_top_holders(self, mint, count=10):
        await asyncio.sleep(5)
        return []


@pytest.mark.asyncio
async def test_slow_branch_times_out():
    market = _SlowHolders(infos={BONK: token_info()}, markets={BONK: market_data(BONK)})
    config = AggregatorConfig(fetch_timeout_sec=0.05)
    token = await _aggregator(market, config=config).get_complete_token_data(BONK)

    assert token is not None
    assert token.top_holders == ()


# --- cache ---


@pytest.mark.asyncio
async def test_cache_hit_skips_sources():
    cache = MemoryCache()
    market = _full_market()
    aggregator = _aggregator(market, cache=cache)

    first = await aggregator.get_complete_token_data(BONK)
    calls = len(market.calls)
    second = await aggregator.get_complete_token_data(BONK)

    assert cache.writes == [(token_key(BONK), 60)]
    assert len(market.calls) == calls
    assert second == first
    assert second.total_supply == first.total_supply


@pytest.mark.asyncio
async def test_cache_does_not_change_score():
    onchain = FakeOnchainSource(supply={BONK: BIG_SUPPLY})
    cached = await _aggregator(_full_market(), onchain=onchain, cache=MemoryCache()).get_complete_token_data(BONK)
    uncached = await _aggregator(_full_market(), onchain=onchain, cache=NullCache()).get_complete_token_data(BONK)

    assert cached.risk_score == uncached.risk_score
    assert cached == uncached


@pytest.mark.asyncio
async def test_corrupt_cache_entry_is_a_miss():
    cache = MemoryCache()
    cache.store[token_key(BONK)] = '{"mint": 42'
    token = await _aggregator(_full_market(), cache=cache).get_complete_token_data(BONK)

    assert token is not None
    assert cache.writes == [(token_key(BONK), 60)]


@pytest.mark.asyncio
async def test_misconfigured_redis_url_still_returns_token():
    token = await _aggregator(_full_market(), cache=RedisCache("not-a-url")).get_complete_token_data(BONK)

    assert token is not None
    assert token.mint == BONK
    assert token.risk_score is not None


# --- batch ---


@pytest.mark.asyncio
async def test_batch_keeps_order_and_drops_incomplete():
    market = FakeMarketSource(
        infos={BONK: token_info(symbol="BONK"), JUP: token_info(symbol="JUP"), WIF: token_info(symbol="WIF")},
        markets={BONK: market_data(BONK), JUP: market_data(JUP)},
    )
    tokens = await _aggregator(market).get_multiple_tokens([JUP, "bogus", BONK, JUP, WIF])

    assert [t.symbol for t in tokens] == ["JUP", "BONK"]
    assert all(t.risk_score is not None for t in tokens)
    assert all(t.recent_trades is None and t.ohlcv_analysis is None for t in tokens)
    assert market.called("multi") == [("multi", (JUP, BONK, WIF))]
    assert {c[2] for c in market.called("holders")} == {5}
    assert market.called("trades") == []
    assert market.called("ohlcv") == []
    assert len(market.called("pool")) == 2  # WIF has no market, so no pool detail


@pytest.mark.asyncio
async def test_batch_sub_batches_run_serially_with_delay():
    sleeps: list[float] = []
    market = FakeMarketSource(
        infos={m: token_info() for m in (BONK, JUP, WIF)},
        markets={m: market_data(m) for m in (BONK, JUP, WIF)},
    )
    config = AggregatorConfig(batch_size=2, trending_batch_delay_sec=1.5)
    tokens = await _aggregator(market, config=config, sleeps=sleeps).get_multiple_tokens([BONK, JUP, WIF])

    assert [t.mint for t in tokens] == [BONK, JUP, WIF]
    assert [c[1] for c in market.called("multi")] == [(BONK, JUP), (WIF,)]
    assert sleeps == [1.5]


@pytest.mark.asyncio
async def test_batch_is_capped():
    mints = [str(Pubkey.new_unique()) for _ in range(120)]
    market = FakeMarketSource()
    await _aggregator(market).get_multiple_tokens(mints)

    requested = [m for call in market.called("multi") for m in call[1]]
    assert requested == mints[:100]


@pytest.mark.asyncio
async def test_batch_failure_in_multi_drops_chunk_only():
    market = FakeMarketSource(infos={BONK: token_info()}, markets={BONK: market_data(BONK)}, fail={"multi"})
    assert await _aggregator(market).get_multiple_tokens([BONK]) == []


# --- trending ---


def _trending_market():
    items = [
        TrendingPool(token_address=WSOL_MINT, name="SOL / USDC", pool=pool_ref("p_sol")),
        TrendingPool(token_address=BONK, name="BONK / SOL", pool=pool_ref("p_bonk", reserve_usd=7_000_000.0)),
        TrendingPool(token_address=USDC_MINT, name="USDC / SOL", pool=pool_ref("p_usdc")),
        TrendingPool(token_address="garbage", name="?", pool=pool_ref("p_bad")),
        TrendingPool(token_address=JUP, name="JUP / SOL", pool=pool_ref("p_jup")),
    ]
    return FakeMarketSource(
        infos={BONK: token_info(symbol="BONK"), JUP: token_info(symbol="JUP")},
        markets={BONK: market_data(BONK), JUP: market_data(JUP)},
        trades={(BONK, 10.0): _trades()},
        candles={(JUP, "hour"): _candles()},
        trending=items,
    )


@pytest.mark.asyncio
async def test_trending_filters_enriches_and_caches():
    sleeps: list[float] = []
    cache = MemoryCache()
    market = _trending_market()
    tokens = await _aggregator(market, cache=cache, sleeps=sleeps).get_trending_tokens(10)

    assert [t.symbol for t in tokens] == ["BONK", "JUP"]
    assert market.called("trending") == [("trending", 20, "24h")]
    # pool comes from the trending feed, no detail fetch
    assert tokens[0].top_pool.pool_address == "p_bonk"
    assert tokens[0].total_liquidity == 7_000_000.0
    assert market.called("pool") == []
    assert tokens[0].recent_trades is not None
    assert tokens[1].ohlcv_analysis.timeframe == "hour"
    # trades, call delay, OHLCV, token delay (none after the last token)
    assert sleeps == [0.5, 0.2, 0.5]
    assert cache.writes == [(trending_key(), 3600)]


@pytest.mark.asyncio
async def test_trending_cache_hit_is_truncated():
    cache = MemoryCache()
    market = _trending_market()
    aggregator = _aggregator(market, cache=cache)
    await aggregator.get_trending_tokens(10)

    tokens = await aggregator.get_trending_tokens(1)

    assert [t.symbol for t in tokens] == ["BONK"]
    assert len(market.called("trending")) == 1


@pytest.mark.asyncio
async def test_refresh_bypasses_cache_read():
    cache = MemoryCache()
    market = _trending_market()
    aggregator = _aggregator(market, cache=cache)
    await aggregator.get_trending_tokens(10)

    await aggregator.refresh_trending_tokens(10)

    assert len(market.called("trending")) == 2
    assert len(cache.writes) == 2


@pytest.mark.asyncio
async def test_trending_sub_batches():
    sleeps: list[float] = []
    market = _trending_market()
    config = AggregatorConfig(trending_batch_size=1)
    await _aggregator(market, config=config, sleeps=sleeps).get_trending_tokens(10)

    # per batch: call delay only (single token); batch delay between batches
    assert sleeps == [0.5, 1.0, 0.5]


@pytest.mark.asyncio
async def test_trending_falls_back_to_well_known_tokens():
    cache = MemoryCache()
    market = FakeMarketSource(
        infos={BONK: token_info(symbol="BONK")},
        markets={BONK: market_data(BONK)},
        trending=[],
    )
    tokens = await _aggregator(market, cache=cache).get_trending_tokens(10)

    assert [t.mint for t in tokens] == [BONK]
    assert market.called("multi") == [("multi", WELL_KNOWN_MINTS)]
    assert cache.writes == []


@pytest.mark.asyncio
async def test_trending_non_positive_limit():
    market = _trending_market()
    assert await _aggregator(market).get_trending_tokens(0) == []
    assert market.calls == []


# --- lifecycle ---


@pytest.mark.asyncio
async def test_close_closes_sources():
    market = FakeMarketSource()
    await _aggregator(market, cache=NullCache()).close()
    assert market.closed is True


@pytest.mark.asyncio
async def test_scored_trending_tokens_have_levels():
    tokens = await _aggregator(_trending_market()).get_trending_tokens(10)
    assert all(t.risk_score.risk_level in set(RiskLevel) for t in tokens)
