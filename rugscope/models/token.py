"""Token snapshot models.

A ``Token`` is an immutable snapshot keyed by ``mint``. A new lookup produces
a new snapshot; nothing patches an existing one in place.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from rugscope.models.risk import RiskScore

OHLCVTimeframe = Literal["day", "hour", "minute"]
TrendDirection = Literal["bullish", "bearish", "neutral"]
LiquidityStability = Literal["stable", "moderate", "volatile", "unknown"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class TokenHolder(_Frozen):
    address: str
    amount: int = 0  # raw units, arbitrary precision
    percentage: float = 0.0
    rank: int | None = None

    @field_serializer("amount", when_used="json")
    def _amount_as_str(self, value: int) -> str:
        return str(value)


class TokenAuthorities(_Frozen):
    """SPL mint/freeze authorities. ``None`` authority = renounced."""

    mint_authority: str | None = None
    freeze_authority: str | None = None
    mint_renounced: bool = True
    freeze_renounced: bool = True


class TxCounts(_Frozen):
    buys: int = 0
    sells: int = 0
    buyers: int = 0
    sellers: int = 0

    @property
    def total(self) -> int:
        return self.buys + self.sells

    @property
    def unique_traders(self) -> int:
        return self.buyers + self.sellers


class PoolTransactions(_Frozen):
    m5: TxCounts | None = None
    h1: TxCounts | None = None
    h6: TxCounts | None = None
    h24: TxCounts | None = None


class TimeframeVolume(_Frozen):
    m5: float | None = None
    h1: float | None = None
    h6: float | None = None
    h24: float | None = None


class TimeframePriceChange(_Frozen):
    m5: float | None = None
    h1: float | None = None
    h6: float | None = None
    h24: float | None = None


class LiquidityPool(_Frozen):
    """Representative pool for a token (at most one per snapshot)."""

    pool_address: str
    amm: str = "DEX"
    base_token: str = ""
    quote_token: str = "SOL"
    tvl_usd: float = 0.0
    volume_24h: float = 0.0
    created_at: datetime | None = None
    locked_liquidity_percentage: float = 0.0

    # Enhanced detail, present only when the pool detail fetch succeeded
    # (or the trending feed carried it)
    transactions: PoolTransactions | None = None
    volume_usd: TimeframeVolume | None = None
    price_change_percentage: TimeframePriceChange | None = None


class Trade(_Frozen):
    tx_hash: str = ""
    kind: Literal["buy", "sell"] = "buy"
    volume_usd: float = 0.0
    from_address: str = ""
    block_timestamp: datetime | None = None


class TradeAnalysis(_Frozen):
    wash_trading_score: int = 0  # 0-100, higher = more suspicious
    unusual_trading_detected: bool = False
    whale_activity_score: int = 0  # 0-100
    buy_sell_ratio: float = 0.0
    average_trade_size: float = 0.0
    suspicious_transactions: int = 0
    total_buy_volume: float = 0.0
    total_sell_volume: float = 0.0
    unique_buyers: int = 0
    unique_sellers: int = 0
    largest_buy_usd: float = 0.0
    largest_sell_usd: float = 0.0


class RecentTrades(_Frozen):
    trades: tuple[Trade, ...] = ()
    analysis: TradeAnalysis = Field(default_factory=TradeAnalysis)
    total_trades: int = 0
    last_trade_time: datetime | None = None
    min_volume_usd: float = 0.0  # threshold the cascade succeeded at


class Candle(_Frozen):
    timestamp: int  # unix seconds
    open: float
    high: float
    low: float
    close: float
    volume: float


class VolumeAnomaly(_Frozen):
    timestamp: int
    volume: float
    avg_volume: float
    spike_ratio: float


class PriceRange(_Frozen):
    high: float = 0.0
    low: float = 0.0
    range: float = 0.0


class OHLCVMetrics(_Frozen):
    volatility_score: int = 0  # 0-100
    trend_direction: TrendDirection = "neutral"
    volume_anomalies: tuple[VolumeAnomaly, ...] = ()
    price_manipulation_risk: int = 0  # 0-100
    liquidity_stability: LiquidityStability = "unknown"
    average_volume: float = 0.0
    price_range: PriceRange = Field(default_factory=PriceRange)


class OHLCVAnalysis(_Frozen):
    ohlcv_data: tuple[Candle, ...] = ()
    analysis: OHLCVMetrics = Field(default_factory=OHLCVMetrics)
    timeframe: OHLCVTimeframe = "day"
    data_points: int = 0


class Token(_Frozen):
    """Canonical merged snapshot for one mint."""

    mint: str

    # Identity
    symbol: str = "UNKNOWN"
    name: str = "Unknown"
    decimals: int = 9
    logo_uri: str | None = None

    # Market
    price: float = 0.0
    price_change_5m: float | None = None
    price_change_1h: float | None = None
    price_change_6h: float | None = None
    price_change_24h: float = 0.0
    market_cap: float = 0.0
    volume_24h: float = 0.0

    # Supply (exact on-chain raw amount; None when not fetched)
    total_supply: int | None = None

    # Holders
    holder_count: int = 0
    top_holders_percentage: float = 0.0
    top_holders: tuple[TokenHolder, ...] = ()

    # Authorities (None = unknown)
    authorities: TokenAuthorities | None = None

    # Liquidity
    total_liquidity: float = 0.0
    pools: tuple[LiquidityPool, ...] = ()
    created_at: datetime | None = None

    # Security
    gt_score: float = 0.0
    is_honeypot: bool | None = None  # tri-state: None = unknown

    # Social
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None

    # Optional enrichments
    recent_trades: RecentTrades | None = None
    ohlcv_analysis: OHLCVAnalysis | None = None

    risk_score: RiskScore | None = None
    source: Literal["primary", "fallback"] = "primary"
    last_updated: datetime | None = None

    @property
    def top_pool(self) -> LiquidityPool | None:
        return self.pools[0] if self.pools else None

    @field_serializer("total_supply", when_used="json")
    def _supply_as_str(self, value: int | None) -> str | None:
        return None if value is None else str(value)
