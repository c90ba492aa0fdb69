from rugscope.models.market import (
    FallbackMarketData,
    MarketData,
    PoolDetail,
    PoolRef,
    TokenInfo,
    TrendingPool,
)
from rugscope.models.risk import (
    AgeRisk,
    AuthorityRisk,
    ConcentrationRisk,
    GTScoreRisk,
    HoneypotRisk,
    HoneypotStatus,
    LiquidityRisk,
    MarketRisk,
    RiskBreakdown,
    RiskLevel,
    RiskScore,
    RiskSignal,
    Severity,
    SignalType,
    TradingPatternRisk,
    VolatilityRisk,
)
from rugscope.models.token import (
    Candle,
    LiquidityPool,
    OHLCVAnalysis,
    OHLCVMetrics,
    PoolTransactions,
    PriceRange,
    RecentTrades,
    TimeframePriceChange,
    TimeframeVolume,
    Token,
    TokenAuthorities,
    TokenHolder,
    Trade,
    TradeAnalysis,
    TxCounts,
    VolumeAnomaly,
)

__all__ = [
    "AgeRisk",
    "AuthorityRisk",
    "Candle",
    "ConcentrationRisk",
    "FallbackMarketData",
    "GTScoreRisk",
    "HoneypotRisk",
    "HoneypotStatus",
    "LiquidityPool",
    "LiquidityRisk",
    "MarketData",
    "MarketRisk",
    "OHLCVAnalysis",
    "OHLCVMetrics",
    "PoolDetail",
    "PoolRef",
    "PoolTransactions",
    "PriceRange",
    "RecentTrades",
    "RiskBreakdown",
    "RiskLevel",
    "RiskScore",
    "RiskSignal",
    "Severity",
    "SignalType",
    "TimeframePriceChange",
    "TimeframeVolume",
    "Token",
    "TokenAuthorities",
    "TokenHolder",
    "TokenInfo",
    "Trade",
    "TradeAnalysis",
    "TradingPatternRisk",
    "TrendingPool",
    "TxCounts",
    "VolatilityRisk",
    "VolumeAnomaly",
]
