"""Risk score models.

Nine capped components, each with its own sub-fields. ``RiskScore.total_score``
is the sum of the component scores; ``risk_level`` is derived from it.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field


class RiskLevel(StrEnum):
    SAFE = "SAFE"
    MEDIUM = "MEDIUM"
    DANGER = "DANGER"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class HoneypotStatus(StrEnum):
    YES = "yes"
    NO = "no"
    SUSPECTED = "suspected"
    UNKNOWN = "unknown"


class SignalType(StrEnum):
    HONEYPOT_DETECTED = "HONEYPOT_DETECTED"
    HONEYPOT_SUSPECTED = "HONEYPOT_SUSPECTED"
    HIGH_CONCENTRATION = "HIGH_CONCENTRATION"
    LOW_LIQUIDITY = "LOW_LIQUIDITY"
    NEW_TOKEN = "NEW_TOKEN"
    WASH_TRADING_DETECTED = "WASH_TRADING_DETECTED"
    UNUSUAL_TRADING_PATTERNS = "UNUSUAL_TRADING_PATTERNS"
    HIGH_WHALE_ACTIVITY = "HIGH_WHALE_ACTIVITY"
    HIGH_VOLATILITY = "HIGH_VOLATILITY"
    PRICE_MANIPULATION_RISK = "PRICE_MANIPULATION_RISK"
    LIQUIDITY_INSTABILITY = "LIQUIDITY_INSTABILITY"
    LOW_GT_SCORE = "LOW_GT_SCORE"
    WASH_TRADING = "WASH_TRADING"
    AUTHORITY_CONTROL = "AUTHORITY_CONTROL"
    PUMP_DETECTED = "PUMP_DETECTED"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class _Component(_Frozen):
    CAP: ClassVar[int] = 0

    score: int = 0


class HoneypotRisk(_Component):
    CAP: ClassVar[int] = 30

    is_honeypot: HoneypotStatus = HoneypotStatus.UNKNOWN
    detection_method: str = ""
    sell_ratio: float | None = None
    seller_ratio: float | None = None
    unique_sellers: int | None = None


class AuthorityRisk(_Component):
    CAP: ClassVar[int] = 30

    mint_authority_present: bool = False
    freeze_authority_present: bool = False


class ConcentrationRisk(_Component):
    CAP: ClassVar[int] = 25

    top_holder_percentage: float = 0.0
    top10_percentage: float = 0.0


class LiquidityRisk(_Component):
    CAP: ClassVar[int] = 20

    has_pool: bool = False
    total_liquidity_usd: float = 0.0
    liquidity_locked: bool = False
    volume_to_liquidity_ratio: float = 0.0


class MarketRisk(_Component):
    CAP: ClassVar[int] = 15

    volume_24h: float = 0.0
    market_cap: float = 0.0
    spread_percentage: float = 0.0
    bot_trading_suspected: bool = False


class AgeRisk(_Component):
    CAP: ClassVar[int] = 10

    age_in_days: int | None = None  # None = creation time unknown
    first_trade_date: datetime | None = None


class GTScoreRisk(_Component):
    CAP: ClassVar[int] = 20

    gt_score: float = 0.0


class TradingPatternRisk(_Component):
    CAP: ClassVar[int] = 15

    wash_trading_score: int = 0
    unusual_trading_detected: bool = False
    whale_activity_score: int = 0
    buy_sell_ratio: float = 0.0
    suspicious_transactions: int = 0


class VolatilityRisk(_Component):
    CAP: ClassVar[int] = 10

    volatility_score: int = 0
    trend_direction: Literal["bullish", "bearish", "neutral"] = "neutral"
    price_manipulation_risk: int = 0
    liquidity_stability: Literal["stable", "moderate", "volatile", "unknown"] = "unknown"


class RiskBreakdown(_Frozen):
    honeypot_risk: HoneypotRisk = Field(default_factory=HoneypotRisk)
    authority_risk: AuthorityRisk = Field(default_factory=AuthorityRisk)
    concentration_risk: ConcentrationRisk = Field(default_factory=ConcentrationRisk)
    liquidity_risk: LiquidityRisk = Field(default_factory=LiquidityRisk)
    market_risk: MarketRisk = Field(default_factory=MarketRisk)
    age_risk: AgeRisk = Field(default_factory=AgeRisk)
    gt_score_risk: GTScoreRisk = Field(default_factory=GTScoreRisk)
    trading_pattern_risk: TradingPatternRisk = Field(default_factory=TradingPatternRisk)
    volatility_risk: VolatilityRisk = Field(default_factory=VolatilityRisk)

    def components(self) -> list[_Component]:
        return [
            self.honeypot_risk,
            self.authority_risk,
            self.concentration_risk,
            self.liquidity_risk,
            self.market_risk,
            self.age_risk,
            self.gt_score_risk,
            self.trading_pattern_risk,
            self.volatility_risk,
        ]

    @property
    def total(self) -> int:
        return sum(c.score for c in self.components())


class RiskSignal(_Frozen):
    type: SignalType
    severity: Severity
    message: str
    value: float | int | str | None = None


class RiskScore(_Frozen):
    total_score: int
    risk_level: RiskLevel
    breakdown: RiskBreakdown
    signals: tuple[RiskSignal, ...] = ()
    warnings: tuple[str, ...] = ()
    confidence: float = 0.5  # 0-1
    calculated_at: datetime
