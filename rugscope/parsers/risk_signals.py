"""Qualitative risk signals derived from a scored breakdown."""

from dataclasses import dataclass

from rugscope.models.risk import (
    HoneypotStatus,
    RiskBreakdown,
    RiskSignal,
    Severity,
    SignalType,
)
from rugscope.models.token import Token

NEW_TOKEN_DAYS = 7
LOW_LIQUIDITY_USD = 10_000.0
HIGH_CONCENTRATION_PCT = 70.0
LOW_GT_SCORE = 50.0


@dataclass(frozen=True)
class PumpPattern:
    severity: Severity
    message: str
    value: float


def detect_pump_pattern(token: Token) -> PumpPattern | None:
    """Short-term pump from the top pool's price change (5m, then 1h, then 6h)."""
    pool = token.top_pool
    if pool is None or pool.price_change_percentage is None:
        return None
    changes = pool.price_change_percentage
    m5 = changes.m5 or 0.0
    h1 = changes.h1 or 0.0
    h6 = changes.h6 or 0.0

    if m5 > 50:
        return PumpPattern(Severity.CRITICAL, f"Extreme pump detected: +{m5:.1f}% in 5 minutes", m5)
    if h1 > 100:
        return PumpPattern(Severity.HIGH, f"Major pump: +{h1:.1f}% in 1 hour", h1)
    if h6 > 200:
        return PumpPattern(Severity.HIGH, f"Significant pump: +{h6:.1f}% in 6 hours", h6)
    return None


def generate_signals(token: Token, breakdown: RiskBreakdown) -> list[RiskSignal]:
    """Ordered signal list; order is stable for equal inputs."""
    signals: list[RiskSignal] = []
    add = signals.append

    honeypot = breakdown.honeypot_risk
    if honeypot.is_honeypot == HoneypotStatus.YES:
        add(RiskSignal(
            type=SignalType.HONEYPOT_DETECTED,
            severity=Severity.CRITICAL,
            message=f"HONEYPOT: {honeypot.detection_method}",
            value="true",
        ))
    elif honeypot.is_honeypot == HoneypotStatus.SUSPECTED:
        add(RiskSignal(
            type=SignalType.HONEYPOT_SUSPECTED,
            severity=Severity.HIGH,
            message=f"Honeypot suspected: {honeypot.detection_method}",
            value="true",
        ))

    trading = breakdown.trading_pattern_risk
    if trading.wash_trading_score > 50:
        add(RiskSignal(
            type=SignalType.WASH_TRADING_DETECTED,
            severity=Severity.CRITICAL if trading.wash_trading_score > 70 else Severity.HIGH,
            message=f"Wash trading detected: {trading.wash_trading_score}% suspicious",
            value=trading.wash_trading_score,
        ))
    if trading.unusual_trading_detected:
        add(RiskSignal(
            type=SignalType.UNUSUAL_TRADING_PATTERNS,
            severity=Severity.HIGH,
            message="Unusual trading patterns detected",
            value="true",
        ))
    if trading.whale_activity_score > 60:
        add(RiskSignal(
            type=SignalType.HIGH_WHALE_ACTIVITY,
            severity=Severity.MEDIUM,
            message=f"High whale activity: {trading.whale_activity_score}%",
            value=trading.whale_activity_score,
        ))

    volatility = breakdown.volatility_risk
    if volatility.volatility_score > 60:
        add(RiskSignal(
            type=SignalType.HIGH_VOLATILITY,
            severity=Severity.HIGH if volatility.volatility_score > 80 else Severity.MEDIUM,
            message=f"High volatility: {volatility.volatility_score}%",
            value=volatility.volatility_score,
        ))
    if volatility.price_manipulation_risk > 50:
        add(RiskSignal(
            type=SignalType.PRICE_MANIPULATION_RISK,
            severity=Severity.HIGH if volatility.price_manipulation_risk > 70 else Severity.MEDIUM,
            message=f"Price manipulation risk: {volatility.price_manipulation_risk}%",
            value=volatility.price_manipulation_risk,
        ))
    if volatility.liquidity_stability == "volatile":
        add(RiskSignal(
            type=SignalType.LIQUIDITY_INSTABILITY,
            severity=Severity.MEDIUM,
            message="Volatile liquidity detected",
            value="true",
        ))

    liquidity = breakdown.liquidity_risk
    ratio = liquidity.volume_to_liquidity_ratio
    if ratio > 50:
        add(RiskSignal(
            type=SignalType.WASH_TRADING,
            severity=Severity.HIGH if ratio > 100 else Severity.MEDIUM,
            message="Suspicious volume/liquidity ratio - possible wash trading",
            value=f"{ratio:.1f}",
        ))

    age = breakdown.age_risk
    if age.age_in_days is not None and age.age_in_days < NEW_TOKEN_DAYS:
        add(RiskSignal(
            type=SignalType.NEW_TOKEN,
            severity=Severity.HIGH,
            message="Very new token - high risk of pump and dump",
            value=f"{age.age_in_days} days old",
        ))

    if breakdown.authority_risk.score > 0:
        add(RiskSignal(
            type=SignalType.AUTHORITY_CONTROL,
            severity=Severity.HIGH,
            message="Token authorities not renounced - risk of rug pull",
            value=breakdown.authority_risk.score,
        ))

    if 0 < liquidity.total_liquidity_usd < LOW_LIQUIDITY_USD:
        add(RiskSignal(
            type=SignalType.LOW_LIQUIDITY,
            severity=Severity.HIGH,
            message="Very low liquidity - high slippage risk",
            value=liquidity.total_liquidity_usd,
        ))

    top10 = breakdown.concentration_risk.top10_percentage
    if top10 > HIGH_CONCENTRATION_PCT:
        add(RiskSignal(
            type=SignalType.HIGH_CONCENTRATION,
            severity=Severity.HIGH,
            message="Top holders control majority of supply - whale risk",
            value=f"{top10:.1f}%",
        ))

    gt_score = breakdown.gt_score_risk.gt_score
    if 0 < gt_score < LOW_GT_SCORE:
        add(RiskSignal(
            type=SignalType.LOW_GT_SCORE,
            severity=Severity.MEDIUM,
            message="Low GeckoTerminal trust score",
            value=gt_score,
        ))

    pump = detect_pump_pattern(token)
    if pump is not None:
        add(RiskSignal(
            type=SignalType.PUMP_DETECTED,
            severity=pump.severity,
            message=pump.message,
            value=pump.value,
        ))

    return signals
