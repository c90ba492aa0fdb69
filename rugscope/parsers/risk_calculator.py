"""Multi-factor rug-pull risk score.

Pure and deterministic: a ``Token`` snapshot (plus an explicit ``now``)
in, a ``RiskScore`` out. No I/O, no state between calls. Every input is
treated as possibly absent.

Components and caps:
    honeypot 30, authority 30, concentration 25, liquidity 20, GT score 20,
    market 15, trading pattern 15, volatility 10, age 10.
"""

import math
from datetime import UTC, datetime

from loguru import logger

from rugscope.models.risk import (
    AgeRisk,
    AuthorityRisk,
    ConcentrationRisk,
    GTScoreRisk,
    LiquidityRisk,
    MarketRisk,
    RiskBreakdown,
    RiskLevel,
    RiskScore,
    Severity,
    TradingPatternRisk,
    VolatilityRisk,
)
from rugscope.models.token import Token
from rugscope.parsers.honeypot_rules import evaluate_honeypot
from rugscope.parsers.risk_signals import generate_signals

DANGER_THRESHOLD = 70
MEDIUM_THRESHOLD = 35

SECONDS_PER_DAY = 86_400

# (threshold, points): first row with value >= threshold wins
_CONCENTRATION_TIERS = ((90, 25), (75, 20), (60, 15), (50, 10), (40, 7), (30, 5), (20, 3), (10, 1))
# (upper bound, points): first row with value < bound wins
_LIQUIDITY_TIERS = ((1_000, 18), (10_000, 15), (50_000, 10), (100_000, 5), (500_000, 3), (1_000_000, 1))
_VOLUME_TIERS = ((1_000, 8), (10_000, 6), (100_000, 4), (1_000_000, 2))
_GT_SCORE_TIERS = ((30, 20), (50, 15), (70, 10), (85, 5))
_AGE_TIERS = ((1, 10), (7, 8), (30, 5), (90, 2))


def _at_least(value: float, tiers: tuple[tuple[float, int], ...]) -> int:
    for threshold, points in tiers:
        if value >= threshold:
            return points
    return 0


def _below(value: float, tiers: tuple[tuple[float, int], ...]) -> int:
    for bound, points in tiers:
        if value < bound:
            return points
    return 0


def get_risk_level(total_score: int) -> RiskLevel:
    if total_score >= DANGER_THRESHOLD:
        return RiskLevel.DANGER
    if total_score >= MEDIUM_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.SAFE


def _capped(score: int, cap: int) -> int:
    return max(0, min(score, cap))


class RiskCalculator:
    """Token snapshot → ``RiskScore``."""

    def calculate_risk_score(self, token: Token, now: datetime | None = None) -> RiskScore:
        now = now or datetime.now(UTC)
        breakdown = RiskBreakdown(
            honeypot_risk=evaluate_honeypot(token),
            authority_risk=self._authority_risk(token),
            concentration_risk=self._concentration_risk(token),
            liquidity_risk=self._liquidity_risk(token),
            market_risk=self._market_risk(token),
            age_risk=self._age_risk(token, now),
            gt_score_risk=self._gt_score_risk(token),
            trading_pattern_risk=self._trading_pattern_risk(token),
            volatility_risk=self._volatility_risk(token),
        )
        total = breakdown.total
        signals = generate_signals(token, breakdown)
        warnings = [s.message for s in signals if s.severity in (Severity.HIGH, Severity.CRITICAL)]

        score = RiskScore(
            total_score=total,
            risk_level=get_risk_level(total),
            breakdown=breakdown,
            signals=tuple(signals),
            warnings=tuple(warnings),
            confidence=self._confidence(token),
            calculated_at=now,
        )
        logger.debug(
            f"[RISK] {token.symbol} ({token.mint[:12]}): {total} {score.risk_level.value}, "
            f"honeypot={breakdown.honeypot_risk.is_honeypot.value}, signals={len(signals)}"
        )
        return score

    def get_risk_level(self, total_score: int) -> RiskLevel:
        return get_risk_level(total_score)

    # --- components ---

    @staticmethod
    def _authority_risk(token: Token) -> AuthorityRisk:
        auth = token.authorities
        if auth is None:
            return AuthorityRisk()
        mint_present = not auth.mint_renounced
        freeze_present = not auth.freeze_renounced
        score = (15 if mint_present else 0) + (15 if freeze_present else 0)
        return AuthorityRisk(
            score=_capped(score, AuthorityRisk.CAP),
            mint_authority_present=mint_present,
            freeze_authority_present=freeze_present,
        )

    @staticmethod
    def _concentration_risk(token: Token) -> ConcentrationRisk:
        top10 = token.top_holders_percentage or 0.0
        if token.top_holders:
            top_holder = max(h.percentage for h in token.top_holders)
        else:
            top_holder = top10 / 10
        return ConcentrationRisk(
            score=_capped(_at_least(top10, _CONCENTRATION_TIERS), ConcentrationRisk.CAP),
            top_holder_percentage=top_holder,
            top10_percentage=top10,
        )

    @staticmethod
    def _liquidity_risk(token: Token) -> LiquidityRisk:
        liquidity = max(token.total_liquidity, 0.0)
        volume = max(token.volume_24h, 0.0)

        score = 20 if liquidity == 0 else _below(liquidity, _LIQUIDITY_TIERS)
        ratio = volume / liquidity if liquidity > 0 else 0.0
        # Volume far beyond liquidity suggests fake volume
        if liquidity > 0 and volume > 0:
            if ratio > 100:
                score += 10
            elif ratio > 50:
                score += 5

        return LiquidityRisk(
            score=_capped(score, LiquidityRisk.CAP),
            has_pool=bool(token.pools),
            total_liquidity_usd=liquidity,
            liquidity_locked=any(p.locked_liquidity_percentage > 0 for p in token.pools),
            volume_to_liquidity_ratio=ratio,
        )

    @staticmethod
    def _market_risk(token: Token) -> MarketRisk:
        volume = max(token.volume_24h, 0.0)
        market_cap = max(token.market_cap, 0.0)

        score = 10 if volume == 0 else _below(volume, _VOLUME_TIERS)
        if 0 < market_cap < 10_000:
            score += 5
        elif 0 < market_cap < 100_000:
            score += 2

        # Many transactions from a handful of wallets: bots
        bots = False
        pool = token.top_pool
        if pool is not None and pool.transactions is not None and pool.transactions.h24 is not None:
            h24 = pool.transactions.h24
            if h24.total > 50 and h24.unique_traders < 10:
                bots = True
                score += 3

        return MarketRisk(
            score=_capped(score, MarketRisk.CAP),
            volume_24h=volume,
            market_cap=market_cap,
            spread_percentage=0.0,
            bot_trading_suspected=bots,
        )

    @staticmethod
    def _age_risk(token: Token, now: datetime) -> AgeRisk:
        if token.created_at is None:
            return AgeRisk()
        created = token.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        seconds = (now - created).total_seconds()
        age_days = max(0, math.floor(seconds / SECONDS_PER_DAY))
        return AgeRisk(
            score=_capped(_below(age_days, _AGE_TIERS), AgeRisk.CAP),
            age_in_days=age_days,
            first_trade_date=created,
        )

    @staticmethod
    def _gt_score_risk(token: Token) -> GTScoreRisk:
        gt_score = max(token.gt_score or 0.0, 0.0)
        # Unscored tokens get a small default penalty
        score = 5 if gt_score == 0 else _below(gt_score, _GT_SCORE_TIERS)
        return GTScoreRisk(score=_capped(score, GTScoreRisk.CAP), gt_score=gt_score)

    @staticmethod
    def _trading_pattern_risk(token: Token) -> TradingPatternRisk:
        if token.recent_trades is None:
            return TradingPatternRisk()
        analysis = token.recent_trades.analysis

        score = 0
        wash = analysis.wash_trading_score
        if wash > 50:
            score += 8
        elif wash > 30:
            score += 6
        elif wash > 20:
            score += 4
        elif wash > 10:
            score += 2

        if analysis.unusual_trading_detected:
            score += 4

        whale = analysis.whale_activity_score
        if whale > 40:
            score += 3
        elif whale > 25:
            score += 2
        elif whale > 10:
            score += 1

        return TradingPatternRisk(
            score=_capped(score, TradingPatternRisk.CAP),
            wash_trading_score=wash,
            unusual_trading_detected=analysis.unusual_trading_detected,
            whale_activity_score=whale,
            buy_sell_ratio=analysis.buy_sell_ratio,
            suspicious_transactions=analysis.suspicious_transactions,
        )

    @staticmethod
    def _volatility_risk(token: Token) -> VolatilityRisk:
        if token.ohlcv_analysis is None:
            return VolatilityRisk()
        analysis = token.ohlcv_analysis.analysis

        score = 0
        vol = analysis.volatility_score
        if vol > 60:
            score += 5
        elif vol > 40:
            score += 4
        elif vol > 25:
            score += 3
        elif vol > 15:
            score += 2
        elif vol > 8:
            score += 1

        manipulation = analysis.price_manipulation_risk
        if manipulation > 50:
            score += 3
        elif manipulation > 35:
            score += 2
        elif manipulation > 20:
            score += 1

        if analysis.liquidity_stability == "volatile":
            score += 2
        elif analysis.liquidity_stability == "moderate":
            score += 1

        return VolatilityRisk(
            score=_capped(score, VolatilityRisk.CAP),
            volatility_score=vol,
            trend_direction=analysis.trend_direction,
            price_manipulation_risk=manipulation,
            liquidity_stability=analysis.liquidity_stability,
        )

    @staticmethod
    def _confidence(token: Token) -> float:
        confidence = 0.5
        pool = token.top_pool
        present = (
            token.holder_count > 0,
            token.total_liquidity > 0,
            token.volume_24h > 0,
            token.created_at is not None,
            token.gt_score > 0,
            pool is not None and pool.transactions is not None,
            token.recent_trades is not None and token.recent_trades.total_trades > 0,
            token.ohlcv_analysis is not None and token.ohlcv_analysis.data_points > 0,
        )
        confidence += 0.1 * sum(present)
        return round(min(confidence, 1.0), 2)


_default_calculator = RiskCalculator()


def calculate_risk_score(token: Token, now: datetime | None = None) -> RiskScore:
    return _default_calculator.calculate_risk_score(token, now)
