"""OHLCV pattern analysis: volatility, trend and volume spikes.

Candles are expected oldest to newest (the client normalizes order).
"""

import math

from rugscope.models.token import (
    Candle,
    OHLCVAnalysis,
    OHLCVMetrics,
    PriceRange,
    VolumeAnomaly,
)
from rugscope.utils.parse import round_half_up

TREND_THRESHOLD_PCT = 5.0
SPIKE_MULTIPLIER = 2.0


def analyze_candles(candles: list[Candle] | tuple[Candle, ...]) -> OHLCVMetrics:
    """Volatility score, trend, volume anomalies and manipulation risk.

    Fewer than two candles carry no signal: neutral defaults.
    """
    if len(candles) < 2:
        return OHLCVMetrics()

    total_volume = 0.0
    changes: list[float] = []
    anomalies: list[VolumeAnomaly] = []
    high = max(c.high for c in candles)
    low = min(c.low for c in candles)

    for index, candle in enumerate(candles):
        total_volume += candle.volume
        if index > 0:
            prev_close = candles[index - 1].close
            if prev_close > 0:
                changes.append((candle.close - prev_close) / prev_close * 100)

        # Running average includes the current candle
        avg_volume = total_volume / (index + 1)
        if avg_volume > 0 and candle.volume > avg_volume * SPIKE_MULTIPLIER:
            anomalies.append(
                VolumeAnomaly(
                    timestamp=candle.timestamp,
                    volume=candle.volume,
                    avg_volume=avg_volume,
                    spike_ratio=candle.volume / avg_volume,
                )
            )

    volatility = 0.0
    if changes:
        mean = sum(changes) / len(changes)
        variance = sum((c - mean) ** 2 for c in changes) / len(changes)
        volatility = math.sqrt(variance)
    volatility_score = min(100.0, volatility * 2)

    trend = "neutral"
    first_close = candles[0].close
    if first_close > 0:
        overall = (candles[-1].close - first_close) / first_close * 100
        if overall > TREND_THRESHOLD_PCT:
            trend = "bullish"
        elif overall < -TREND_THRESHOLD_PCT:
            trend = "bearish"

    manipulation = min(100.0, volatility_score * 0.6 + len(anomalies) * 5)

    if volatility_score > 50:
        stability = "volatile"
    elif volatility_score > 30:
        stability = "moderate"
    else:
        stability = "stable"

    return OHLCVMetrics(
        volatility_score=round_half_up(volatility_score),
        trend_direction=trend,
        volume_anomalies=tuple(anomalies),
        price_manipulation_risk=round_half_up(manipulation),
        liquidity_stability=stability,
        average_volume=float(round_half_up(total_volume / len(candles))),
        price_range=PriceRange(high=high, low=low, range=high - low),
    )


def build_ohlcv_analysis(candles: list[Candle], timeframe: str) -> OHLCVAnalysis:
    return OHLCVAnalysis(
        ohlcv_data=tuple(candles),
        analysis=analyze_candles(candles),
        timeframe=timeframe,
        data_points=len(candles),
    )
