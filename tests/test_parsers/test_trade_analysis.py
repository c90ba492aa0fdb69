"""Tests for recent-trade pattern analysis."""

from datetime import UTC, datetime

import pytest

from rugscope.models.token import Trade
from rugscope.parsers.trade_analysis import analyze_trades, build_recent_trades

WALLET_A = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
WALLET_B = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


def _trade(kind, volume, sender=WALLET_A, ts=None):
    return Trade(tx_hash=f"tx{volume}", kind=kind, volume_usd=volume, from_address=sender, block_timestamp=ts)


def test_empty_trades():
    analysis = analyze_trades([])

    assert analysis.wash_trading_score == 0
    assert analysis.unusual_trading_detected is False
    assert analysis.buy_sell_ratio == 0.0


def test_organic_flow():
    trades = [_trade("buy", 100.0), _trade("buy", 200.0), _trade("sell", 150.0, WALLET_B)]
    analysis = analyze_trades(trades)

    assert analysis.wash_trading_score == 0
    assert analysis.whale_activity_score == 0
    assert analysis.unusual_trading_detected is False
    assert analysis.buy_sell_ratio == 2.0
    assert analysis.average_trade_size == 150.0
    assert analysis.unique_buyers == 1
    assert analysis.unique_sellers == 1
    assert analysis.largest_buy_usd == 200.0
    assert analysis.largest_sell_usd == 150.0


def test_suspicious_and_whale_trades():
    trades = [
        _trade("buy", 20_000.0),  # suspicious + whale
        _trade("sell", 2_000.0, WALLET_B),  # whale
        _trade("buy", 50.0, "short"),  # malformed sender
        _trade("buy", 50.0),
    ]
    analysis = analyze_trades(trades)

    assert analysis.suspicious_transactions == 2
    assert analysis.wash_trading_score == 100  # 2/4 * 200
    assert analysis.whale_activity_score == 75  # 2/4 * 150
    assert analysis.unusual_trading_detected is True
    assert analysis.buy_sell_ratio == 3.0


def test_ratio_rounded_to_two_places():
    trades = [_trade("buy", 10.0)] * 2 + [_trade("sell", 10.0)] * 3
    assert analyze_trades(trades).buy_sell_ratio == pytest.approx(0.67)


def test_build_recent_trades_latest_timestamp():
    early = datetime(2025, 1, 1, tzinfo=UTC)
    late = datetime(2025, 1, 2, tzinfo=UTC)
    recent = build_recent_trades([_trade("buy", 20.0, ts=late), _trade("sell", 15.0, ts=early)], 10.0)

    assert recent.total_trades == 2
    assert recent.last_trade_time == late
    assert recent.min_volume_usd == 10.0
    assert recent.analysis.total_buy_volume == 20.0
