"""Trade pattern analysis: wash trading, whale activity and buy/sell pressure.

Works on the recent trade list from the primary source (already filtered
by the minimum trade size the fetch cascade succeeded at).
"""

from rugscope.models.token import RecentTrades, Trade, TradeAnalysis
from rugscope.utils.parse import round_half_up

WHALE_TRADE_USD = 1_000.0
SUSPICIOUS_TRADE_USD = 10_000.0
# Sender addresses shorter than this are malformed
MIN_SENDER_LENGTH = 10


def analyze_trades(trades: list[Trade] | tuple[Trade, ...]) -> TradeAnalysis:
    if not trades:
        return TradeAnalysis()

    total_buy = 0.0
    total_sell = 0.0
    buy_count = 0
    sell_count = 0
    suspicious = 0
    whales = 0
    largest_buy = 0.0
    largest_sell = 0.0
    buyers: set[str] = set()
    sellers: set[str] = set()

    for trade in trades:
        volume = trade.volume_usd
        if trade.kind == "sell":
            total_sell += volume
            sell_count += 1
            largest_sell = max(largest_sell, volume)
            if trade.from_address:
                sellers.add(trade.from_address)
        else:
            total_buy += volume
            buy_count += 1
            largest_buy = max(largest_buy, volume)
            if trade.from_address:
                buyers.add(trade.from_address)

        if volume > WHALE_TRADE_USD:
            whales += 1
        sender = trade.from_address
        if volume > SUSPICIOUS_TRADE_USD or (sender and len(sender) < MIN_SENDER_LENGTH):
            suspicious += 1

    count = len(trades)
    wash_score = min(100.0, suspicious / count * 200)
    whale_score = min(100.0, whales / count * 150)
    buy_sell_ratio = buy_count / sell_count if sell_count else 0.0

    return TradeAnalysis(
        wash_trading_score=round_half_up(wash_score),
        unusual_trading_detected=wash_score > 20 or whale_score > 30,
        whale_activity_score=round_half_up(whale_score),
        buy_sell_ratio=round_half_up(buy_sell_ratio * 100) / 100,
        average_trade_size=float(round_half_up((total_buy + total_sell) / count)),
        suspicious_transactions=suspicious,
        total_buy_volume=float(round_half_up(total_buy)),
        total_sell_volume=float(round_half_up(total_sell)),
        unique_buyers=len(buyers),
        unique_sellers=len(sellers),
        largest_buy_usd=largest_buy,
        largest_sell_usd=largest_sell,
    )


def build_recent_trades(trades: list[Trade], min_volume_usd: float = 0.0) -> RecentTrades:
    timestamps = [t.block_timestamp for t in trades if t.block_timestamp is not None]
    return RecentTrades(
        trades=tuple(trades),
        analysis=analyze_trades(trades),
        total_trades=len(trades),
        last_trade_time=max(timestamps) if timestamps else None,
        min_volume_usd=min_volume_usd,
    )
