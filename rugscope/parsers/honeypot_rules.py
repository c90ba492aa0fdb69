"""Honeypot verdict as an ordered rule table.

Rules are evaluated top to bottom; the first one that returns a verdict
wins. An explicit upstream flag always beats the transaction heuristics,
and the last rule always answers (``unknown``).
"""

from collections.abc import Callable
from dataclasses import dataclass

from rugscope.models.risk import HoneypotRisk, HoneypotStatus
from rugscope.models.token import Token, TxCounts

MIN_TRANSACTIONS = 10
MIN_UNIQUE_TRADERS = 10
MIN_VOLUME_USD = 10_000.0


@dataclass(frozen=True)
class HoneypotContext:
    flag: bool | None
    tx: TxCounts | None  # first available of h24, h1, h6
    volume_24h: float | None  # pool h24 volume

    @property
    def total_tx(self) -> int:
        return self.tx.total if self.tx else 0

    @property
    def has_enough_tx(self) -> bool:
        return self.tx is not None and self.total_tx > MIN_TRANSACTIONS

    @property
    def sell_ratio(self) -> float:
        return self.tx.sells / self.total_tx if self.tx and self.total_tx else 0.0


def build_context(token: Token) -> HoneypotContext:
    pool = token.top_pool
    tx = None
    volume = None
    if pool is not None:
        if pool.transactions is not None:
            t = pool.transactions
            tx = t.h24 or t.h1 or t.h6
        if pool.volume_usd is not None:
            volume = pool.volume_usd.h24
    return HoneypotContext(flag=token.is_honeypot, tx=tx, volume_24h=volume)


HoneypotRule = Callable[[HoneypotContext], HoneypotRisk | None]


def flagged_yes(ctx: HoneypotContext) -> HoneypotRisk | None:
    if ctx.flag is True:
        return HoneypotRisk(score=30, is_honeypot=HoneypotStatus.YES, detection_method="CoinGecko confirmed")
    return None


def flagged_no(ctx: HoneypotContext) -> HoneypotRisk | None:
    if ctx.flag is False:
        return HoneypotRisk(score=0, is_honeypot=HoneypotStatus.NO, detection_method="CoinGecko verified safe")
    return None


def nobody_sells(ctx: HoneypotContext) -> HoneypotRisk | None:
    if ctx.has_enough_tx and ctx.sell_ratio < 0.05:
        return HoneypotRisk(
            score=30,
            is_honeypot=HoneypotStatus.YES,
            detection_method="No one can sell (honeypot pattern)",
            sell_ratio=ctx.sell_ratio,
        )
    return None


def few_sells(ctx: HoneypotContext) -> HoneypotRisk | None:
    if ctx.has_enough_tx and ctx.sell_ratio < 0.15:
        return HoneypotRisk(
            score=25,
            is_honeypot=HoneypotStatus.SUSPECTED,
            detection_method="Very few sellers (suspicious)",
            sell_ratio=ctx.sell_ratio,
        )
    return None


def few_unique_sellers(ctx: HoneypotContext) -> HoneypotRisk | None:
    if not ctx.has_enough_tx or ctx.tx is None:
        return None
    unique = ctx.tx.unique_traders
    if unique <= MIN_UNIQUE_TRADERS:
        return None
    seller_ratio = ctx.tx.sellers / unique
    if seller_ratio < 0.10:
        return HoneypotRisk(
            score=28,
            is_honeypot=HoneypotStatus.YES,
            detection_method="Few unique sellers can exit",
            sell_ratio=ctx.sell_ratio,
            seller_ratio=seller_ratio,
            unique_sellers=ctx.tx.sellers,
        )
    return None


def low_sell_volume(ctx: HoneypotContext) -> HoneypotRisk | None:
    # Volume split is estimated from tx counts: sell/buy share = sells/buys
    if not ctx.has_enough_tx or ctx.tx is None or ctx.tx.buys == 0:
        return None
    if not ctx.volume_24h or ctx.volume_24h <= MIN_VOLUME_USD:
        return None
    if ctx.tx.sells / ctx.tx.buys < 0.1:
        return HoneypotRisk(
            score=25,
            is_honeypot=HoneypotStatus.SUSPECTED,
            detection_method="Sell volume suspiciously low",
            sell_ratio=ctx.sell_ratio,
        )
    return None


def passed_checks(ctx: HoneypotContext) -> HoneypotRisk | None:
    if not ctx.has_enough_tx or ctx.tx is None:
        return None
    return HoneypotRisk(
        score=0,
        is_honeypot=HoneypotStatus.NO,
        detection_method=(
            f"Transaction analysis ({ctx.sell_ratio * 100:.1f}% sells, "
            f"{ctx.tx.sellers} unique sellers)"
        ),
        sell_ratio=ctx.sell_ratio,
        unique_sellers=ctx.tx.sellers,
    )


def unknown(ctx: HoneypotContext) -> HoneypotRisk:
    return HoneypotRisk(
        score=0,
        is_honeypot=HoneypotStatus.UNKNOWN,
        detection_method="Insufficient transaction data - unable to verify",
    )


HONEYPOT_RULES: tuple[HoneypotRule, ...] = (
    flagged_yes,
    flagged_no,
    nobody_sells,
    few_sells,
    few_unique_sellers,
    low_sell_volume,
    passed_checks,
    unknown,
)


def evaluate_honeypot(token: Token) -> HoneypotRisk:
    ctx = build_context(token)
    for rule in HONEYPOT_RULES:
        verdict = rule(ctx)
        if verdict is not None:
            return verdict
    return unknown(ctx)
