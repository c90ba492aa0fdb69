"""Pydantic models for Birdeye Data Services API responses."""

from decimal import Decimal

from pydantic import BaseModel


class BirdeyeTokenOverview(BaseModel):
    """Response from /defi/token_overview (30 CU per call)."""

    address: str = ""
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None

    price: Decimal | None = None
    marketCap: Decimal | None = None
    mc: Decimal | None = None
    fdv: Decimal | None = None
    liquidity: Decimal | None = None
    holder: int | None = None

    v24hUSD: Decimal | None = None
    priceChange24hPercent: Decimal | None = None

    model_config = {"extra": "ignore"}


class BirdeyePrice(BaseModel):
    """Response from /defi/price (10 CU)."""

    value: Decimal | None = None
    updateUnixTime: int | None = None
    priceChange24h: Decimal | None = None
    liquidity: Decimal | None = None

    model_config = {"extra": "ignore"}
