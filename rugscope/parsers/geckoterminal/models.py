"""Pydantic models for the CoinGecko on-chain (GeckoTerminal) API responses.

Numeric values arrive as decimal strings, as numbers, or as null, so every
field is optional and string-typed where the API is inconsistent. Parsing
into floats happens in the client via ``rugscope.utils.parse``.
"""

from typing import Any

from pydantic import BaseModel


class GTHolders(BaseModel):
    count: int | None = None
    distribution_percentage: dict[str, Any] | None = None

    model_config = {"extra": "ignore"}


class GTTokenInfoAttributes(BaseModel):
    """``/tokens/{address}/info`` attributes."""

    address: str | None = None
    name: str | None = None
    symbol: str | None = None
    image_url: str | None = None
    websites: list[str] | None = None
    twitter_handle: str | None = None
    telegram_handle: str | None = None
    holders: GTHolders | None = None
    # "yes" | "no" | null
    mint_authority: str | None = None
    freeze_authority: str | None = None
    gt_score: float | None = None
    # bool, "yes"/"no", or absent
    is_honeypot: bool | str | None = None

    model_config = {"extra": "ignore"}


class GTTxWindow(BaseModel):
    buys: int | None = None
    sells: int | None = None
    buyers: int | None = None
    sellers: int | None = None

    model_config = {"extra": "ignore"}


class GTPoolAttributes(BaseModel):
    """Pool attributes as embedded in ``included`` or returned by ``/pools/{address}``."""

    address: str | None = None
    name: str | None = None
    base_token_price_usd: str | float | None = None
    token_price_usd: str | float | None = None
    reserve_in_usd: str | float | None = None
    pool_created_at: str | None = None
    locked_liquidity_percentage: str | float | None = None
    volume_usd: dict[str, str | float | None] | None = None
    price_change_percentage: dict[str, str | float | None] | None = None
    transactions: dict[str, GTTxWindow | None] | None = None

    model_config = {"extra": "ignore"}


class GTTokenAttributes(BaseModel):
    """``/tokens/{address}`` and ``/tokens/multi/{addresses}`` attributes."""

    address: str | None = None
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    image_url: str | None = None
    price_usd: str | float | None = None
    fdv_usd: str | float | None = None
    market_cap_usd: str | float | None = None
    total_supply: str | float | None = None
    volume_usd: dict[str, str | float | None] | None = None
    price_change_percentage: dict[str, str | float | None] | None = None

    model_config = {"extra": "ignore"}


class GTRelationshipRef(BaseModel):
    id: str | None = None
    type: str | None = None

    model_config = {"extra": "ignore"}


class GTRelationship(BaseModel):
    # Single ref for top_pool/base_token, list for top_pools
    data: GTRelationshipRef | list[GTRelationshipRef] | None = None

    model_config = {"extra": "ignore"}


class GTResource(BaseModel):
    """Generic JSON:API resource envelope."""

    id: str = ""
    type: str = ""
    attributes: dict[str, Any] = {}
    relationships: dict[str, GTRelationship] = {}

    model_config = {"extra": "ignore"}


class GTHolderItem(BaseModel):
    address: str = ""
    amount: str | float | None = None
    percentage: str | float | None = None
    rank: int | None = None

    model_config = {"extra": "ignore"}


class GTTradeAttributes(BaseModel):
    tx_hash: str | None = None
    kind: str | None = None
    volume_in_usd: str | float | None = None
    tx_from_address: str | None = None
    block_timestamp: str | None = None

    model_config = {"extra": "ignore"}
