"""Pydantic models for Helius JSON-RPC responses."""

from typing import Any

from pydantic import BaseModel


class RpcError(BaseModel):
    code: int | None = None
    message: str = ""

    model_config = {"extra": "ignore"}


class RpcResponse(BaseModel):
    result: Any = None
    error: RpcError | None = None

    model_config = {"extra": "ignore"}


class TokenAmountValue(BaseModel):
    """``getTokenSupply`` → ``result.value``. ``amount`` is the exact raw supply."""

    amount: str = "0"
    decimals: int | None = None
    uiAmountString: str | None = None

    model_config = {"extra": "ignore"}


class ParsedMintInfo(BaseModel):
    mintAuthority: str | None = None
    freezeAuthority: str | None = None
    decimals: int | None = None
    supply: str | None = None
    isInitialized: bool | None = None

    model_config = {"extra": "ignore"}


class ParsedAccountData(BaseModel):
    type: str = ""
    info: dict[str, Any] = {}

    model_config = {"extra": "ignore"}
