"""Helius RPC client for exact token supply and mint/freeze authorities."""

import asyncio
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from rugscope.models.token import TokenAuthorities
from rugscope.parsers.helius.models import (
    ParsedAccountData,
    ParsedMintInfo,
    RpcResponse,
    TokenAmountValue,
)
from rugscope.parsers.rate_limiter import RateLimiter
from rugscope.utils.parse import raw_amount

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class HeliusApiError(Exception):
    pass


class HeliusClient:
    """Async JSON-RPC client for the Helius mainnet endpoint."""

    def __init__(
        self,
        api_key: str,
        rpc_url: str = "",
        *,
        max_rps: float = 10.0,
        timeout: float = 10.0,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
        retry_delays: list[float] | None = None,
    ) -> None:
        self._rpc_url = rpc_url or f"https://mainnet.helius-rpc.com/?api-key={api_key}"
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)
        self._retry_delays = retry_delays if retry_delays is not None else RETRY_DELAYS
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        """POST a JSON-RPC call; returns ``result`` or raises ``HeliusApiError``."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        last_exc: Exception | None = None

        for attempt in range(MAX_RETRIES + 1):
            delay = self._retry_delays[min(attempt, len(self._retry_delays) - 1)] if self._retry_delays else 0.0
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.post(self._rpc_url, json=payload)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_exc = e
                if attempt < MAX_RETRIES:
                    logger.debug(f"[HELIUS] {method} {type(e).__name__}, retry {attempt + 1} in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise HeliusApiError(f"{method} failed: {e}") from e
            except httpx.RequestError as e:
                raise HeliusApiError(f"{method} failed: {e}") from e

            if resp.status_code == 429 or resp.status_code >= 500:
                if attempt < MAX_RETRIES:
                    logger.debug(f"[HELIUS] {method} HTTP {resp.status_code}, retry {attempt + 1} in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise HeliusApiError(f"{method} HTTP {resp.status_code} after retries")
            if resp.status_code != 200:
                raise HeliusApiError(f"{method} HTTP {resp.status_code}")

            try:
                data = RpcResponse.model_validate(resp.json())
            except (ValueError, ValidationError) as e:
                raise HeliusApiError(f"{method} malformed response") from e
            if data.error is not None:
                raise HeliusApiError(f"{method} RPC error {data.error.code}: {data.error.message}")
            return data.result

        raise HeliusApiError(f"{method} failed after retries") from last_exc

    async def fetch_onchain_supply(self, mint: str) -> int | None:
        """Exact raw supply (base units) via ``getTokenSupply``."""
        try:
            result = await self._rpc("getTokenSupply", [mint])
        except HeliusApiError as e:
            logger.debug(f"[HELIUS] supply for {mint[:12]}: {e}")
            return None
        if not isinstance(result, dict) or not isinstance(result.get("value"), dict):
            return None
        try:
            value = TokenAmountValue.model_validate(result["value"])
        except ValidationError:
            return None
        return raw_amount(value.amount)

    async def fetch_onchain_authorities(self, mint: str) -> TokenAuthorities | None:
        """Mint/freeze authority from the parsed mint account.

        Returns None when the account is missing or is not a mint.
        """
        try:
            result = await self._rpc("getAccountInfo", [mint, {"encoding": "jsonParsed"}])
        except HeliusApiError as e:
            logger.debug(f"[HELIUS] account info for {mint[:12]}: {e}")
            return None
        parsed = _parsed_account(result)
        if parsed is None or parsed.type != "mint":
            return None
        try:
            info = ParsedMintInfo.model_validate(parsed.info)
        except ValidationError:
            return None
        return TokenAuthorities(
            mint_authority=info.mintAuthority,
            freeze_authority=info.freezeAuthority,
            mint_renounced=not info.mintAuthority,
            freeze_renounced=not info.freezeAuthority,
        )


def _parsed_account(result: Any) -> ParsedAccountData | None:
    """``result.value.data.parsed`` or None."""
    if not isinstance(result, dict):
        return None
    value = result.get("value")
    if not isinstance(value, dict):
        return None
    data = value.get("data")
    if not isinstance(data, dict) or not isinstance(data.get("parsed"), dict):
        return None
    try:
        return ParsedAccountData.model_validate(data["parsed"])
    except ValidationError:
        return None
