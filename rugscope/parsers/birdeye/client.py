"""Birdeye Data Services API client.

Fallback market source: price, market cap, liquidity and volume for a
mint the primary source does not know. Retry with a fixed backoff for
transient errors (timeout, 429, 5xx).
"""

import asyncio
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from rugscope.models.market import FallbackMarketData
from rugscope.parsers.birdeye.models import BirdeyePrice, BirdeyeTokenOverview
from rugscope.parsers.rate_limiter import RateLimiter

BASE_URL = "https://public-api.birdeye.so"
MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class BirdeyeApiError(Exception):
    pass


class BirdeyeClient:
    """Async client for Birdeye Data Services API (Lite plan: 15 RPS)."""

    def __init__(
        self,
        api_key: str,
        *,
        max_rps: float = 15.0,
        timeout: float = 10.0,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
        retry_delays: list[float] | None = None,
    ) -> None:
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)
        self._retry_delays = retry_delays if retry_delays is not None else RETRY_DELAYS
        self._client = client or httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=timeout,
            headers={
                "X-API-KEY": api_key,
                "Accept": "application/json",
                "x-chain": "solana",
            },
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, path: str, **kwargs: Any) -> dict[str, Any] | None:
        """Rate-limited GET with retry. Returns the ``data`` object, or None on 404."""
        last_exc: Exception | None = None

        for attempt in range(MAX_RETRIES + 1):
            delay = self._retry_delays[min(attempt, len(self._retry_delays) - 1)] if self._retry_delays else 0.0
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.get(path, **kwargs)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_exc = e
                if attempt < MAX_RETRIES:
                    logger.debug(f"[BIRDEYE] {type(e).__name__}, retry {attempt + 1} in {delay}s: {path}")
                    await asyncio.sleep(delay)
                    continue
                raise BirdeyeApiError(f"Request failed after {MAX_RETRIES + 1} attempts: {path}: {e}") from e
            except httpx.RequestError as e:
                raise BirdeyeApiError(f"Request failed: {path}: {e}") from e

            if resp.status_code == 404:
                return None
            if resp.status_code == 401:
                raise BirdeyeApiError("Invalid API key (401)")
            if resp.status_code == 429 or resp.status_code >= 500:
                if attempt < MAX_RETRIES:
                    logger.debug(f"[BIRDEYE] {resp.status_code}, retry {attempt + 1} in {delay}s: {path}")
                    await asyncio.sleep(delay)
                    continue
                raise BirdeyeApiError(f"HTTP {resp.status_code} after retries: {path}")
            if resp.status_code >= 400:
                raise BirdeyeApiError(f"HTTP {resp.status_code}: {path}")

            try:
                data = resp.json()
            except ValueError as e:
                raise BirdeyeApiError(f"Invalid JSON: {path}") from e
            if not isinstance(data, dict):
                raise BirdeyeApiError(f"Unexpected payload: {path}")
            if not data.get("success", True):
                raise BirdeyeApiError(f"API error: {data.get('message', 'unknown')}")
            inner = data.get("data")
            return inner if isinstance(inner, dict) else None

        raise BirdeyeApiError(f"Request failed after retries: {path}") from last_exc

    async def get_token_overview(self, address: str) -> BirdeyeTokenOverview | None:
        data = await self._request("/defi/token_overview", params={"address": address})
        return BirdeyeTokenOverview.model_validate(data) if data else None

    async def get_price(self, address: str) -> BirdeyePrice | None:
        data = await self._request("/defi/price", params={"address": address})
        return BirdeyePrice.model_validate(data) if data else None

    async def fetch_fallback_market(self, mint: str) -> FallbackMarketData | None:
        """Overview first; ``/defi/price`` only when the overview has no price."""
        overview: BirdeyeTokenOverview | None = None
        try:
            overview = await self.get_token_overview(mint)
        except (BirdeyeApiError, ValidationError) as e:
            logger.debug(f"[BIRDEYE] overview for {mint[:12]}: {e}")

        price: BirdeyePrice | None = None
        if overview is None or not overview.price:
            try:
                price = await self.get_price(mint)
            except (BirdeyeApiError, ValidationError) as e:
                logger.debug(f"[BIRDEYE] price for {mint[:12]}: {e}")

        if overview is None and (price is None or price.value is None):
            return None

        price_usd = overview.price if overview and overview.price else (price.value if price else None)
        if overview is None:
            return FallbackMarketData(
                address=mint,
                price_usd=float(price_usd or 0),
                price_change_24h=float(price.priceChange24h or 0) if price else 0.0,
                liquidity_usd=float(price.liquidity or 0) if price else 0.0,
            )

        return FallbackMarketData(
            address=mint,
            name=overview.name,
            symbol=overview.symbol,
            decimals=overview.decimals,
            price_usd=float(price_usd or 0),
            price_change_24h=float(overview.priceChange24hPercent or 0),
            volume_24h=float(overview.v24hUSD or 0),
            market_cap=float(overview.marketCap or overview.mc or overview.fdv or 0),
            liquidity_usd=float(overview.liquidity or 0),
            holder_count=overview.holder or 0,
        )
