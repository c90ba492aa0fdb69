"""CoinGecko on-chain (GeckoTerminal) Pro API client.

Primary market source: token metadata, holders, authorities, pools,
trades and OHLCV for Solana tokens.
Retry with a fixed backoff table for transient errors (timeout, 429, 5xx).
Every public ``fetch_*`` returns a normalized DTO, or ``None`` / ``[]`` /
``{}`` when the upstream has nothing usable.
"""

import asyncio
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from rugscope.models.market import (
    MarketData,
    PoolDetail,
    PoolRef,
    TokenInfo,
    TrendingPool,
)
from rugscope.models.token import (
    Candle,
    PoolTransactions,
    TimeframePriceChange,
    TimeframeVolume,
    TokenAuthorities,
    TokenHolder,
    Trade,
    TxCounts,
)
from rugscope.parsers.geckoterminal.models import (
    GTHolderItem,
    GTPoolAttributes,
    GTResource,
    GTTokenAttributes,
    GTTokenInfoAttributes,
    GTTradeAttributes,
    GTTxWindow,
)
from rugscope.parsers.rate_limiter import RateLimiter
from rugscope.utils.parse import float_or_zero, parse_datetime, raw_amount, safe_float, safe_int

BASE_URL = "https://pro-api.coingecko.com/api/v3"
NETWORK = "solana"
MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]

MULTI_BATCH_LIMIT = 50
TRENDING_PAGE_SIZE = 20
MAX_TOP_HOLDERS = 40
MAX_OHLCV_LIMIT = 1000


class GeckoTerminalApiError(Exception):
    pass


class GeckoTerminalClient:
    """Async client for the CoinGecko on-chain Pro API (Analyst plan endpoints)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        *,
        max_rps: float = 10.0,
        timeout: float = 10.0,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
        retry_delays: list[float] | None = None,
    ) -> None:
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)
        self._retry_delays = retry_delays if retry_delays is not None else RETRY_DELAYS
        headers = {"Accept": "application/json"}
        if api_key:
            headers["x-cg-pro-api-key"] = api_key
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=timeout, headers=headers,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _delay(self, attempt: int, resp: httpx.Response | None = None) -> float:
        if resp is not None:
            retry_after = safe_float(resp.headers.get("Retry-After"))
            if retry_after is not None and retry_after >= 0:
                return retry_after
        if not self._retry_delays:
            return 0.0
        return self._retry_delays[min(attempt, len(self._retry_delays) - 1)]

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        """Rate-limited GET with retry. Returns parsed JSON, or None on 404."""
        last_exc: Exception | None = None

        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.get(path, params=params)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_exc = e
                if attempt < MAX_RETRIES:
                    delay = self._delay(attempt)
                    logger.debug(f"[GT] {type(e).__name__}, retry {attempt + 1} in {delay}s: {path}")
                    await asyncio.sleep(delay)
                    continue
                raise GeckoTerminalApiError(
                    f"Request failed after {MAX_RETRIES + 1} attempts: {path}: {e}"
                ) from e
            except httpx.RequestError as e:
                raise GeckoTerminalApiError(f"Request failed: {path}: {e}") from e

            if resp.status_code == 404:
                return None

            if resp.status_code == 429 or resp.status_code >= 500:
                if attempt < MAX_RETRIES:
                    delay = self._delay(attempt, resp)
                    logger.debug(f"[GT] {resp.status_code}, retry {attempt + 1} in {delay}s: {path}")
                    await asyncio.sleep(delay)
                    continue
                raise GeckoTerminalApiError(f"HTTP {resp.status_code} after retries: {path}")

            if resp.status_code >= 400:
                raise GeckoTerminalApiError(f"HTTP {resp.status_code}: {path}")

            try:
                return resp.json()
            except ValueError as e:
                raise GeckoTerminalApiError(f"Invalid JSON: {path}") from e

        raise GeckoTerminalApiError(f"Request failed after retries: {path}") from last_exc

    async def _get(self, what: str, path: str, params: dict[str, Any] | None = None) -> Any | None:
        """``_request`` that logs and swallows upstream errors (None on failure)."""
        try:
            return await self._request(path, params)
        except GeckoTerminalApiError as e:
            logger.debug(f"[GT] {what} failed: {e}")
            return None

    # --- token ---

    async def fetch_token_info(self, mint: str) -> TokenInfo | None:
        """Metadata, holder stats, authority flags, GT score, honeypot flag."""
        payload = await self._get("token info", f"/onchain/networks/{NETWORK}/tokens/{mint}/info")
        try:
            return _parse_token_info(payload)
        except ValidationError as e:
            logger.debug(f"[GT] malformed token info for {mint[:12]}: {e.error_count()} errors")
            return None

    async def fetch_token_market_data(self, mint: str) -> MarketData | None:
        """Price/volume/market cap plus the representative (top) pool."""
        payload = await self._get(
            "market data",
            f"/onchain/networks/{NETWORK}/tokens/{mint}",
            {"include": "top_pools"},
        )
        if not isinstance(payload, dict):
            return None
        try:
            resource = _resource(payload.get("data"))
            if resource is None:
                return None
            included = _included(payload)
            pool = _find_top_pool(resource, included, allow_first=True)
            return _parse_market(resource, pool)
        except ValidationError as e:
            logger.debug(f"[GT] malformed market data for {mint[:12]}: {e.error_count()} errors")
            return None

    async def fetch_multiple_market_data(self, mints: list[str]) -> dict[str, MarketData]:
        """Batched market data, at most 50 addresses per upstream call."""
        result: dict[str, MarketData] = {}
        wanted = set(mints)
        for i in range(0, len(mints), MULTI_BATCH_LIMIT):
            chunk = mints[i:i + MULTI_BATCH_LIMIT]
            payload = await self._get(
                "multi market data",
                f"/onchain/networks/{NETWORK}/tokens/multi/{','.join(chunk)}",
                {"include": "top_pools"},
            )
            if not isinstance(payload, dict):
                continue
            included = _included(payload)
            for raw in payload.get("data") or []:
                try:
                    resource = _resource(raw)
                    if resource is None:
                        continue
                    pool = _find_top_pool(resource, included, allow_first=False)
                    market = _parse_market(resource, pool)
                except ValidationError:
                    continue
                if market is not None and market.address in wanted:
                    result[market.address] = market
        return result

    async def fetch_pool_detail(self, pool_address: str) -> PoolDetail | None:
        """Enhanced pool data: buy/sell counts, timeframe volume and price change."""
        payload = await self._get("pool detail", f"/onchain/networks/{NETWORK}/pools/{pool_address}")
        if not isinstance(payload, dict):
            return None
        try:
            resource = _resource(payload.get("data"))
            if resource is None or not resource.attributes:
                return None
            attrs = GTPoolAttributes.model_validate(resource.attributes)
        except ValidationError:
            return None
        return PoolDetail(
            address=attrs.address or pool_address,
            reserve_usd=float_or_zero(attrs.reserve_in_usd),
            price_usd=float_or_zero(attrs.token_price_usd or attrs.base_token_price_usd),
            price_change_percentage=_price_change(attrs.price_change_percentage),
            transactions=_transactions(attrs.transactions),
            volume_usd=_volume(attrs.volume_usd),
            created_at=parse_datetime(attrs.pool_created_at),
            locked_liquidity_percentage=float_or_zero(attrs.locked_liquidity_percentage),
        )

    async def fetch_top_holders(self, mint: str, count: int = 10) -> list[TokenHolder]:
        payload = await self._get(
            "top holders",
            f"/onchain/networks/{NETWORK}/tokens/{mint}/top_holders",
            {"holders": max(1, min(count, MAX_TOP_HOLDERS))},
        )
        if not isinstance(payload, dict):
            return []
        attributes = _data_attributes(payload)
        holders: list[TokenHolder] = []
        for index, raw in enumerate(attributes.get("holders") or []):
            try:
                item = GTHolderItem.model_validate(raw)
            except ValidationError:
                continue
            if not item.address:
                continue
            holders.append(
                TokenHolder(
                    address=item.address,
                    amount=raw_amount(item.amount),
                    percentage=float_or_zero(item.percentage),
                    rank=item.rank or index + 1,
                )
            )
        return holders

    async def fetch_recent_trades(self, mint: str, min_volume_usd: float = 0) -> list[Trade]:
        """Last trades (up to 300 in the past 24h) above ``min_volume_usd``."""
        payload = await self._get(
            "recent trades",
            f"/onchain/networks/{NETWORK}/tokens/{mint}/trades",
            {"trade_volume_in_usd_greater_than": min_volume_usd},
        )
        if not isinstance(payload, dict):
            return []
        trades: list[Trade] = []
        for raw in payload.get("data") or []:
            try:
                resource = _resource(raw)
                if resource is None:
                    continue
                attrs = GTTradeAttributes.model_validate(resource.attributes)
            except ValidationError:
                continue
            trades.append(
                Trade(
                    tx_hash=attrs.tx_hash or "",
                    kind="sell" if attrs.kind == "sell" else "buy",
                    volume_usd=float_or_zero(attrs.volume_in_usd),
                    from_address=attrs.tx_from_address or "",
                    block_timestamp=parse_datetime(attrs.block_timestamp),
                )
            )
        return trades

    async def fetch_ohlcv(self, mint: str, timeframe: str = "day", limit: int = 30) -> list[Candle]:
        """Candles for ``day | hour | minute``, ordered oldest to newest."""
        payload = await self._get(
            f"ohlcv/{timeframe}",
            f"/onchain/networks/{NETWORK}/tokens/{mint}/ohlcv/{timeframe}",
            {
                "aggregate": 1,
                "limit": max(1, min(limit, MAX_OHLCV_LIMIT)),
                "currency": "usd",
                "include_empty_intervals": "false",
            },
        )
        if not isinstance(payload, dict):
            return []
        attributes = _data_attributes(payload)
        candles = [c for c in map(_parse_candle, attributes.get("ohlcv_list") or []) if c]
        candles.sort(key=lambda c: c.timestamp)
        return candles

    async def fetch_trending_pools(self, limit: int = 100, window: str = "24h") -> list[TrendingPool]:
        """Trending pools, one per base token, in upstream order.

        Pages of 20 are fetched concurrently; a failed page only shrinks the result.
        """
        if limit <= 0:
            return []
        pages = (limit + TRENDING_PAGE_SIZE - 1) // TRENDING_PAGE_SIZE
        results = await asyncio.gather(
            *(self._fetch_trending_page(page, window) for page in range(1, pages + 1)),
            return_exceptions=True,
        )

        seen: set[str] = set()
        pools: list[TrendingPool] = []
        for page_result in results:
            if isinstance(page_result, BaseException):
                logger.debug(f"[GT] trending page failed: {page_result}")
                continue
            for item in page_result:
                if item.token_address in seen:
                    continue
                seen.add(item.token_address)
                pools.append(item)
        logger.debug(f"[GT] trending pools: {len(pools)} unique base tokens")
        return pools[:limit]

    async def _fetch_trending_page(self, page: int, window: str) -> list[TrendingPool]:
        payload = await self._get(
            f"trending page {page}",
            f"/onchain/networks/{NETWORK}/trending_pools",
            {"include": "base_token,quote_token", "page": page, "duration": window},
        )
        if not isinstance(payload, dict):
            return []
        items: list[TrendingPool] = []
        for raw in payload.get("data") or []:
            try:
                resource = _resource(raw)
                if resource is None:
                    continue
                address = _base_token_address(resource)
                if not address:
                    continue
                attrs = GTPoolAttributes.model_validate(resource.attributes)
            except ValidationError:
                continue
            pool = _parse_pool_ref(attrs)
            if pool is None:
                continue
            items.append(TrendingPool(token_address=address, name=attrs.name or "", pool=pool))
        return items


# --- parsing helpers ---


def _resource(raw: Any) -> GTResource | None:
    if not isinstance(raw, dict):
        return None
    return GTResource.model_validate(raw)


def _included(payload: dict[str, Any]) -> list[GTResource]:
    result: list[GTResource] = []
    for raw in payload.get("included") or []:
        try:
            resource = _resource(raw)
        except ValidationError:
            continue
        if resource is not None:
            result.append(resource)
    return result


def _relationship_ids(resource: GTResource, name: str) -> list[str]:
    rel = resource.relationships.get(name)
    if rel is None or rel.data is None:
        return []
    refs = rel.data if isinstance(rel.data, list) else [rel.data]
    return [ref.id for ref in refs if ref.id]


def _find_top_pool(
    resource: GTResource, included: list[GTResource], *, allow_first: bool,
) -> GTPoolAttributes | None:
    """Locate the token's top pool among ``included`` resources.

    ``allow_first`` picks the first included pool when no relationship id
    matches (single-token responses only, where every pool belongs to the token).
    """
    pools = {r.id: r for r in included if r.type == "pool"}
    for pool_id in _relationship_ids(resource, "top_pool") + _relationship_ids(resource, "top_pools"):
        if pool_id in pools:
            return GTPoolAttributes.model_validate(pools[pool_id].attributes)
    if allow_first and pools:
        return GTPoolAttributes.model_validate(next(iter(pools.values())).attributes)
    return None


def _base_token_address(resource: GTResource) -> str | None:
    # ids look like "solana_<address>"
    for token_id in _relationship_ids(resource, "base_token"):
        _, _, address = token_id.partition("_")
        if address:
            return address
    return None


def _parse_token_info(payload: Any) -> TokenInfo | None:
    if not isinstance(payload, dict):
        return None
    resource = _resource(payload.get("data"))
    if resource is None or not resource.attributes:
        return None
    attrs = GTTokenInfoAttributes.model_validate(resource.attributes)

    authorities = None
    if attrs.mint_authority is not None or attrs.freeze_authority is not None:
        # Only an explicit "no" counts as renounced
        authorities = TokenAuthorities(
            mint_authority=attrs.mint_authority if attrs.mint_authority != "no" else None,
            freeze_authority=attrs.freeze_authority if attrs.freeze_authority != "no" else None,
            mint_renounced=attrs.mint_authority == "no",
            freeze_renounced=attrs.freeze_authority == "no",
        )

    distribution = (attrs.holders.distribution_percentage if attrs.holders else None) or {}
    return TokenInfo(
        name=attrs.name or None,
        symbol=attrs.symbol or None,
        image_url=attrs.image_url or None,
        websites=tuple(w for w in attrs.websites or [] if w),
        twitter_handle=attrs.twitter_handle or None,
        telegram_handle=attrs.telegram_handle or None,
        holder_count=(attrs.holders.count or 0) if attrs.holders else 0,
        top10_percentage=float_or_zero(distribution.get("top_10")),
        authorities=authorities,
        gt_score=attrs.gt_score or 0.0,
        is_honeypot=_honeypot_flag(attrs.is_honeypot),
    )


def _honeypot_flag(value: bool | str | None) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("yes", "true"):
            return True
        if lowered in ("no", "false"):
            return False
    return None


def _parse_market(resource: GTResource, pool: GTPoolAttributes | None) -> MarketData | None:
    attrs = GTTokenAttributes.model_validate(resource.attributes)
    if not attrs.address:
        return None
    volume = attrs.volume_usd or {}
    price_change = attrs.price_change_percentage or {}
    return MarketData(
        address=attrs.address,
        name=attrs.name,
        symbol=attrs.symbol,
        decimals=attrs.decimals if attrs.decimals is not None else 9,
        price_usd=float_or_zero(attrs.price_usd),
        fdv_usd=float_or_zero(attrs.fdv_usd),
        market_cap_usd=safe_float(attrs.market_cap_usd),
        volume_24h=float_or_zero(volume.get("h24")),
        price_change_24h=float_or_zero(price_change.get("h24")),
        image_url=attrs.image_url or None,
        top_pool=_parse_pool_ref(pool) if pool else None,
    )


def _parse_pool_ref(attrs: GTPoolAttributes) -> PoolRef | None:
    if not attrs.address:
        return None
    return PoolRef(
        address=attrs.address,
        reserve_usd=float_or_zero(attrs.reserve_in_usd),
        volume_24h=float_or_zero((attrs.volume_usd or {}).get("h24")),
        created_at=parse_datetime(attrs.pool_created_at),
        locked_liquidity_percentage=float_or_zero(attrs.locked_liquidity_percentage),
        transactions=_transactions(attrs.transactions) if attrs.transactions else None,
        volume_usd=_volume(attrs.volume_usd) if attrs.volume_usd else None,
        price_change_percentage=(
            _price_change(attrs.price_change_percentage) if attrs.price_change_percentage else None
        ),
    )


def _tx_counts(window: GTTxWindow | None) -> TxCounts | None:
    if window is None:
        return None
    return TxCounts(
        buys=window.buys or 0,
        sells=window.sells or 0,
        buyers=window.buyers or 0,
        sellers=window.sellers or 0,
    )


def _transactions(raw: dict[str, GTTxWindow | None] | None) -> PoolTransactions:
    raw = raw or {}
    return PoolTransactions(
        m5=_tx_counts(raw.get("m5")),
        h1=_tx_counts(raw.get("h1")),
        h6=_tx_counts(raw.get("h6")),
        h24=_tx_counts(raw.get("h24")),
    )


def _volume(raw: dict[str, Any] | None) -> TimeframeVolume:
    raw = raw or {}
    return TimeframeVolume(
        m5=safe_float(raw.get("m5")),
        h1=safe_float(raw.get("h1")),
        h6=safe_float(raw.get("h6")),
        h24=safe_float(raw.get("h24")),
    )


def _price_change(raw: dict[str, Any] | None) -> TimeframePriceChange:
    raw = raw or {}
    return TimeframePriceChange(
        m5=safe_float(raw.get("m5")),
        h1=safe_float(raw.get("h1")),
        h6=safe_float(raw.get("h6")),
        h24=safe_float(raw.get("h24")),
    )


def _parse_candle(row: Any) -> Candle | None:
    """``[timestamp, open, high, low, close, volume]`` to ``Candle``."""
    if not isinstance(row, list | tuple) or len(row) < 6:
        return None
    timestamp = safe_int(row[0])
    values = [safe_float(v) for v in row[1:6]]
    if timestamp is None or any(v is None for v in values):
        return None
    o, h, lo, c, v = values
    return Candle(timestamp=timestamp, open=o, high=h, low=lo, close=c, volume=v)


def _data_attributes(payload: dict[str, Any]) -> dict[str, Any]:
    data = payload.get("data")
    if not isinstance(data, dict):
        return {}
    attributes = data.get("attributes")
    return attributes if isinstance(attributes, dict) else {}
