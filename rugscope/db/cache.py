"""Redis-backed advisory cache.

A malformed URL or an unreachable server reads as a miss or
a no-op write; the aggregator is correct with the cache entirely off.
"""

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

TOKEN_KEY_PREFIX = "token:"
TRENDING_KEY = "tokens:trending"


def token_key(mint: str) -> str:
    return f"{TOKEN_KEY_PREFIX}{mint}"


def trending_key() -> str:
    return TRENDING_KEY


class RedisCache:
    def __init__(self, redis_url: str = "", *, client: Redis | None = None) -> None:
        self._redis_url = redis_url
        self._client = client
        self._unavailable = False

    async def connect(self) -> Redis | None:
        """Lazily build the client. A malformed URL disables the cache for good."""
        if self._client is None and not self._unavailable:
            try:
                self._client = Redis.from_url(self._redis_url, decode_responses=True)
            except ValueError as e:
                self._unavailable = True
                logger.warning(f"[CACHE] invalid redis url, caching disabled: {e}")
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            except (RedisError, OSError) as e:
                logger.debug(f"[CACHE] close failed: {e}")
            self._client = None

    async def get(self, key: str) -> str | None:
        try:
            client = await self.connect()
            if client is None:
                return None
            value = await client.get(key)
        except (RedisError, OSError) as e:
            logger.debug(f"[CACHE] get {key} failed: {e}")
            return None
        if value is None:
            return None
        if isinstance(value, bytes):
            try:
                return value.decode()
            except UnicodeDecodeError:
                return None
        return str(value)

    async def set(self, key: str, value: str, ttl_sec: int) -> None:
        try:
            client = await self.connect()
            if client is None:
                return
            await client.set(key, value, ex=max(1, int(ttl_sec)))
        except (RedisError, OSError) as e:
            logger.debug(f"[CACHE] set {key} failed: {e}")


class NullCache:
    """Always-miss cache (caching disabled)."""

    async def get(self, key: str) -> str | None:
        return None

    async def set(self, key: str, value: str, ttl_sec: int) -> None:
        return None

    async def close(self) -> None:
        return None
