from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # CoinGecko on-chain (GeckoTerminal) Pro API: primary market source
    coingecko_api_key: str = ""
    coingecko_base_url: str = "https://pro-api.coingecko.com/api/v3"
    coingecko_max_rps: float = 10.0  # Analyst plan: 500 calls/min

    # Helius (Solana RPC): exact supply + mint/freeze authorities
    helius_api_key: str = ""
    helius_rpc_url: str = ""
    helius_max_rps: float = 10.0

    # Birdeye: fallback market source (price/volume when primary fails)
    birdeye_api_key: str = ""
    birdeye_max_rps: float = 15.0
    enable_birdeye_fallback: bool = True  # no-op without birdeye_api_key

    # Cache (advisory only, correctness never depends on it)
    redis_url: str = "redis://localhost:6379/0"
    enable_cache: bool = True
    token_cache_ttl_sec: int = 60
    trending_cache_ttl_sec: int = 3600

    # Timeouts
    http_timeout_sec: float = 10.0
    fetch_timeout_sec: float = 20.0  # per aggregator branch, covers adapter retries

    # Batch lookups
    batch_size: int = 50  # GeckoTerminal /tokens/multi cap
    max_batch_mints: int = 100
    single_holders_count: int = 10
    batch_holders_count: int = 5

    # Trending enrichment pacing (fixed budget, not reactive throttling)
    trending_batch_size: int = 5
    trending_token_delay_sec: float = 0.2
    trending_call_delay_sec: float = 0.5
    trending_batch_delay_sec: float = 1.0

    # Background refresher
    refresh_interval_sec: int = 3600
    refresh_trending_limit: int = 100

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def resolved_helius_rpc_url(self) -> str:
        if self.helius_rpc_url:
            return self.helius_rpc_url
        return f"https://mainnet.helius-rpc.com/?api-key={self.helius_api_key}"

    @property
    def birdeye_enabled(self) -> bool:
        return self.enable_birdeye_fallback and bool(self.birdeye_api_key)


settings = Settings()
