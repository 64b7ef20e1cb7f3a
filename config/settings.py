from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Upstream services (defaults point at the public Polymarket endpoints)
    CLOB_API_URL: str = "https://clob.polymarket.com"
    DATA_API_URL: str = "https://data-api.polymarket.com"
    POLYGON_RPC_URL: str = "https://polygon-rpc.com"
    CHAIN_ID: int = 137
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Contracts: USDC.e collateral and the CTF exchange spenders
    COLLATERAL_TOKEN_ADDRESS: str = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
    EXCHANGE_ADDRESS: str = "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E"
    NEG_RISK_EXCHANGE_ADDRESS: str = "0xC5d563A36AE78145C45a50134d48A1215220f80a"

    # Market defaults, used when the caller does not supply market constraints
    DEFAULT_TICK_SIZE: Decimal = Decimal("0.01")
    DEFAULT_MIN_ORDER_SIZE: Decimal = Decimal("1")
    MIN_MARKETABLE_BUY_NOTIONAL: Decimal = Decimal("1")

    # Market-order pricing policy
    MAX_SLIPPAGE_PERCENT: Decimal = Decimal("2")
    MARKET_ORDER_BUFFER: Decimal = Decimal("0.005")  # 0.5% past the worst touched level

    # GTD orders: exchange enforces a one-minute security threshold
    GTD_SECURITY_BUFFER_SECONDS: int = 60

    # Confirmation polling: bounded, attempts x interval
    CONFIRM_POLL_MAX_ATTEMPTS: int = 10
    CONFIRM_POLL_INTERVAL_SECONDS: float = 1.0

    # Indexer lags settlement by a few seconds; refetch again after these delays
    POST_FILL_REFETCH_DELAYS: list[float] = [1.0, 3.0, 5.0]

    # Funding queries: refetched on read once older than this; dropped when idle
    QUERY_STALE_SECONDS: float = 15.0
    QUERY_EVICT_SECONDS: float = 600.0

    # Balance cache
    BALANCE_CACHE_BACKEND: str = "memory"  # "memory" or "redis"
    BALANCE_CACHE_TTL_SECONDS: int = 30
    REDIS_URL: str = "redis://localhost:6379/0"

    # App
    APP_NAME: str = "CLOB Order Engine"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"


settings = Settings()
