"""AutoTrader — application configuration.

Loads .env variables into a typed config object.
Validates required variables on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


_REQUIRED_VARS = [
    "BIRDEYE_API_KEY",
    "ENCRYPTION_KEY",
]


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    birdeye_api_key: str
    encryption_key: str  # 64 hex chars (AES-256)
    solana_rpc_url: str
    jupiter_api_url: str
    birdeye_api_url: str
    db_path: str
    log_level: str
    poll_interval_seconds: int
    market_cache_ttl_seconds: float
    confirm_max_polls: int
    confirm_poll_interval: float
    api_port: int

    @property
    def explorer_base_url(self) -> str:
        """Return the transaction explorer base URL."""
        return "https://solscan.io/tx"


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent, or when ``ENCRYPTION_KEY`` is malformed.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    encryption_key = os.environ["ENCRYPTION_KEY"]
    if len(encryption_key) != 64:
        raise ValueError(
            "ENCRYPTION_KEY must be a 64-character hex string (32 bytes)"
        )

    return Config(
        birdeye_api_key=os.environ["BIRDEYE_API_KEY"],
        encryption_key=encryption_key,
        solana_rpc_url=os.environ.get(
            "SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com"
        ),
        jupiter_api_url=os.environ.get(
            "JUPITER_API_URL", "https://api.jup.ag/swap/v1"
        ),
        birdeye_api_url=os.environ.get(
            "BIRDEYE_API_URL", "https://public-api.birdeye.so"
        ),
        db_path=os.environ.get("DB_PATH", "data/autotrader.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        poll_interval_seconds=int(os.environ.get("POLL_INTERVAL_SECONDS", "15")),
        market_cache_ttl_seconds=float(
            os.environ.get("MARKET_CACHE_TTL_SECONDS", "30")
        ),
        confirm_max_polls=int(os.environ.get("CONFIRM_MAX_POLLS", "30")),
        confirm_poll_interval=float(os.environ.get("CONFIRM_POLL_INTERVAL", "1.0")),
        api_port=int(os.environ.get("API_PORT", "8080")),
    )
