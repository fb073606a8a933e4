import logging
import warnings

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    environment: str = "development"  # development | test | production

    # Server
    admarket_host: str = "0.0.0.0"
    admarket_port: int = 8080

    # Database (sqlite for local dev, postgresql+asyncpg for production)
    database_url: str = "sqlite+aiosqlite:///./admarket.db"

    # Advertisement token protocol
    advertisement_protocol_marker: str = "1AdDtKreEzbHYKFjmoBuduFmSXXUGZG"
    advertisement_topic: str = "tm_advertisement"
    advertisement_lookup_service: str = "ls_advertisement"

    # Campaign storage table names
    funding_collection_name: str = "funding"
    payout_collection_name: str = "payouts"

    # Wallet (BRC-100 HTTP substrate). Empty URL runs a local wallet over
    # SERVER_PRIVATE_KEY (hex; a fresh key per process when unset).
    wallet_url: str = ""
    wallet_originator: str = "admarket"
    server_private_key: str = ""

    # Reward key derivation: [security level, protocol name]
    reward_protocol_security_level: int = 2
    reward_protocol_name: str = "3241645161d8"

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()

# Warn on insecure defaults (logged at startup, not a hard error for dev convenience)
_logger = logging.getLogger("admarket.config")


def validate_security_posture(cfg: Settings) -> None:
    is_prod = cfg.environment.lower() in {"production", "prod"}

    if cfg.cors_origins == "*":
        if is_prod:
            raise RuntimeError(
                "FATAL: CORS_ORIGINS cannot be '*' in production. "
                "Set explicit trusted origins via the CORS_ORIGINS environment variable."
            )
        _logger.warning(
            "CORS_ORIGINS is set to '*' (allow all). "
            "Configure specific origins for production via the CORS_ORIGINS environment variable."
        )

    if not cfg.wallet_url:
        if is_prod:
            raise RuntimeError(
                "FATAL: WALLET_URL must point at a wallet service in production. "
                "Rewards cannot be paid by the local wallet."
            )
        warnings.warn(
            "WALLET_URL is not set; quiz rewards will be paid by the local wallet.",
            stacklevel=1,
        )


validate_security_posture(settings)
