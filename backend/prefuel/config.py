from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache

_BACKEND_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _BACKEND_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Prefuel ERP API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    cors_origins: list[str] = ["http://localhost:5173"]

    # Snapshot persistence
    data_file: str = "data/data.json"
    backup_dir: str = "data/backups"
    backup_keep: int = 5

    # Auth
    jwt_secret: str = "prefuel_energy_dev_secret_please_change"
    jwt_algorithm: str = "HS256"
    jwt_expiry_days: int = 7

    # Live push channel
    heartbeat_interval_seconds: float = 25.0
    subscriber_queue_size: int = 1000

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_http: str = "WARNING"          # httpx / httpcore, outbound HTTP
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_store: str = "INFO"            # snapshot store + file persistence
    log_level_live: str = "INFO"             # change bus, push channel, live client

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
