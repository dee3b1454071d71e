"""Application configuration helpers."""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Centralized configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8")

    app_name: str = "CRM Order Hub"
    environment: str = "dev"

    # Database connection pieces (DATABASE_URL wins when set)
    database_url: Optional[str] = None
    pg_host: str = "localhost"
    pg_port: int = 5432
    pg_db: str = "orderhub"
    pg_user: str = "orderhub"
    pg_password: str = "secret"
    sql_echo: bool = False

    # "memory" keeps orders in-process, handy for demos
    store_backend: Literal["sql", "memory"] = "sql"
    default_account: str = "default"

    # Result cache
    orders_cache_ttl_seconds: float = 300
    stats_cache_ttl_seconds: float = 600
    cache_max_entries: Optional[int] = None
    cache_single_flight: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # API behavior
    allow_origins: List[str] = ["http://localhost:3000", "http://localhost:5173", "*"]

    def get_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.pg_user}:{self.pg_password}"
            f"@{self.pg_host}:{self.pg_port}/{self.pg_db}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
