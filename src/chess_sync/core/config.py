from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Read from the environment (prefix CHESS_SYNC_) or a .env file"""

    model_config = SettingsConfigDict(env_prefix="CHESS_SYNC_", env_file=".env")

    database_url: str = "sqlite:///./chess_sync.db"
    debug: bool = False
    log_level: str = "INFO"
    sql_echo: bool = False
    # X-User-Id the clock service sends when it reports a flag fall
    clock_service_id: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
