from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, read from the environment and an optional .env file"""

    # Database
    database_url: str = "sqlite+aiosqlite:///./evaluations.db"
    sql_echo: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Front-end
    static_dir: str = "public"
    index_file: str = "index.html"
    # Comma separated, "*" allows every origin
    cors_origins: str = "*"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url", mode="after")
    @classmethod
    def _async_driver(cls, v: str) -> str:
        # Plain URLs are rewritten to their asyncio drivers
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()

