"""
db_gateway.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the API and the static-site CLI.
- Read the deployment secrets (`API_TOKEN`, `STRUCTURE_API_KEY`) and hide them from repr.
- Offer a cached settings instance for dependency injection.

Backend URLs (`DB_<ABBR>_URL`) are not settings fields; they are discovered by
`db_gateway.db.config.load_configs` because their names are open-ended.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from db_gateway.db.config import PoolOptions


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        case_sensitive=False,
        populate_by_name=True,
    )

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "db-gateway"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 3000

    # Auth: shared secrets, named exactly as deployments already set them.
    api_token: str | None = Field(default=None, validation_alias="API_TOKEN", repr=False)
    structure_api_key: str | None = Field(
        default=None, validation_alias="STRUCTURE_API_KEY", repr=False
    )

    # Read path
    cache_ttl_seconds: float = Field(default=3600.0, gt=0)
    sample_limit: int = Field(default=10, ge=1)

    # Connection pools
    pool_max_size: int = Field(default=10, ge=1)
    pool_min_size: int = Field(default=2, ge=0)
    connect_timeout: float = Field(default=5.0, gt=0)
    socket_timeout: float = Field(default=45.0, gt=0)
    idle_timeout: float = Field(default=30.0, gt=0)

    # Static-site generator
    static_output_dir: str = "static"
    static_pages_per_database: int = Field(default=100, ge=1)

    def pool_options(self) -> PoolOptions:
        return PoolOptions(
            max_size=self.pool_max_size,
            min_size=min(self.pool_min_size, self.pool_max_size),
            connect_timeout=self.connect_timeout,
            socket_timeout=self.socket_timeout,
            idle_timeout=self.idle_timeout,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Entry points call `dotenv.load_dotenv()` before the first `get_settings()` so a
# local `.env` file feeds both these fields and the `DB_<ABBR>_URL` scan.
