from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOOLHUB_",
        env_file=".env",
        extra="ignore",
    )

    # Runtime
    ENVIRONMENT: str = Field(default="dev", description="Environment name")
    HOST: str = Field(default="0.0.0.0", description="Bind host")
    PORT: int = Field(default=3001, description="Bind port")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level for `toolhub start`")

    # Catalog backend
    BACKEND: str = Field(default="memory", description="memory|sql|document")
    LIST_FAILURE_MODE: str = Field(
        default="empty",
        description="empty: list-time store errors degrade to an empty result; raise: propagate",
    )

    # Relational store (BACKEND=sql)
    DATABASE_URL: str = Field(default="sqlite:///toolhub_dev.db")
    DATABASE_ECHO: bool = Field(default=False, description="Log emitted SQL")
    DATABASE_TIMEOUT_SECONDS: int = Field(
        default=10, description="Connect/lock wait timeout for the relational store"
    )

    # Document store (BACKEND=document)
    SEARCH_ENGINE_URL: str = Field(default="http://localhost:9200")
    SEARCH_ENGINE_USERNAME: str = Field(default="")
    SEARCH_ENGINE_PASSWORD: str = Field(default="")
    SEARCH_ENGINE_INDEX_PREFIX: str = Field(default="toolhub")
    SEARCH_ENGINE_TIMEOUT_SECONDS: int = Field(default=10)

    # Static credential check for catalog writes
    ROLE_HEADER: str = Field(default="x-user-role", description="Role header name")
    ADMIN_ROLE: str = Field(default="admin", description="Role allowed to create apps")

    CORS_ORIGINS: str = Field(
        default="*", description="Comma-separated allowed origins; '*' allows all"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
