from functools import lru_cache
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _ensure_sqlalchemy_postgres_scheme(value: str) -> str:
    if not value.lower().startswith("postgres"):
        return value

    parsed = urlparse(value)
    scheme = parsed.scheme.lower()

    if scheme == "postgres":
        scheme = "postgresql"

    if scheme == "postgresql":
        scheme = "postgresql+psycopg"

    if scheme not in {"postgresql+psycopg", "postgresql+asyncpg"}:
        scheme = "postgresql+psycopg"

    query_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query_params.setdefault("sslmode", "require")
    query_params.setdefault("target_session_attrs", "read-write")
    new_query = urlencode(query_params, doseq=True)

    normalized = urlunparse(
        parsed._replace(
            scheme=scheme,
            query=new_query,
        )
    )
    return normalized


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    database_url: AnyUrl | str = Field(
        default="sqlite:///../data/tilt.db",
        description="SQLAlchemy compatible database URL",
    )
    production_database_url: AnyUrl | str | None = Field(
        default=None,
        description="Postgres connection string used when ENVIRONMENT=production",
    )
    default_currency: str = Field(
        default="USD",
        description="Currency assigned to new auctions when the request omits one",
        min_length=1,
        max_length=16,
    )
    lifecycle_sync_batch_size: int = Field(
        default=500,
        description="Maximum number of auctions examined by one lifecycle sync pass",
        ge=1,
    )
    bid_lock_timeout_seconds: float = Field(
        default=10.0,
        description="Seconds a bid waits for the per-auction lock before failing",
        gt=0,
    )

    @field_validator("database_url", "production_database_url", mode="before")
    @classmethod
    def _normalize_postgres_urls(cls, value: Any) -> Any:
        if value is None or not isinstance(value, str):
            return value

        if value.startswith("postgresql+psycopg://") or value.startswith(
            "postgresql+asyncpg://"
        ):
            return value

        normalized = value
        if normalized.startswith("postgres://"):
            normalized = "postgresql://" + normalized[len("postgres://") :]

        return normalized

    @field_validator("production_database_url")
    @classmethod
    def _require_postgres_scheme(cls, value: Any) -> Any:
        if value is None:
            return value
        url_str = str(value)
        scheme = url_str.split(":", 1)[0].lower()
        valid_schemes = {
            "postgres",
            "postgresql",
            "postgresql+psycopg",
            "postgresql+asyncpg",
        }
        if scheme not in valid_schemes:
            raise ValueError(
                "PRODUCTION_DATABASE_URL must be a PostgreSQL connection string (e.g. postgresql://...)."
            )
        return value

    @field_validator("default_currency")
    @classmethod
    def _strip_currency(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("DEFAULT_CURRENCY must not be blank")
        return candidate

    @property
    def resolved_database_url(self) -> str:
        environment = self.environment.lower()
        if environment == "production":
            if not self.production_database_url:
                raise ValueError(
                    "PRODUCTION_DATABASE_URL must be set when ENVIRONMENT=production"
                )
            return _ensure_sqlalchemy_postgres_scheme(str(self.production_database_url))
        return _ensure_sqlalchemy_postgres_scheme(str(self.database_url))


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
