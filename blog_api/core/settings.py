from functools import lru_cache
from pathlib import Path

from pydantic import PostgresDsn, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database - allow both PostgreSQL and SQLite for development
    database_url: PostgresDsn | str = "sqlite:///./blog_api.db"
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_statement_timeout_ms: int = 15_000
    create_tables_on_startup: bool = True

    # Application
    app_name: str = "Blog API"
    debug: bool = False
    log_level: str = "INFO"
    logs_dir: Path = Path("./logs")

    # HTTP
    cors_origins: list[str] = ["*"]
    rate_limit_per_minute: int = 100
    rate_limit_burst: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL must be set")
        url = str(v)
        # Plain postgres URLs use the psycopg 3 driver
        for prefix in ("postgresql://", "postgres://"):
            if url.startswith(prefix):
                return "postgresql+psycopg://" + url[len(prefix):]
        return url

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("rate_limit_per_minute", "rate_limit_burst", "database_statement_timeout_ms")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @property
    def is_sqlite(self) -> bool:
        return str(self.database_url).startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
