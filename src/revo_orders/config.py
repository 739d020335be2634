"""
Utilities to centralize configuration handling for the order services.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class AppConfig:
    """Simple container for application level settings."""

    app_name: str
    # PostgreSQL database
    db_host: str = "revo-postgres"
    db_port: int = 5432
    db_user: str = "revo"
    db_password: str = "revo"
    db_name: str = "revo"
    db_sslmode: str = "disable"
    # Overrides the POSTGRES_* settings when present (e.g. sqlite:///revo.db)
    database_url: str = ""
    db_pool_size: int = 10
    db_max_overflow: int = 20
    slow_query_seconds: float = 1.0
    sqlite_busy_timeout: float = 30.0
    # App settings
    log_level: str = "INFO"
    flask_debug: bool = False
    cors_origins: list[str] = field(default_factory=list)

    def get_bool(self, key: str, default: bool = False) -> bool:
        """
        Get boolean config value from AppConfig.

        Args:
            key: Configuration key (e.g., 'flask_debug')
            default: Default value if not set (defaults to False)

        Returns:
            bool: Configuration value
        """
        value = getattr(self, key, default)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    @property
    def sqlalchemy_uri(self) -> str:
        """
        Build a SQLAlchemy URI.

        DATABASE_URL wins when configured; otherwise a PostgreSQL URI using
        psycopg2 as the driver is assembled from the individual settings.
        """
        if self.database_url:
            return self.database_url
        ssl_arg = f"?sslmode={self.db_sslmode}" if self.db_sslmode else ""
        return (
            f"postgresql+psycopg2://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}{ssl_arg}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.sqlalchemy_uri.startswith("sqlite")


def _read_env(name: str, default: str | None = None) -> str:
    """
    Internal helper to fetch environment variables with support for defaults.
    """
    value = os.getenv(name)
    if value is None:
        if default is None:
            raise RuntimeError(f"Missing required environment variable '{name}'")
        value = default
    return value


def read_bool(name: str, default: str = "false") -> bool:
    value = _read_env(name, default)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_list(name: str, default: str = "") -> list[str]:
    raw = _read_env(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_config(app_name: str) -> AppConfig:
    """
    Produce an AppConfig instance populated from environment variables.

    Each service passes its desired `app_name` to keep logs easy to
    differentiate while still reusing the same config loader.
    """
    return AppConfig(
        app_name=app_name,
        db_host=_read_env("POSTGRES_HOST", "revo-postgres"),
        db_port=int(_read_env("POSTGRES_PORT", "5432")),
        db_user=_read_env("POSTGRES_USER", "revo"),
        db_password=_read_env("POSTGRES_PASSWORD", "revo"),
        db_name=_read_env("POSTGRES_DB", "revo"),
        db_sslmode=_read_env("POSTGRES_SSLMODE", "disable"),
        database_url=_read_env("DATABASE_URL", ""),
        db_pool_size=int(_read_env("DB_POOL_SIZE", "10")),
        db_max_overflow=int(_read_env("DB_MAX_OVERFLOW", "20")),
        slow_query_seconds=float(_read_env("SLOW_QUERY_SECONDS", "1.0")),
        sqlite_busy_timeout=float(_read_env("SQLITE_BUSY_TIMEOUT", "30")),
        log_level=_read_env("LOG_LEVEL", "INFO"),
        flask_debug=read_bool("FLASK_DEBUG", "false"),
        cors_origins=_read_list("CORS_ORIGINS", "http://localhost:5173"),
    )
