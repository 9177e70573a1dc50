"""Server-level configuration from environment variables.

Only contains settings needed before the database is available:
database URL, server host/port, log location, backend timeout and debug
mode. All fields have defaults, so no .env file is required.

User-tunable behaviour (smart file selection, default save path and
category, verbose per-item logging) lives in the database via AppConfig,
see models/app_config.py.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_log_dir() -> str:
    """Return the default log directory under the user's home."""
    return str(Path.home() / ".seriesledger" / "logs")


class Settings(BaseSettings):
    """Server infrastructure settings. Loaded from environment variables; optionally from .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SERIESLEDGER_",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./seriesledger.db"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Logging
    log_dir: str = _default_log_dir()

    # Download backends (seconds, handed to the client libraries)
    backend_timeout: float = 15.0


settings = Settings()
