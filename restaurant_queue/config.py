from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env file.

    Gateway credentials can come from two places:

    1. **Plain (.env) mode**: ``MSEGAT_*``, ``KARZOUN_*`` and
       ``GEMINI_API_KEY`` are read from the environment.
    2. **Master-key mode**: set ``RESTAURANT_QUEUE_KEY`` and the same keys
       are loaded from the encrypted ``app_config`` table at runtime.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Master key: when set, credentials come from the encrypted DB
    restaurant_queue_key: str | None = None

    # Optional: AI wait-time estimation; the fallback formula is used without it
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"

    # Optional: notification gateway credentials
    msegat_user_name: str | None = None
    msegat_api_key: str | None = None
    msegat_user_sender: str | None = None
    karzoun_appkey: str | None = None
    karzoun_authkey: str | None = None

    # Queue engine tuning
    timezone: str = "Asia/Riyadh"
    estimation_cache_ttl_seconds: float = 60.0
    fallback_minutes_per_group: int = 5
    min_estimated_wait_minutes: int = 5
    default_visit_duration_minutes: float = 45.0
    auto_depart_after_minutes: float = 90.0
    sweep_interval_seconds: float = 60.0

    # MCP transport and bind address
    mcp_transport: str = "stdio"
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 8000

    # Paths & logging: default is <project_root>/data so it works
    # regardless of the process working directory.
    data_dir: Path = Path(__file__).resolve().parent.parent / "data"
    log_level: str = "INFO"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def db_path(self) -> Path:
        return self.data_dir / "restaurant_queue.db"

    @property
    def uses_master_key(self) -> bool:
        """Return True when running in master-key (encrypted DB) mode."""
        return bool(self.restaurant_queue_key)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the cached Settings singleton. Created on first call."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached settings. Used in tests."""
    global _settings  # noqa: PLW0603
    _settings = None
