from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="BUDGETDASH_", extra="ignore"
    )

    # backend
    API_BASE_URL: str = "http://localhost:8080/api"
    REQUEST_TIMEOUT: float = 10.0
    SEED_PATH: Optional[str] = None  # offline mode when set

    # local store shared by dashboard instances
    STORE_PATH: str = ".budgetdash/store.json"

    # budgets
    AMOUNT_CEILING: Decimal = Decimal("9999999999.99")
    MIN_DISPLAY_COUNT: int = 2

    # notifications
    NOTIFICATION_TTL_HOURS: int = 24
    LOCAL_DEDUP_SECONDS: int = 5
    LOCAL_NOTIFICATION_CAP: int = 20
    DECAY_INTERVAL_MINUTES: int = 15

    # refresh and resize
    REFRESH_THROTTLE_SECONDS: int = 30
    RESIZE_DEBOUNCE_MS: int = 180
    SYNC_POLL_SECONDS: int = 5

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
