import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        default_page_size: int,
        max_page_size: int,
        expiring_soon_days: int,
        totals_refresh_hour: int,
        enable_scheduler: bool,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.expiring_soon_days = expiring_soon_days
        self.totals_refresh_hour = totals_refresh_hour
        self.enable_scheduler = enable_scheduler


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FREELANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    database_url = os.getenv("FREELANCE_DATABASE_URL")
    if not database_url:
        data_dir = _ensure_data_dir()
        database_url = f"sqlite:///{data_dir / 'freelance.db'}"
    timezone = os.getenv("FREELANCE_TIMEZONE", "UTC")
    default_page_size = int(os.getenv("FREELANCE_DEFAULT_PAGE_SIZE", "10"))
    max_page_size = int(os.getenv("FREELANCE_MAX_PAGE_SIZE", "100"))
    expiring_soon_days = int(os.getenv("FREELANCE_EXPIRING_SOON_DAYS", "7"))
    totals_refresh_hour = int(os.getenv("FREELANCE_TOTALS_REFRESH_HOUR", "3"))
    enable_scheduler = _env_flag("FREELANCE_ENABLE_SCHEDULER", "true")
    return Settings(
        database_url=database_url,
        timezone=timezone,
        default_page_size=default_page_size,
        max_page_size=max_page_size,
        expiring_soon_days=expiring_soon_days,
        totals_refresh_hour=totals_refresh_hour,
        enable_scheduler=enable_scheduler,
    )
