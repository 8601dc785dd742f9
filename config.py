import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        csrf_secret: str,
        summary_window_days: int,
        analytics_window_days: int,
        recommendation_max_items: int,
        scheduler_enabled: bool,
        recommendation_hour: int,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.csrf_secret = csrf_secret
        self.summary_window_days = summary_window_days
        self.analytics_window_days = analytics_window_days
        self.recommendation_max_items = recommendation_max_items
        self.scheduler_enabled = scheduler_enabled
        self.recommendation_hour = recommendation_hour


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("CAFETERIA_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "cafeteria.db"
    database_url = os.getenv("CAFETERIA_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("CAFETERIA_TIMEZONE", "UTC")
    csrf_secret = os.getenv(
        "CAFETERIA_CSRF_SECRET",
        "5d0c3f5e9a7b41c2b8e4f1a6d3c9e2b7a0f4d8c1e6b3a9f2d5c8e1b4a7f0d3c6",
    )
    summary_window_days = int(os.getenv("CAFETERIA_SUMMARY_WINDOW_DAYS", "7"))
    analytics_window_days = int(os.getenv("CAFETERIA_ANALYTICS_WINDOW_DAYS", "30"))
    recommendation_max_items = int(
        os.getenv("CAFETERIA_RECOMMENDATION_MAX_ITEMS", "3")
    )
    scheduler_enabled = _env_flag("CAFETERIA_SCHEDULER_ENABLED", "1")
    recommendation_hour = int(os.getenv("CAFETERIA_RECOMMENDATION_HOUR", "6"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        csrf_secret=csrf_secret,
        summary_window_days=summary_window_days,
        analytics_window_days=analytics_window_days,
        recommendation_max_items=recommendation_max_items,
        scheduler_enabled=scheduler_enabled,
        recommendation_hour=recommendation_hour,
    )
