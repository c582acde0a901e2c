from typing import Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Application configuration using Pydantic BaseSettings.

    Loads configuration from environment variables and .env file (if present).
    Fields are type-checked and validated. Defaults are provided where appropriate.
    """
    # Application
    app_env: str = "local"
    log_level: str = "DEBUG"

    # Store selection
    store_kind: str = "csv"
    data_dir: str = "sample_data"
    database_url: Optional[str] = None

    # Reporting calendar
    reporting_timezone: str = "Asia/Manila"
    currency: str = "PHP"

    # Reorder advisor
    usage_window_days: int = 30
    default_lead_time_days: float = 7.0
    safety_factor: float = 0.2

    # Dashboard tiles
    low_stock_threshold: int = 20
    expiry_warn_months: int = 6
    expiry_danger_months: int = 3

    # Sales aggregation
    daily_window_days: int = 60
    yearly_window_years: int = 5
    allowed_top_n: Tuple[int, ...] = (5, 10)
    default_top_n: int = 5

    # Inventory alert job
    alert_recipient: Optional[str] = None
    alert_shop_name: str = "PHARMACY"

    # Seed data settings
    default_seed_days: int = 120
    default_seed_value: int = 42

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

_config: Optional[AppConfig] = None

def get_config() -> AppConfig:
    """Return the AppConfig instance (singleton pattern)."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config

def set_config_for_test(**kwargs):
    """For testing only: override the AppConfig instance with new values."""
    global _config
    _config = AppConfig(**kwargs)
