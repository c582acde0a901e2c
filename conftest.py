import pytest

from pharmacy_reports.config import set_config_for_test


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for var in [
        "APP_ENV", "STORE_KIND", "DATA_DIR", "DATABASE_URL", "REPORTING_TIMEZONE",
        "ALERT_RECIPIENT", "ALERT_SHOP_NAME", "SAFETY_FACTOR", "USAGE_WINDOW_DAYS",
    ]:
        monkeypatch.delenv(var, raising=False)
    set_config_for_test(log_level="WARNING")
    yield
