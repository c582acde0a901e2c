import pytest

from pharmacy_reports.config import AppConfig, get_config, set_config_for_test
from pharmacy_reports.errors import StoreReadFailure
from pharmacy_reports.logging import get_logger


def test_defaults():
    """Test the reporting defaults used when nothing is configured."""
    set_config_for_test()
    config = get_config()
    assert config.reporting_timezone == "Asia/Manila"
    assert config.usage_window_days == 30
    assert config.default_lead_time_days == 7.0
    assert config.safety_factor == 0.2
    assert config.allowed_top_n == (5, 10)
    assert config.store_kind == "csv"
    assert config.database_url is None


def test_environment_overrides(monkeypatch):
    """Test that environment variables override defaults."""
    monkeypatch.setenv("SAFETY_FACTOR", "0.35")
    monkeypatch.setenv("REPORTING_TIMEZONE", "UTC")
    monkeypatch.setenv("DATABASE_URL", "postgresql://user:pw@localhost/pharmacy")
    config = AppConfig()
    assert config.safety_factor == 0.35
    assert config.reporting_timezone == "UTC"
    assert config.database_url.startswith("postgresql://")


def test_set_config_for_test_replaces_singleton():
    """Test that overrides are visible through get_config()."""
    set_config_for_test(alert_recipient="+639170000000")
    assert get_config().alert_recipient == "+639170000000"
    set_config_for_test()
    assert get_config().alert_recipient is None


def test_invalid_value_is_rejected():
    """Test that type validation errors surface at load time."""
    with pytest.raises(ValueError):
        AppConfig(usage_window_days="thirty")


def test_store_read_failure_message():
    err = StoreReadFailure("relation does not exist", source="Product")
    assert str(err) == "Product: relation does not exist"
    assert err.message == "relation does not exist"
    assert str(StoreReadFailure("boom")) == "boom"
    assert isinstance(err, RuntimeError)


def test_get_logger_binds_name():
    logger = get_logger("pharmacy_reports.tests")
    logger.info("logger configured")
