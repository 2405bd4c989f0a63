"""
Tests for settings loading.
"""

from unittest.mock import patch

from workpulse.platform.config import Settings, get_settings


def test_defaults():
    config = Settings(_env_file=None)

    assert config.DEFAULT_HOURS_PER_DAY == 8.0
    assert config.HOURS_PER_POINT == 2.0
    assert config.DEFAULT_UTILIZATION_THRESHOLD == 1.0
    assert (config.MIN_UTILIZATION_THRESHOLD, config.MAX_UTILIZATION_THRESHOLD) == (0.5, 2.0)
    assert (config.VELOCITY_DEFAULT_WINDOW, config.VELOCITY_MAX_WINDOW) == (3, 20)


def test_environment_overrides():
    with patch.dict("os.environ", {"DEFAULT_HOURS_PER_DAY": "7.5", "VELOCITY_DEFAULT_WINDOW": "5"}):
        config = Settings(_env_file=None)

    assert config.DEFAULT_HOURS_PER_DAY == 7.5
    assert config.VELOCITY_DEFAULT_WINDOW == 5


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_injected_config_reaches_services(db_adapter):
    from workpulse.engine.capacity_analytics import CapacityAnalytics

    config = Settings(_env_file=None, MAX_UTILIZATION_THRESHOLD=1.5)
    analytics = CapacityAnalytics(db_adapter, config)

    assert analytics.clamp_threshold(3.0) == 1.5
    assert analytics.calendar.settings is config
