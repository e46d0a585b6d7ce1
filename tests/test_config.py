"""
Tests for settings and .env loading.
"""

import os

import pytest

from dailypick.config import ConfigError, Settings, get_settings, load_settings, reset_settings
from dailypick.env import load_env


class TestSettings:
    """Test defaults and validation."""

    def test_defaults(self):
        settings = load_settings()

        assert settings.timezone == "Asia/Seoul"
        assert settings.day_rollover_hour == 0
        assert settings.half_life_hours == 12.0
        assert settings.rank_mix == 0.35
        assert settings.quotas == (("B1", 3), ("B2", 3), ("B3", 1))
        assert settings.core_count == 7
        assert settings.explore_count == 0

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DAILYPICK_DAY_ROLLOVER_HOUR", "11")
        monkeypatch.setenv("DAILYPICK_RANK_MIX", "0.5")
        monkeypatch.setenv("DAILYPICK_QUOTA_B3", "2")
        monkeypatch.setenv("DAILYPICK_LOG_LEVEL", "debug")

        settings = load_settings()

        assert settings.day_rollover_hour == 11
        assert settings.rank_mix == 0.5
        assert settings.quota_b3 == 2
        assert settings.log_level == "DEBUG"

    def test_unparseable_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("DAILYPICK_CORE_COUNT", "seven")
        monkeypatch.setenv("DAILYPICK_HALF_LIFE_HOURS", "")
        monkeypatch.setenv("DAILYPICK_TIMEZONE", "   ")

        settings = load_settings()

        assert settings.core_count == 7
        assert settings.half_life_hours == 12.0
        assert settings.timezone == "Asia/Seoul"

    @pytest.mark.parametrize("key,value", [
        ("DAILYPICK_RANK_MIX", "1.5"),
        ("DAILYPICK_DAY_ROLLOVER_HOUR", "24"),
        ("DAILYPICK_HALF_LIFE_HOURS", "0"),
        ("DAILYPICK_QUOTA_B1", "-1"),
        ("DAILYPICK_CORE_COUNT", "-3"),
        ("DAILYPICK_TIMEZONE", "Mars/Olympus"),
    ])
    def test_out_of_range_raises(self, monkeypatch, key, value):
        monkeypatch.setenv(key, value)
        with pytest.raises(ConfigError):
            load_settings()

    def test_with_overrides_validates(self):
        assert Settings().with_overrides(rank_mix=0.0).rank_mix == 0.0
        with pytest.raises(ConfigError):
            Settings().with_overrides(rank_mix=-0.1)

    def test_get_settings_cached(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("DAILYPICK_CORE_COUNT", "5")
        assert get_settings() is first

        reset_settings()
        assert get_settings().core_count == 5


class TestLoadEnv:
    """Test .env loading."""

    def test_missing_file(self, tmp_path):
        assert load_env(tmp_path / ".env") is False

    def test_loads_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DAILYPICK_QUOTA_B2=4\n", encoding="utf-8")

        try:
            assert load_env(env_file) is True
            assert load_settings().quota_b2 == 4
        finally:
            os.environ.pop("DAILYPICK_QUOTA_B2", None)

    def test_process_environment_wins(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("DAILYPICK_QUOTA_B2=4\n", encoding="utf-8")
        monkeypatch.setenv("DAILYPICK_QUOTA_B2", "2")

        load_env(env_file)

        assert load_settings().quota_b2 == 2
