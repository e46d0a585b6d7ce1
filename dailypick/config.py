"""
Selection configuration.

Every tunable of the selection engine lives in ``Settings``. Environment
variables (``DAILYPICK_*``) take precedence over the defaults; values that
cannot be parsed fall back to the default.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised when a setting is out of range."""
    pass


def _get_env_str(key: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def _get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable with default fallback."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable with default fallback."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Day key
    timezone: str = "Asia/Seoul"
    day_rollover_hour: int = 0

    # Ranking
    half_life_hours: float = 12.0
    rank_mix: float = 0.35

    # Assembly
    quota_b1: int = 3
    quota_b2: int = 3
    quota_b3: int = 1
    core_count: int = 7

    # Exploration / exposure history
    explore_count: int = 0
    explore_avoid_days: int = 30
    history_keep_days: int = 30
    history_max_entries: int = 800

    # Infrastructure
    db_path: str = "data/dailypick.db"
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @property
    def quotas(self) -> Tuple[Tuple[str, int], ...]:
        return (("B1", self.quota_b1), ("B2", self.quota_b2), ("B3", self.quota_b3))

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes).validate()

    def validate(self) -> "Settings":
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"Unknown timezone: {self.timezone}") from e
        if not 0 <= self.day_rollover_hour <= 23:
            raise ConfigError("day_rollover_hour must be within 0..23")
        if self.half_life_hours <= 0:
            raise ConfigError("half_life_hours must be positive")
        if not 0.0 <= self.rank_mix <= 1.0:
            raise ConfigError("rank_mix must be within [0, 1]")
        for name, quota in self.quotas:
            if quota < 0:
                raise ConfigError(f"Quota for {name} must not be negative")
        for field in ("core_count", "explore_count", "explore_avoid_days",
                      "history_keep_days", "history_max_entries"):
            if getattr(self, field) < 0:
                raise ConfigError(f"{field} must not be negative")
        return self


def load_settings() -> Settings:
    """Build settings from DAILYPICK_* environment variables."""
    defaults = Settings()
    settings = Settings(
        timezone=_get_env_str("DAILYPICK_TIMEZONE", defaults.timezone),
        day_rollover_hour=_get_env_int("DAILYPICK_DAY_ROLLOVER_HOUR", defaults.day_rollover_hour),
        half_life_hours=_get_env_float("DAILYPICK_HALF_LIFE_HOURS", defaults.half_life_hours),
        rank_mix=_get_env_float("DAILYPICK_RANK_MIX", defaults.rank_mix),
        quota_b1=_get_env_int("DAILYPICK_QUOTA_B1", defaults.quota_b1),
        quota_b2=_get_env_int("DAILYPICK_QUOTA_B2", defaults.quota_b2),
        quota_b3=_get_env_int("DAILYPICK_QUOTA_B3", defaults.quota_b3),
        core_count=_get_env_int("DAILYPICK_CORE_COUNT", defaults.core_count),
        explore_count=_get_env_int("DAILYPICK_EXPLORE_COUNT", defaults.explore_count),
        explore_avoid_days=_get_env_int("DAILYPICK_EXPLORE_AVOID_DAYS", defaults.explore_avoid_days),
        history_keep_days=_get_env_int("DAILYPICK_HISTORY_KEEP_DAYS", defaults.history_keep_days),
        history_max_entries=_get_env_int("DAILYPICK_HISTORY_MAX_ENTRIES", defaults.history_max_entries),
        db_path=_get_env_str("DAILYPICK_DB_PATH", defaults.db_path),
        log_level=_get_env_str("DAILYPICK_LOG_LEVEL", defaults.log_level).upper(),
        log_dir=_get_env_str("DAILYPICK_LOG_DIR", defaults.log_dir),
    )
    return settings.validate()


def load_logging_options() -> Tuple[str, Optional[str]]:
    """
    Log level and log dir straight from the environment.

    Reads only the two logging variables, so creating a logger never fills
    the settings cache or fails on an unrelated bad setting. Unknown levels
    fall back to the default.
    """
    defaults = Settings()
    level = _get_env_str("DAILYPICK_LOG_LEVEL", defaults.log_level).upper()
    if level not in LOG_LEVELS:
        level = defaults.log_level
    return level, _get_env_str("DAILYPICK_LOG_DIR", defaults.log_dir)


# Global settings instance
_global_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide settings."""
    global _global_settings

    if _global_settings is None:
        _global_settings = load_settings()

    return _global_settings


def reset_settings():
    """Forget cached settings (useful for testing)."""
    global _global_settings
    _global_settings = None
