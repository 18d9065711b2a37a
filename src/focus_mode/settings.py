import json
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from focus_mode.utils.paths import get_default_data_dir, get_default_log_dir


class Settings(BaseSettings):
    """Application-wide settings managed via .env and config.json."""

    app_name: str = "focus_mode"
    debug: bool = Field(default=False, description="Master toggle for verbose logging")

    # Paths
    data_dir: Path = Field(default_factory=lambda data: get_default_data_dir(data["app_name"]))
    log_dir: Path = Field(default_factory=lambda data: get_default_log_dir(data["app_name"]))

    # Logging
    log_rotation: str = "10 MB"
    log_retention: str = "10 days"
    log_compression: str = "zip"

    def model_post_init(self, __context):
        # Ensure paths are absolute
        self.data_dir = self.data_dir.resolve()
        self.log_dir = self.log_dir.resolve()

    @property
    def config_file(self) -> Path:
        return self.data_dir / f"{self.app_name}.json"

    @property
    def log_file(self) -> Path:
        return self.log_dir / f"{self.app_name}.log"

    @property
    def state_file(self) -> Path:
        return self.data_dir / "state.json"

    @property
    def command_file(self) -> Path:
        return self.data_dir / "command.json"

    # Timing
    tick_seconds: int = Field(default=60, ge=1)
    elapsed_sanity_seconds: int = Field(
        default=300, description="Elapsed intervals above this are treated as clock jumps"
    )
    settle_delay_seconds: float = Field(
        default=1.0, description="Pause before re-showing the blocker (slow displays)"
    )
    poll_seconds: float = 1.0

    # Notifications
    notify_timeout_seconds: int = 5

    # Bypass
    min_pin_length: int = 4

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


_last_settings_mtime: float | None = None
_cached_settings: Settings | None = None


def load_settings() -> Settings:
    """Loads settings, merging with config.json if it exists."""
    global _last_settings_mtime, _cached_settings

    initial = Settings()
    config_path = initial.data_dir / "config.json"

    if not config_path.exists():
        _last_settings_mtime = None
        _cached_settings = initial
        return initial

    current_mtime = config_path.stat().st_mtime
    if _last_settings_mtime == current_mtime and _cached_settings is not None:
        return _cached_settings

    try:
        with open(config_path) as f:
            config_data = json.load(f)
        _cached_settings = Settings(**{**initial.model_dump(), **config_data})
        _last_settings_mtime = current_mtime
        return _cached_settings
    except (OSError, ValueError):
        _cached_settings = initial
        return initial


# The single source of truth for the app
settings = load_settings()
