import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from focus_mode.errors import ConfigInvalid
from focus_mode.schema import (
    FocusModeConfig,
    TimeOfDay,
    default_from_time,
    default_to_time,
)

RECORD_NAME = "focus_mode"


class SettingsFile:
    """A small JSON key-value file with explicit flush."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self):
        if not self.path.exists():
            self._data = {}
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
            self._data = data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {self.path}: {e}")
            self._data = {}

    def reload(self):
        self._load()

    def read_setting(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def save_setting(self, key: str, value: Any):
        self._data[key] = value

    def flush(self):
        """Writes all settings to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(self._data, f, indent=4)
        tmp_path.replace(self.path)

    def mtime(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None


def _load_time(raw: Any, field: str) -> TimeOfDay:
    if raw is None:
        raise ConfigInvalid(f"Missing {field}")
    try:
        return TimeOfDay.model_validate(raw)
    except ValidationError as e:
        raise ConfigInvalid(f"Malformed {field}: {raw!r}") from e


class ConfigStore:
    """
    Reads and writes the single ``focus_mode`` record.

    Every read goes back to disk; every write rewrites the whole record.
    """

    def __init__(self, path: Path, min_pin_length: int = 4):
        self.settings = SettingsFile(path)
        self.min_pin_length = min_pin_length

    @property
    def path(self) -> Path:
        return self.settings.path

    def mtime(self) -> float | None:
        return self.settings.mtime()

    def read_config(self) -> FocusModeConfig:
        self.settings.reload()
        record = self.settings.read_setting(RECORD_NAME)

        if not isinstance(record, dict):
            # First access: save the defaults right away
            config = FocusModeConfig()
            self._write(config)
            logger.debug("Wrote default focus mode configuration.")
            return config

        try:
            from_time = _load_time(record.get("from_time"), "from_time")
        except ConfigInvalid as e:
            logger.warning(f"{e}; using {default_from_time()}")
            from_time = default_from_time()

        try:
            to_time = _load_time(record.get("to_time"), "to_time")
        except ConfigInvalid as e:
            logger.warning(f"{e}; using {default_to_time()}")
            to_time = default_to_time()

        enabled = record.get("enabled", False)
        if not isinstance(enabled, bool):
            logger.warning(f"Malformed enabled flag {enabled!r}; treating as disabled")
            enabled = False

        bypass_pin = record.get("bypass_pin")
        if bypass_pin is not None and (
            not isinstance(bypass_pin, str)
            or not bypass_pin.isdigit()
            or len(bypass_pin) < self.min_pin_length
        ):
            logger.warning("Ignoring malformed bypass PIN in configuration")
            bypass_pin = None

        return FocusModeConfig(
            enabled=enabled,
            from_time=from_time,
            to_time=to_time,
            bypass_pin=bypass_pin,
        )

    def update(self, **fields) -> FocusModeConfig:
        """Read the full record, replace ``fields``, write the full record back."""
        current = self.read_config()
        config = FocusModeConfig.model_validate({**current.model_dump(), **fields})
        logger.info(f"Saving focus mode configuration: {', '.join(sorted(fields))}")
        self._write(config)
        return config

    def _write(self, config: FocusModeConfig):
        self.settings.save_setting(RECORD_NAME, config.to_record())
        self.settings.flush()
