import json
import os
from datetime import datetime

from loguru import logger

from focus_mode.settings import settings


_last_written_state: dict | None = None


def write_state(session_info: dict | None = None):
    """Writes the daemon's pid and session summary for the 'status' command."""
    global _last_written_state
    state = {
        "pid": os.getpid(),
        "session": session_info,
    }

    if state == _last_written_state:
        return  # No change, no need to write

    try:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        with open(settings.state_file, "w") as f:
            json.dump({**state, "last_update": datetime.now().isoformat()}, f, indent=4)
        _last_written_state = state
    except OSError as e:
        logger.error(f"Failed to write state file: {e}")


def read_state() -> dict | None:
    if not settings.state_file.exists():
        return None
    try:
        with open(settings.state_file) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError):
        return None


def cleanup_state():
    """Removes the state file when the daemon stops."""
    global _last_written_state
    _last_written_state = None
    if settings.state_file.exists():
        try:
            settings.state_file.unlink()
        except OSError as e:
            logger.error(f"Failed to remove state file: {e}")
