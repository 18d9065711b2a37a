from pathlib import Path

from platformdirs import user_data_dir, user_log_dir


def get_dev_outputs_dir() -> Path | None:
    """Returns ``outputs/`` of a source checkout (pyproject.toml and .git next to src/), else None."""
    root = Path(__file__).resolve().parents[3]
    if (root / "pyproject.toml").exists() and (root / ".git").exists():
        return root / "outputs"
    return None


def get_default_data_dir(app_name: str) -> Path:
    outputs = get_dev_outputs_dir()
    return outputs if outputs else Path(user_data_dir(appname=app_name))


def get_default_log_dir(app_name: str) -> Path:
    outputs = get_dev_outputs_dir()
    return outputs / "logs" if outputs else Path(user_log_dir(appname=app_name))
