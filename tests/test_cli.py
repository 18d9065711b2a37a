from typer.testing import CliRunner

from focus_mode.cli import app
from focus_mode.schema import TimeOfDay
from focus_mode.settings import settings
from focus_mode.store import ConfigStore

runner = CliRunner()


def _config():
    return ConfigStore(settings.config_file).read_config()


def test_window_command_updates_config(data_dir):
    result = runner.invoke(app, ["window", "--from", "8pm", "--to", "9:30pm"])

    assert result.exit_code == 0, result.output
    config = _config()
    assert config.from_time == TimeOfDay(hour=20, minute=0)
    assert config.to_time == TimeOfDay(hour=21, minute=30)


def test_window_command_rejects_bad_time(data_dir):
    result = runner.invoke(app, ["window", "--from", "later"])
    assert result.exit_code == 1
    assert "Could not parse time" in result.output


def test_short_pin_fails(data_dir):
    result = runner.invoke(app, ["set-pin", "12"])
    assert result.exit_code == 1
    assert _config().bypass_pin is None


def test_set_and_clear_pin(data_dir):
    assert runner.invoke(app, ["set-pin", "13579"]).exit_code == 0
    assert _config().bypass_pin == "13579"
    assert runner.invoke(app, ["clear-pin"]).exit_code == 0
    assert _config().bypass_pin is None


def test_status(data_dir):
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0
    assert "Focus Mode Configuration" in result.output
    assert "Stopped" in result.output


def test_bypass_requires_daemon(data_dir):
    result = runner.invoke(app, ["bypass", "1234"])
    assert result.exit_code == 1
    assert "Daemon is not running" in result.output
