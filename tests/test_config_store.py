import json

from focus_mode.schema import TimeOfDay
from focus_mode.store import RECORD_NAME, ConfigStore


def test_defaults_written_on_first_access(tmp_path):
    path = tmp_path / "focus_mode.json"
    store = ConfigStore(path)

    config = store.read_config()

    assert config.enabled is False
    assert config.from_time == TimeOfDay(hour=6, minute=0)
    assert config.to_time == TimeOfDay(hour=19, minute=0)
    assert config.bypass_pin is None

    with open(path) as f:
        saved = json.load(f)
    assert saved[RECORD_NAME] == {
        "enabled": False,
        "from_time": {"hour": 6, "min": 0},
        "to_time": {"hour": 19, "min": 0},
        "bypass_pin": None,
    }


def test_update_rewrites_whole_record(tmp_path):
    path = tmp_path / "focus_mode.json"
    store = ConfigStore(path)
    store.update(from_time=TimeOfDay(hour=8, minute=15), bypass_pin="4321")
    store.update(enabled=True)

    # A fresh store sees everything
    config = ConfigStore(path).read_config()
    assert config.enabled is True
    assert config.from_time == TimeOfDay(hour=8, minute=15)
    assert config.to_time == TimeOfDay(hour=19, minute=0)
    assert config.bypass_pin == "4321"


def test_reads_external_edits(tmp_path):
    path = tmp_path / "focus_mode.json"
    store = ConfigStore(path)
    store.read_config()

    path.write_text(
        json.dumps(
            {
                RECORD_NAME: {
                    "enabled": True,
                    "from_time": {"hour": 9, "min": 30},
                    "to_time": {"hour": 17, "min": 0},
                }
            }
        )
    )

    config = store.read_config()
    assert config.enabled is True
    assert config.from_time == TimeOfDay(hour=9, minute=30)
    assert config.to_time == TimeOfDay(hour=17, minute=0)


def test_malformed_times_fall_back_to_defaults(tmp_path):
    path = tmp_path / "focus_mode.json"
    path.write_text(
        json.dumps(
            {
                RECORD_NAME: {
                    "enabled": True,
                    "from_time": {"hour": 25, "min": 0},
                    "to_time": "noon",
                }
            }
        )
    )

    config = ConfigStore(path).read_config()

    assert config.enabled is True
    assert config.from_time == TimeOfDay(hour=6, minute=0)
    assert config.to_time == TimeOfDay(hour=19, minute=0)


def test_missing_fields_and_bad_values(tmp_path):
    path = tmp_path / "focus_mode.json"
    path.write_text(json.dumps({RECORD_NAME: {"enabled": "yes", "bypass_pin": "12"}}))

    config = ConfigStore(path).read_config()

    assert config.enabled is False
    assert config.bypass_pin is None
    assert config.from_time == TimeOfDay(hour=6, minute=0)


def test_corrupt_file_is_replaced_with_defaults(tmp_path):
    path = tmp_path / "focus_mode.json"
    path.write_text("{not json")

    config = ConfigStore(path).read_config()

    assert config.enabled is False
    assert json.loads(path.read_text())[RECORD_NAME]["to_time"] == {"hour": 19, "min": 0}


def test_other_keys_are_preserved(tmp_path):
    path = tmp_path / "focus_mode.json"
    path.write_text(json.dumps({"other_plugin": {"x": 1}}))

    store = ConfigStore(path)
    store.update(enabled=True)

    saved = json.loads(path.read_text())
    assert saved["other_plugin"] == {"x": 1}
    assert saved[RECORD_NAME]["enabled"] is True


def test_non_numeric_pin_in_file_is_ignored(tmp_path):
    path = tmp_path / "focus_mode.json"
    path.write_text(json.dumps({RECORD_NAME: {"enabled": True, "bypass_pin": "12ab"}}))

    config = ConfigStore(path).read_config()

    assert config.enabled is True
    assert config.bypass_pin is None
