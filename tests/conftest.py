from datetime import datetime, timedelta

import pytest

from focus_mode.host import Host
from focus_mode.session import BlockSession
from focus_mode.settings import settings
from focus_mode.store import ConfigStore
from focus_mode.utils.timers import Scheduler


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def timestamp(self) -> float:
        return self.now.timestamp()

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)

    def set(self, hour: int, minute: int, second: int = 0):
        self.now = self.now.replace(hour=hour, minute=minute, second=second)


class FakeHost(Host):
    """Records every call the session makes."""

    def __init__(self):
        self.presented = []
        self.updates = []
        self.dismissed = []
        self.prompts = 0
        self.prompt_dismissals = 0
        self.notifications = []
        self._next_handle = 0
        self.open_surfaces = set()

    def present_blocking_surface(self, spec):
        self._next_handle += 1
        self.presented.append(spec)
        self.open_surfaces.add(self._next_handle)
        return self._next_handle

    def update_blocking_surface(self, handle, spec):
        self.updates.append((handle, spec))

    def dismiss_blocking_surface(self, handle):
        self.dismissed.append(handle)
        self.open_surfaces.discard(handle)

    def present_bypass_prompt(self):
        self.prompts += 1

    def dismiss_bypass_prompt(self):
        self.prompt_dismissals += 1

    def notify(self, message, timeout_seconds):
        self.notifications.append(message)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "data_dir", tmp_path)
    monkeypatch.setattr(settings, "log_dir", tmp_path / "logs")
    return tmp_path


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 6, 12, 30, 0))


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def store(data_dir):
    return ConfigStore(data_dir / "focus_mode.json")


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock=clock.timestamp)


@pytest.fixture
def make_session(store, host, scheduler, clock):
    def _make(**config) -> BlockSession:
        if config:
            store.update(**config)
        return BlockSession(
            store,
            host,
            scheduler,
            clock=clock,
            tick_seconds=60,
            settle_delay_seconds=1.0,
            elapsed_sanity_seconds=300,
            notify_timeout_seconds=5,
            min_pin_length=4,
        )

    return _make
