from datetime import datetime, time
from enum import Enum
from typing import Callable

from loguru import logger

from focus_mode.errors import (
    DisableWhileBlocking,
    FocusModeError,
    PinNotNumeric,
    PinTooShort,
    SetPinWhileBlockingAndPinExists,
    TimeChangeWhileBlocking,
)
from focus_mode.host import Host
from focus_mode.schema import Countdown, FocusModeConfig, MenuState, SurfaceSpec, TimeOfDay
from focus_mode.settings import settings
from focus_mode.store import ConfigStore
from focus_mode.utils.time import (
    elapsed_since_last_check,
    format_end_time,
    format_remaining,
    is_within_window,
    minutes_since_midnight,
    remaining_minutes,
)
from focus_mode.utils.timers import Scheduler, TimerHandle

BLOCK_ENDED_MESSAGE = "Focus Mode has ended. Enjoy!"
BYPASS_OK_MESSAGE = "Focus Mode bypassed until the end of this window."
WRONG_PIN_MESSAGE = "Incorrect PIN."
NO_PIN_MESSAGE = "No bypass PIN is set."


class SessionState(str, Enum):
    IDLE = "idle"
    BLOCKING = "blocking"
    BYPASS_PROMPT = "bypass_prompt"


class BlockSession:
    """
    Owns the blocking state for one process.

    All methods are meant to be called from a single loop (the one that
    also drives ``scheduler``). State is never written to disk; it is
    re-derived from the stored configuration and the wall clock.
    """

    def __init__(
        self,
        store: ConfigStore,
        host: Host,
        scheduler: Scheduler,
        clock: Callable[[], datetime] = datetime.now,
        tick_seconds: float | None = None,
        settle_delay_seconds: float | None = None,
        elapsed_sanity_seconds: float | None = None,
        notify_timeout_seconds: int | None = None,
        min_pin_length: int | None = None,
    ):
        self.store = store
        self.host = host
        self.scheduler = scheduler
        self._clock = clock

        self.tick_seconds = tick_seconds or settings.tick_seconds
        self.settle_delay_seconds = (
            settings.settle_delay_seconds if settle_delay_seconds is None else settle_delay_seconds
        )
        self.elapsed_sanity_seconds = elapsed_sanity_seconds or settings.elapsed_sanity_seconds
        self.notify_timeout_seconds = notify_timeout_seconds or settings.notify_timeout_seconds
        self.min_pin_length = min_pin_length or settings.min_pin_length

        self.state = SessionState.IDLE
        self.last_check_time: float = clock().timestamp()
        self.last_elapsed: float = 0
        self.blocked_seconds: float = 0

        self._surface = None
        self._bypassed_until: datetime | None = None
        self._bypass_window: tuple[TimeOfDay, TimeOfDay] | None = None
        self._check_timer: TimerHandle | None = None
        self._countdown_timer: TimerHandle | None = None
        self._settle_timer: TimerHandle | None = None

    # --- State ---

    @property
    def is_blocking(self) -> bool:
        return self.state != SessionState.IDLE

    @property
    def countdown_active(self) -> bool:
        return self._countdown_timer is not None and self._countdown_timer.active

    @property
    def surface(self):
        return self._surface

    def _in_window(self, config: FocusModeConfig, now: datetime) -> bool:
        return is_within_window(now, config.from_time, config.to_time)

    def _bypass_active(self, config: FocusModeConfig, now: datetime) -> bool:
        """A bypass lasts until the end of the window it was granted in."""
        if self._bypassed_until is None:
            return False
        if now >= self._bypassed_until or self._bypass_window != (config.from_time, config.to_time):
            logger.info("Bypass expired.")
            self._clear_bypass()
            return False
        return True

    def _clear_bypass(self):
        self._bypassed_until = None
        self._bypass_window = None

    # --- Host lifecycle ---

    def on_ready(self):
        logger.info("Focus mode session ready.")
        self.check()
        self._arm_check()

    def on_resume(self):
        logger.info("Resumed; re-checking focus window.")
        self.check()
        self._arm_check()

    def on_suspend(self):
        logger.info("Suspending; cancelling focus mode timers.")
        self._cancel(self._check_timer)
        self._check_timer = None
        self._cancel_countdown()
        self._cancel_settle()

    def on_config_changed(self):
        logger.debug("Configuration changed; re-checking.")
        self.check()

    def on_tick(self):
        self._check_timer = None
        self.check()
        self._arm_check()

    def on_surface_closed(self, handle):
        """The host closed the blocking surface by itself."""
        if handle is None or handle != self._surface:
            return
        logger.warning("Blocking surface was closed while blocking.")
        self._surface = None
        self._cancel_countdown()
        if self.state == SessionState.BLOCKING:
            self._schedule_represent()

    # --- Evaluation ---

    def check(self) -> bool:
        """Re-evaluates the window. Returns whether the session is blocking afterwards."""
        now = self._clock()
        now_ts = now.timestamp()
        raw_elapsed = now_ts - self.last_check_time
        elapsed = elapsed_since_last_check(now_ts, self.last_check_time, self.elapsed_sanity_seconds)
        if raw_elapsed != elapsed:
            logger.info(f"Detected time jump of {raw_elapsed:.0f}s (resume?), ignoring interval")
        self.last_check_time = now_ts
        self.last_elapsed = elapsed
        if self.is_blocking:
            self.blocked_seconds += elapsed

        config = self.store.read_config()
        logger.debug(
            f"Checking focus mode at {now:%H:%M} (window {config.from_time}-{config.to_time}, "
            f"enabled={config.enabled}, state={self.state.value})"
        )

        if self._in_window(config, now):
            if not self.is_blocking:
                self.activate()
            elif self.state == SessionState.BLOCKING and (
                self._surface is None or not self.countdown_active
            ):
                self._refresh_surface(config, now)
        else:
            self._clear_bypass()
            if self.is_blocking:
                logger.info("Outside focus block window, deactivating blocker.")
                self.deactivate()
                self.host.notify(BLOCK_ENDED_MESSAGE, self.notify_timeout_seconds)

        return self.is_blocking

    def activate(self) -> bool:
        """Idle -> Blocking, if enabled and inside the window. No-op when already blocking."""
        if self.is_blocking:
            logger.debug("Blocker already active, skipping.")
            return False

        config = self.store.read_config()
        now = self._clock()
        if not config.enabled or not self._in_window(config, now):
            logger.debug("Focus mode disabled or outside window, not activating.")
            return False
        if self._bypass_active(config, now):
            logger.debug(f"Bypassed until {self._bypassed_until:%Y-%m-%d %H:%M}, not activating.")
            return False

        logger.info("Activating blocker.")
        self.state = SessionState.BLOCKING
        self._surface = self.host.present_blocking_surface(self.surface_spec(config, now))
        self._arm_countdown()
        return True

    def deactivate(self) -> bool:
        """Blocking/BypassPrompt -> Idle."""
        if not self.is_blocking:
            return False

        logger.info("Deactivating blocker.")
        self._cancel_countdown()
        self._cancel_settle()
        if self._surface is not None:
            self.host.dismiss_blocking_surface(self._surface)
            self._surface = None
        if self.state == SessionState.BYPASS_PROMPT:
            self.host.dismiss_bypass_prompt()
        self.state = SessionState.IDLE
        self.blocked_seconds = 0
        return True

    # --- Bypass ---

    def request_bypass(self) -> bool:
        """Blocking -> BypassPrompt."""
        if self.state != SessionState.BLOCKING:
            return False
        if not self.store.read_config().bypass_pin:
            self.host.notify(NO_PIN_MESSAGE, self.notify_timeout_seconds)
            return False

        logger.info("Bypass requested; showing PIN prompt.")
        self._cancel_countdown()
        self._cancel_settle()
        if self._surface is not None:
            self.host.dismiss_blocking_surface(self._surface)
            self._surface = None
        self.state = SessionState.BYPASS_PROMPT
        self.host.present_bypass_prompt()
        return True

    def submit_pin(self, pin: str | None) -> bool:
        """
        Answer to the bypass prompt. ``None`` means the user cancelled.

        A matching PIN clears the session; anything else returns to Blocking
        after the settle delay.
        """
        if self.state != SessionState.BYPASS_PROMPT:
            return False

        self.host.dismiss_bypass_prompt()
        config = self.store.read_config()
        if pin is not None and config.bypass_pin is not None and pin == config.bypass_pin:
            logger.info("Bypass PIN accepted.")
            self.state = SessionState.IDLE
            self.blocked_seconds = 0
            now = self._clock()
            self._bypassed_until = datetime.combine(
                now.date(), time(config.to_time.hour, config.to_time.minute)
            )
            self._bypass_window = (config.from_time, config.to_time)
            self.host.notify(BYPASS_OK_MESSAGE, self.notify_timeout_seconds)
            return True

        if pin is None:
            logger.info("Bypass cancelled.")
        else:
            logger.warning("Bypass PIN rejected.")
            self.host.notify(WRONG_PIN_MESSAGE, self.notify_timeout_seconds)
        self.state = SessionState.BLOCKING
        self._schedule_represent()
        return False

    # --- Settings operations ---

    def set_enabled(self, enabled: bool) -> bool:
        """Enabling inside the window blocks immediately; disabling is refused while blocking."""
        if not enabled and self.is_blocking:
            return self._reject(DisableWhileBlocking())

        self.store.update(enabled=enabled)
        if enabled:
            self.activate()
        return True

    def set_from_time(self, value: TimeOfDay) -> bool:
        return self.set_window(from_time=value)

    def set_to_time(self, value: TimeOfDay) -> bool:
        return self.set_window(to_time=value)

    def set_window(self, from_time: TimeOfDay | None = None, to_time: TimeOfDay | None = None) -> bool:
        if self.is_blocking:
            return self._reject(TimeChangeWhileBlocking())

        fields = {}
        if from_time is not None:
            fields["from_time"] = from_time
        if to_time is not None:
            fields["to_time"] = to_time
        if not fields:
            return True

        self.store.update(**fields)
        self._clear_bypass()
        self.on_config_changed()
        return True

    def set_bypass_pin(self, pin: str) -> bool:
        if len(pin) < self.min_pin_length:
            return self._reject(PinTooShort(self.min_pin_length))
        if not pin.isdigit():
            return self._reject(PinNotNumeric())
        if self.is_blocking and self.store.read_config().bypass_pin:
            return self._reject(SetPinWhileBlockingAndPinExists())

        self.store.update(bypass_pin=pin)
        if self.state == SessionState.BLOCKING:
            self._refresh_surface(self.store.read_config(), self._clock())
        return True

    def clear_bypass_pin(self) -> bool:
        if self.is_blocking and self.store.read_config().bypass_pin:
            return self._reject(SetPinWhileBlockingAndPinExists())

        self.store.update(bypass_pin=None)
        return True

    def _reject(self, error: FocusModeError) -> bool:
        logger.warning(f"Rejected: {error}")
        self.host.notify(str(error), self.notify_timeout_seconds)
        return False

    # --- Derived views ---

    def countdown(self, config: FocusModeConfig | None = None, now: datetime | None = None) -> Countdown:
        config = config or self.store.read_config()
        now = now or self._clock()
        hours, minutes = remaining_minutes(now, config.to_time)
        return Countdown(
            hours=hours,
            minutes=minutes,
            text=format_remaining(hours, minutes),
            end_time=format_end_time(config.to_time),
        )

    def surface_spec(self, config: FocusModeConfig | None = None, now: datetime | None = None) -> SurfaceSpec:
        config = config or self.store.read_config()
        countdown = self.countdown(config, now)
        has_pin = config.bypass_pin is not None
        return SurfaceSpec(
            countdown_text=countdown.text,
            end_time=countdown.end_time,
            has_bypass_pin=has_pin,
            buttons=["Bypass"] if has_pin else [],
        )

    def menu_state(self) -> MenuState:
        config = self.store.read_config()
        unlocked = not self.is_blocking
        return MenuState(
            enabled=config.enabled,
            enabled_toggle=unlocked,
            from_time_toggle=unlocked,
            to_time_toggle=unlocked,
            pin_setter=unlocked or config.bypass_pin is None,
        )

    def status(self) -> dict:
        config = self.store.read_config()
        now = self._clock()
        info = {
            "state": self.state.value,
            "enabled": config.enabled,
            "from_time": str(config.from_time),
            "to_time": str(config.to_time),
            "in_window": self._in_window(config, now),
            "has_bypass_pin": config.bypass_pin is not None,
            "countdown_active": self.countdown_active,
            "blocked_seconds": int(self.blocked_seconds),
        }
        if self.is_blocking:
            info["countdown"] = self.countdown(config, now).text
        return info

    # --- Timers ---

    def _cancel(self, handle: TimerHandle | None):
        if handle is not None:
            self.scheduler.cancel(handle)

    def _arm_check(self):
        self._cancel(self._check_timer)
        self._check_timer = self.scheduler.schedule_in(self.tick_seconds, self.on_tick)

    def _arm_countdown(self):
        self._cancel(self._countdown_timer)
        self._countdown_timer = self.scheduler.schedule_in(self.tick_seconds, self._on_countdown)

    def _cancel_countdown(self):
        self._cancel(self._countdown_timer)
        self._countdown_timer = None

    def _cancel_settle(self):
        self._cancel(self._settle_timer)
        self._settle_timer = None

    def _on_countdown(self):
        self._countdown_timer = None
        if self.state != SessionState.BLOCKING:
            return
        config = self.store.read_config()
        now = self._clock()
        if minutes_since_midnight(now) >= minutes_since_midnight(config.to_time):
            self.check()
            return
        self._refresh_surface(config, now)

    def _refresh_surface(self, config: FocusModeConfig, now: datetime):
        if self._surface is None:
            if self._settle_timer is None:
                self._surface = self.host.present_blocking_surface(self.surface_spec(config, now))
            else:
                return
        else:
            self.host.update_blocking_surface(self._surface, self.surface_spec(config, now))
        if not self.countdown_active:
            self._arm_countdown()

    def _schedule_represent(self):
        self._cancel_settle()
        self._settle_timer = self.scheduler.schedule_in(self.settle_delay_seconds, self._represent)

    def _represent(self):
        self._settle_timer = None
        if self.state != SessionState.BLOCKING or self._surface is not None:
            return
        logger.debug("Re-presenting blocking surface.")
        config = self.store.read_config()
        self._surface = self.host.present_blocking_surface(self.surface_spec(config, self._clock()))
        self._arm_countdown()
