from pydantic import BaseModel, ConfigDict, Field

DEFAULT_FROM_HOUR = 6
DEFAULT_TO_HOUR = 19


class TimeOfDay(BaseModel):
    """An hour/minute pair, persisted as ``{"hour": h, "min": m}``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    hour: int = Field(ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59, alias="min")

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def default_from_time() -> TimeOfDay:
    return TimeOfDay(hour=DEFAULT_FROM_HOUR, minute=0)


def default_to_time() -> TimeOfDay:
    return TimeOfDay(hour=DEFAULT_TO_HOUR, minute=0)


class FocusModeConfig(BaseModel):
    """The persisted ``focus_mode`` record."""

    enabled: bool = False
    from_time: TimeOfDay = Field(default_factory=default_from_time)
    to_time: TimeOfDay = Field(default_factory=default_to_time)
    bypass_pin: str | None = None

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SurfaceSpec(BaseModel):
    """What the host should draw for the blocking surface."""

    title: str = "Focus Mode is active."
    message: str = "You are not allowed to use the device."
    countdown_text: str
    end_time: str
    has_bypass_pin: bool = False
    buttons: list[str] = Field(default_factory=list)

    # Capability flags interpreted by the host renderer
    modal: bool = True
    dismissable: bool = False

    @property
    def text(self) -> str:
        return f"{self.countdown_text} (until {self.end_time})"


class Countdown(BaseModel):
    hours: int
    minutes: int
    text: str
    end_time: str


class MenuState(BaseModel):
    """Which menu entries are checked/usable right now."""

    enabled: bool
    enabled_toggle: bool
    from_time_toggle: bool
    to_time_toggle: bool
    pin_setter: bool
