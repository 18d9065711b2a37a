class FocusModeError(Exception):
    """Base class for rejections surfaced to the user as a notification."""

    message = "Focus Mode could not complete the request."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class ConfigInvalid(FocusModeError):
    message = "Focus Mode settings were invalid and have been reset to defaults."


class PinTooShort(FocusModeError):
    def __init__(self, min_length: int = 4):
        super().__init__(f"The bypass PIN must be at least {min_length} digits long.")


class DisableWhileBlocking(FocusModeError):
    message = "Focus Mode cannot be disabled while it is active."


class SetPinWhileBlockingAndPinExists(FocusModeError):
    message = "The bypass PIN cannot be changed while Focus Mode is active."


class TimeChangeWhileBlocking(FocusModeError):
    message = "The focus window cannot be changed while Focus Mode is active."


class PinNotNumeric(FocusModeError):
    message = "The bypass PIN must contain digits only."
