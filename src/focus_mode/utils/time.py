from datetime import datetime

from focus_mode.schema import TimeOfDay

ELAPSED_SANITY_SECONDS = 300


def parse_time_string(time_str: str) -> TimeOfDay:
    """Parses time strings like '8pm', '8:30pm', '20:00', '20:30'."""
    formats = ["%I%p", "%I:%M%p", "%H:%M", "%H:%M:%S"]
    time_str = time_str.lower().replace(" ", "")
    for fmt in formats:
        try:
            parsed_time = datetime.strptime(time_str, fmt).time()
            return TimeOfDay(hour=parsed_time.hour, minute=parsed_time.minute)
        except ValueError:
            continue
    raise ValueError(f"Could not parse time: {time_str}")


def minutes_since_midnight(t) -> int:
    """Accepts anything with ``hour``/``minute`` (TimeOfDay, datetime, time)."""
    return t.hour * 60 + t.minute


def is_within_window(now, from_time, to_time) -> bool:
    """
    True when ``now`` lies in the half-open window [from_time, to_time).

    Windows crossing midnight (from_time > to_time) always evaluate False.
    """
    now_mins = minutes_since_midnight(now)
    return minutes_since_midnight(from_time) <= now_mins < minutes_since_midnight(to_time)


def remaining_minutes(now, to_time) -> tuple[int, int]:
    """Returns (hours, minutes) until ``to_time``, or (0, 0) once it has passed."""
    diff = minutes_since_midnight(to_time) - minutes_since_midnight(now)
    if diff <= 0:
        return 0, 0
    return diff // 60, diff % 60


def elapsed_since_last_check(
    now_ts: float, last_ts: float, threshold: float = ELAPSED_SANITY_SECONDS
) -> float:
    """
    Seconds between two checks. Intervals above ``threshold`` come from a
    device sleep/resume and are reported as 0.
    """
    elapsed = now_ts - last_ts
    if elapsed > threshold:
        return 0
    return elapsed


def format_remaining(hours: int, minutes: int) -> str:
    """Formats a countdown, e.g. '6h 30m remaining' or '45m remaining'."""
    if hours > 0:
        return f"{hours}h {minutes}m remaining"
    return f"{minutes}m remaining"


def format_end_time(to_time) -> str:
    return f"{to_time.hour:02d}:{to_time.minute:02d}"
