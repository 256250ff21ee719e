"""Day and time helpers shared by the normalizer, the API and the CLI.

Times are stored as zero-padded 24-hour ``HH:MM`` strings so that the
weekly grid can order blocks with a plain day index and minute offset.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

DAYS_OF_WEEK: list[str] = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

_DAY_ALIASES: dict[str, str] = {
    "m": "Monday",
    "mo": "Monday",
    "mon": "Monday",
    "tu": "Tuesday",
    "tue": "Tuesday",
    "tues": "Tuesday",
    "w": "Wednesday",
    "we": "Wednesday",
    "wed": "Wednesday",
    "th": "Thursday",
    "thu": "Thursday",
    "thur": "Thursday",
    "thurs": "Thursday",
    "f": "Friday",
    "fr": "Friday",
    "fri": "Friday",
    "sa": "Saturday",
    "sat": "Saturday",
    "su": "Sunday",
    "sun": "Sunday",
}

_TIME_RE = re.compile(
    r"^(?P<hour>\d{1,2})(?:[:.h](?P<minute>\d{2}))?\s*(?P<period>[ap]\.?m\.?)?$",
    re.IGNORECASE,
)
_COMPACT_TIME_RE = re.compile(r"^(?P<hour>\d{1,2})(?P<minute>\d{2})$")

T = TypeVar("T")


def normalize_day(label: str) -> str:
    """Map a day label or abbreviation to its canonical English name.

    Args:
        label: Day label such as ``"Tu"``, ``"wed"`` or ``"Monday"``.

    Returns:
        Canonical day name, or the stripped title-cased label when unknown.
    """
    cleaned = label.strip().rstrip(".")
    lowered = cleaned.lower()
    for day in DAYS_OF_WEEK:
        if lowered == day.lower():
            return day
    if lowered in _DAY_ALIASES:
        return _DAY_ALIASES[lowered]
    return cleaned.title()


def _parse_time(value: str) -> tuple[int, int] | None:
    text = value.strip().lower().replace(" ", "")
    match = _COMPACT_TIME_RE.match(text)
    if match:
        hour, minute = int(match["hour"]), int(match["minute"])
        period = None
    else:
        match = _TIME_RE.match(text)
        if not match:
            return None
        hour = int(match["hour"])
        minute = int(match["minute"] or 0)
        period = match["period"]

    if period:
        if not 1 <= hour <= 12:
            return None
        is_pm = period.startswith("p")
        if is_pm and hour != 12:
            hour += 12
        elif not is_pm and hour == 12:
            hour = 0

    if hour > 23 or minute > 59:
        return None
    return hour, minute


def normalize_time(value: str) -> str:
    """Normalize a loosely formatted time to ``HH:MM`` (24-hour).

    Accepts ``9:00``, ``9.15``, ``930``, ``9``, ``9:00 AM`` and ``1:30pm``.

    Args:
        value: Time string as written in the source document.

    Returns:
        Zero-padded ``HH:MM`` string, or the stripped input if unparseable.
    """
    parsed = _parse_time(value)
    if parsed is None:
        return value.strip()
    hour, minute = parsed
    return f"{hour:02d}:{minute:02d}"


def time_to_minutes(value: str) -> int | None:
    """Convert a time string to minutes since midnight.

    Args:
        value: Time string in any format accepted by :func:`normalize_time`.

    Returns:
        Minutes since midnight, or ``None`` if the time cannot be parsed.
    """
    parsed = _parse_time(value)
    if parsed is None:
        return None
    return parsed[0] * 60 + parsed[1]


def calculate_duration(start_time: str, end_time: str, default: int = 60) -> int:
    """Calculate the number of minutes between two times.

    Args:
        start_time: Block start time.
        end_time: Block end time.
        default: Value returned when the times cannot be parsed or the
            difference is not positive.

    Returns:
        Duration in minutes.
    """
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    if start is None or end is None:
        return default
    duration = end - start
    return duration if duration > 0 else default


def day_order(day: str) -> int:
    """Return the grid column index of a day; unknown days sort last."""
    try:
        return DAYS_OF_WEEK.index(day)
    except ValueError:
        return len(DAYS_OF_WEEK)


def format_time(value: str | None) -> str:
    """Convert a 24-hour ``HH:MM`` time to 12-hour display format.

    Args:
        value: Time string such as ``"13:05"``.

    Returns:
        Display string such as ``"1:05 PM"``; ``"00:00 AM"`` for invalid input.
    """
    if not value or not isinstance(value, str):
        return "00:00 AM"
    parts = value.split(":")
    if len(parts) != 2 or not all(p.strip().isdigit() for p in parts):
        return "00:00 AM"
    hours, minutes = int(parts[0]), int(parts[1])
    period = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    return f"{display_hours}:{minutes:02d} {period}"


def _block_field(block: Any, *names: str) -> Any:
    for name in names:
        if isinstance(block, Mapping):
            if name in block:
                return block[name]
        elif hasattr(block, name):
            return getattr(block, name)
    return None


def _sort_key(block: Any) -> tuple[int, int, str]:
    day = _block_field(block, "day_of_week", "dayOfWeek") or ""
    start = _block_field(block, "start_time", "startTime") or ""
    minutes = time_to_minutes(start)
    return (day_order(day), minutes if minutes is not None else 24 * 60, start)


def sort_timeblocks(blocks: Iterable[T]) -> list[T]:
    """Sort blocks into weekly grid order: by day, then by start time.

    Works for ORM objects and dataclasses (``day_of_week``/``start_time``)
    as well as JSON mappings (``dayOfWeek``/``startTime``).

    Args:
        blocks: Blocks to sort.

    Returns:
        New list in grid order; ties keep their input order.
    """
    return sorted(blocks, key=_sort_key)
