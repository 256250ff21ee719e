"""Normalization of LLM replies into canonical time blocks.

Providers answer in different shapes: fenced or prose-wrapped JSON,
``subject``/``activity`` instead of ``title``, a single ``time`` range
instead of start and end, ``day`` instead of ``dayOfWeek``, and sometimes
per-day groups holding nested ``blocks`` or ``schedule`` arrays. Everything
is coerced here into flat :class:`TimeBlockData` records.
"""

import json
import re
from dataclasses import asdict, dataclass
from typing import Any

from timegrid.utils.logger import get_logger
from timegrid.utils.schedule import calculate_duration, normalize_day, normalize_time

logger = get_logger(__name__)

DEFAULT_START = "09:00"
DEFAULT_END = "10:00"
DEFAULT_DAY = "Monday"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_RANGE_SPLIT_RE = re.compile(r"\s*[-\u2013\u2014]\s*|\s+to\s+", re.IGNORECASE)

# Checked in order; the first keyword found as a whole word wins.
SUBJECT_COLORS: list[tuple[tuple[str, ...], str]] = [
    (("maths", "math", "mathematics", "numeracy"), "#3B82F6"),
    (("english", "language", "literature", "grammar"), "#10B981"),
    (("science", "physics", "chemistry", "biology"), "#F59E0B"),
    (("history", "social", "geography"), "#8B5CF6"),
    (("art", "drawing", "creative"), "#EC4899"),
    (("music", "singing", "instrument"), "#06B6D4"),
    (("pe", "physical", "sport", "gym", "yoga"), "#84CC16"),
    (("computing", "computer", "technology", "it"), "#6366F1"),
    (("re", "religious", "religion"), "#F97316"),
    (("phse", "pshe", "personal", "jigsaw"), "#10B981"),
    (("rwi", "reading", "writing", "phonics"), "#EF4444"),
    (("assembly", "celebration"), "#FFD700"),
    (("break", "recess", "snack", "outside play"), "#A0AEC0"),
    (("lunch",), "#4A5568"),
    (("handwriting",), "#CBD5E0"),
    (("storytime", "story time", "story"), "#718096"),
    (("catch up",), "#ECC94B"),
    (("registration", "early morning work", "morning work"), "#ED8936"),
    (("teacher", "class", "term", "school"), "#9F7AEA"),
]

PALETTE: list[str] = [
    "#3B82F6",
    "#EF4444",
    "#10B981",
    "#F59E0B",
    "#8B5CF6",
    "#06B6D4",
    "#84CC16",
    "#F97316",
    "#EC4899",
    "#6366F1",
]


class ResponseParseError(ValueError):
    """Raised when an LLM reply does not contain a usable timeblocks object."""


@dataclass
class TimeBlockData:
    """A canonical extracted time block."""

    title: str
    start_time: str
    end_time: str
    day_of_week: str
    description: str = ""
    duration: int | None = None
    color: str | None = None
    subject: str | None = None
    activity_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the block with the camelCase keys used by the grid UI."""
        return {
            "title": self.title,
            "description": self.description,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "dayOfWeek": self.day_of_week,
            "duration": self.duration,
            "color": self.color,
            "subject": self.subject,
            "activityType": self.activity_type,
        }

    def as_record(self) -> dict[str, Any]:
        """Return the block as snake_case keyword arguments for the ORM."""
        return asdict(self)


def _contains_word(text: str, keyword: str) -> bool:
    # Apostrophes count as word characters so "we're" and "it's" do not match.
    return re.search(rf"(?<![\w'\u2019]){re.escape(keyword)}(?![\w'\u2019])", text) is not None


def _string_hash(text: str) -> int:
    value = 0
    for char in text:
        value = (ord(char) + ((value << 5) - value)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


def default_color(title: str) -> str:
    """Pick a display color for a block title.

    Known subjects get their fixed color; anything else is hashed into
    :data:`PALETTE` so the same title always gets the same color.
    """
    lowered = title.lower()
    for keywords, color in SUBJECT_COLORS:
        if any(_contains_word(lowered, kw) for kw in keywords):
            return color
    return PALETTE[_string_hash(title) % len(PALETTE)]


def clean_response(response: str) -> str:
    """Strip markdown fences and surrounding prose from an LLM reply."""
    content = _FENCE_RE.sub("", response.strip()).strip()
    match = _OBJECT_RE.search(content)
    if match:
        content = match.group(0)
    return content


def _first_str(block: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = block.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
    return None


def _split_range(value: Any) -> tuple[str, str] | None:
    if not isinstance(value, str):
        return None
    parts = [p for p in _RANGE_SPLIT_RE.split(value.strip(), maxsplit=1) if p]
    if len(parts) != 2:
        return None
    return parts[0].strip(), parts[1].strip()


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float) and value > 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdigit() and int(value) > 0:
        return int(value)
    return None


def normalize_block(
    block: dict[str, Any],
    default_title: str,
    day: str | None = None,
    default_duration: int = 60,
) -> TimeBlockData:
    """Coerce one raw block dictionary into a :class:`TimeBlockData`.

    Args:
        block: Raw block from the LLM reply.
        default_title: Title used when the block names no activity.
        day: Day inherited from a parent group; overrides the block's own.
        default_duration: Duration used when times cannot be parsed.

    Returns:
        Canonical time block.
    """
    title = _first_str(block, "title", "subject", "activity", "name") or default_title

    start = _first_str(block, "startTime", "start_time", "start") or DEFAULT_START
    end = _first_str(block, "endTime", "end_time", "end") or DEFAULT_END
    time_range = _split_range(block.get("time"))
    if time_range:
        start, end = time_range
    start, end = normalize_time(start), normalize_time(end)

    raw_day = day or _first_str(block, "dayOfWeek", "day_of_week", "day") or DEFAULT_DAY
    description = block.get("description")

    return TimeBlockData(
        title=title,
        description=description.strip() if isinstance(description, str) else "",
        start_time=start,
        end_time=end,
        day_of_week=normalize_day(raw_day),
        duration=_positive_int(block.get("duration"))
        or calculate_duration(start, end, default_duration),
        color=_first_str(block, "color") or default_color(title),
    )


def normalize_timeblocks(
    raw_blocks: list[Any], default_duration: int = 60
) -> list[TimeBlockData]:
    """Normalize a ``timeblocks`` array, flattening nested day groups.

    Args:
        raw_blocks: The ``timeblocks`` list from a parsed reply.
        default_duration: Duration used when times cannot be parsed.

    Returns:
        Flat list of canonical time blocks.
    """
    blocks: list[TimeBlockData] = []
    for index, raw in enumerate(raw_blocks, 1):
        if not isinstance(raw, dict):
            logger.debug("Skipping non-object timeblock entry: %r", raw)
            continue

        nested = next(
            (raw[key] for key in ("blocks", "schedule") if isinstance(raw.get(key), list)),
            None,
        )
        if nested is not None:
            parent_day = _first_str(raw, "dayOfWeek", "day_of_week", "day") or DEFAULT_DAY
            for nested_index, child in enumerate(nested, 1):
                if isinstance(child, dict):
                    blocks.append(
                        normalize_block(
                            child,
                            f"Activity {index}.{nested_index}",
                            day=parent_day,
                            default_duration=default_duration,
                        )
                    )
            continue

        blocks.append(
            normalize_block(raw, f"Activity {index}", default_duration=default_duration)
        )
    return blocks


def parse_llm_response(response: str, default_duration: int = 60) -> list[TimeBlockData]:
    """Parse an LLM reply into canonical time blocks.

    Args:
        response: Raw text returned by a provider.
        default_duration: Duration used when times cannot be parsed.

    Returns:
        Normalized time blocks.

    Raises:
        ResponseParseError: If the reply holds no parseable object with a
            ``timeblocks`` list.
    """
    content = clean_response(response)
    if not content.startswith("{") or "timeblocks" not in content:
        raise ResponseParseError("Response does not contain a timeblocks JSON object")

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Invalid JSON in response: {exc}") from exc

    raw_blocks = parsed.get("timeblocks") if isinstance(parsed, dict) else None
    if not isinstance(raw_blocks, list):
        raise ResponseParseError("Response timeblocks field is not a list")

    blocks = normalize_timeblocks(raw_blocks, default_duration)
    logger.debug("Normalized %d raw entries into %d blocks", len(raw_blocks), len(blocks))
    return blocks
