"""Standard school-day blocks and the placeholder fallback schedule."""

from dataclasses import dataclass

from .normalizer import TimeBlockData

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


@dataclass(frozen=True)
class StandardBlock:
    """A recurring block most primary timetables contain."""

    title: str
    aliases: tuple[str, ...]
    description: str
    start_time: str
    end_time: str
    duration: int
    color: str
    days: tuple[str, ...] = tuple(WEEKDAYS)


STANDARD_BLOCKS: list[StandardBlock] = [
    StandardBlock(
        "Registration and Early Morning Work",
        ("registration", "early morning", "morning work"),
        "Daily registration and morning activities",
        "08:35",
        "08:50",
        15,
        "#ED8936",
    ),
    StandardBlock(
        "Break",
        ("break", "recess"),
        "Morning break time",
        "10:00",
        "10:15",
        15,
        "#A0AEC0",
    ),
    StandardBlock("Lunch", ("lunch",), "Lunch break", "12:00", "13:00", 60, "#4A5568"),
    StandardBlock(
        "Story Time",
        ("story time", "storytime"),
        "End of day story session",
        "15:00",
        "15:15",
        15,
        "#718096",
    ),
    StandardBlock(
        "Assembly",
        ("assembly",),
        "School assembly",
        "09:00",
        "09:15",
        15,
        "#FFD700",
        ("Monday", "Wednesday", "Friday"),
    ),
    StandardBlock(
        "Handwriting",
        ("handwriting",),
        "Handwriting practice",
        "14:30",
        "15:00",
        30,
        "#CBD5E0",
        ("Tuesday", "Thursday"),
    ),
    StandardBlock(
        "Maths Meeting",
        ("maths meeting", "math meeting"),
        "Maths meeting and review",
        "10:15",
        "10:30",
        15,
        "#3B82F6",
        ("Friday",),
    ),
]


def _already_present(aliases: tuple[str, ...], titles: list[str]) -> bool:
    return any(alias in title for alias in aliases for title in titles)


def standard_blocks_for(existing: list[TimeBlockData]) -> list[TimeBlockData]:
    """Return the standard blocks missing from an extracted timetable.

    A standard block is added to every one of its days only when no
    extracted title contains one of its aliases.

    Args:
        existing: Blocks extracted from the document.

    Returns:
        Blocks to append.
    """
    titles = [block.title.lower() for block in existing]
    added: list[TimeBlockData] = []
    for standard in STANDARD_BLOCKS:
        if _already_present(standard.aliases, titles):
            continue
        added.extend(
            TimeBlockData(
                title=standard.title,
                description=standard.description,
                start_time=standard.start_time,
                end_time=standard.end_time,
                day_of_week=day,
                duration=standard.duration,
                color=standard.color,
            )
            for day in standard.days
        )
    return added


_FALLBACK: list[tuple[str, str, str, str, str]] = [
    ("Maths", "Mathematics lesson", "09:00", "10:00", "#F59E0B"),
    ("English", "English language lesson", "10:15", "11:15", "#8B5CF6"),
    ("Science", "Science lesson", "13:00", "14:00", "#06B6D4"),
    ("Art", "Art and Design", "14:00", "15:00", "#EC4899"),
]


def fallback_schedule() -> list[TimeBlockData]:
    """Placeholder schedule returned when extraction fails entirely."""
    return [
        TimeBlockData(
            title=title,
            description=description,
            start_time=start,
            end_time=end,
            day_of_week="Monday",
            duration=60,
            color=color,
        )
        for title, description, start, end, color in _FALLBACK
    ]
