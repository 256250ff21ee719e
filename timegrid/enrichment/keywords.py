"""Static keyword tables used to tag extracted blocks.

Each block's title and description are matched on whole words against a
subject table and an activity-type table. The tables are read-only and
shared by every request in the process.
"""

import re
from functools import lru_cache

SUBJECT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Mathematics": ("maths", "math", "mathematics", "numeracy", "maths meeting"),
    "English": (
        "english",
        "literacy",
        "grammar",
        "language",
        "writer's workshop",
        "reader's workshop",
        "comprehension",
        "spelling",
        "handwriting",
    ),
    "Phonics": ("phonics", "rwi", "read write inc", "word work", "word time"),
    "Science": ("science", "physics", "chemistry", "biology"),
    "Humanities": ("history", "geography", "social studies", "topic"),
    "Art": ("art", "drawing", "design", "craft"),
    "Music": ("music", "singing", "instrument"),
    "PE": ("pe", "p.e", "physical education", "sport", "gym", "yoga", "outside play"),
    "Computing": ("computing", "computer", "ict", "technology", "coding"),
    "RE": ("re", "religious", "religion"),
    "PSHE": ("pshe", "phse", "jigsaw", "wellbeing", "circle time"),
}

ACTIVITY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "registration": (
        "registration",
        "register",
        "early morning work",
        "morning work",
        "students are allowed inside",
        "late bell",
    ),
    "assembly": ("assembly", "celebration"),
    "break": ("break", "recess", "snack", "snack time", "playtime", "outside play"),
    "lunch": ("lunch",),
    "story": ("story", "storytime", "story time", "read aloud"),
    "admin": ("teacher", "class", "term", "school", "pack up", "dismissed", "home time"),
}

DEFAULT_ACTIVITY = "lesson"


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![\w'\u2019]){re.escape(keyword)}(?![\w'\u2019])")


def _best_match(text: str, table: dict[str, tuple[str, ...]]) -> str | None:
    """Return the label whose longest matching keyword is longest.

    Longer keywords are more specific ("maths meeting" beats "maths"), so
    the label with the longest hit wins; ties go to table order.
    """
    best_label: str | None = None
    best_length = 0
    for label, keywords in table.items():
        for keyword in keywords:
            if len(keyword) > best_length and _keyword_pattern(keyword).search(text):
                best_label, best_length = label, len(keyword)
    return best_label


def classify_text(text: str) -> tuple[str | None, str]:
    """Classify free text into a subject and an activity type.

    Args:
        text: Block title and description.

    Returns:
        Tuple of (subject or ``None``, activity type). Text with no
        activity keyword is a ``"lesson"``.
    """
    lowered = text.lower()
    subject = _best_match(lowered, SUBJECT_KEYWORDS)
    activity = _best_match(lowered, ACTIVITY_KEYWORDS) or DEFAULT_ACTIVITY
    return subject, activity
