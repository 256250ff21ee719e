"""Keyword enrichment and in-memory retrieval over extracted blocks.

Blocks are tagged with a subject and activity type, then indexed under a
key (normally the timetable id) for substring search. The index lives for
the lifetime of the process only.
"""

import threading
from collections.abc import Iterable
from dataclasses import dataclass

from timegrid.extraction.normalizer import TimeBlockData
from timegrid.utils.logger import get_logger
from timegrid.utils.schedule import sort_timeblocks

from .keywords import classify_text

logger = get_logger(__name__)


def enrich_blocks(blocks: Iterable[TimeBlockData]) -> list[TimeBlockData]:
    """Tag each block with a subject and activity type in place.

    Args:
        blocks: Blocks to enrich.

    Returns:
        The same blocks, as a list.
    """
    enriched = list(blocks)
    for block in enriched:
        block.subject, block.activity_type = classify_text(
            f"{block.title} {block.description or ''}"
        )
    return enriched


@dataclass
class SearchHit:
    """A block matched by a search, with the key it was indexed under."""

    key: str
    block: TimeBlockData

    @property
    def day_of_week(self) -> str:
        return self.block.day_of_week

    @property
    def start_time(self) -> str:
        return self.block.start_time

    def to_dict(self) -> dict[str, object]:
        return {"key": self.key, **self.block.to_dict()}


class BlockIndex:
    """In-memory index of enriched blocks keyed by timetable id.

    Shared by concurrent API requests; writers and readers take the lock,
    and searches run over a snapshot of the entries.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[TimeBlockData]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return sum(len(blocks) for _, blocks in self._snapshot())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def add(self, key: str, blocks: Iterable[TimeBlockData]) -> None:
        """Index blocks under a key, replacing anything indexed there before.

        Blocks without tags are enriched first.
        """
        items = list(blocks)
        enrich_blocks(b for b in items if b.activity_type is None)
        with self._lock:
            self._entries[key] = items
        logger.debug("Indexed %d blocks under %s", len(items), key)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get(self, key: str) -> list[TimeBlockData]:
        with self._lock:
            return list(self._entries.get(key, []))

    def _snapshot(self) -> list[tuple[str, list[TimeBlockData]]]:
        with self._lock:
            return list(self._entries.items())

    def search(
        self,
        query: str = "",
        subject: str | None = None,
        activity_type: str | None = None,
        day: str | None = None,
        limit: int | None = None,
    ) -> list[SearchHit]:
        """Find blocks whose text contains the query.

        The query is matched case-insensitively against the title,
        description, subject, activity type and day. Filters must match
        exactly (case-insensitive). An empty query matches every block.

        Args:
            query: Substring to look for.
            subject: Only return blocks tagged with this subject.
            activity_type: Only return blocks of this activity type.
            day: Only return blocks on this day.
            limit: Maximum number of hits.

        Returns:
            Hits in weekly grid order.
        """
        needle = query.strip().lower()
        hits: list[SearchHit] = []
        for key, blocks in self._snapshot():
            for block in blocks:
                if subject and (block.subject or "").lower() != subject.lower():
                    continue
                if activity_type and (
                    (block.activity_type or "").lower() != activity_type.lower()
                ):
                    continue
                if day and block.day_of_week.lower() != day.lower():
                    continue
                haystack = " ".join(
                    part
                    for part in (
                        block.title,
                        block.description,
                        block.subject,
                        block.activity_type,
                        block.day_of_week,
                    )
                    if part
                ).lower()
                if needle in haystack:
                    hits.append(SearchHit(key=key, block=block))

        hits = sort_timeblocks(hits)
        return hits[:limit] if limit is not None else hits


_index = BlockIndex()


def get_block_index() -> BlockIndex:
    """Return the process-wide block index."""
    return _index
