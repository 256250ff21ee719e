"""Query and persistence helpers used by the API routes.

Helpers add and flush but never commit; the caller owns the transaction.
"""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from timegrid.extraction.normalizer import TimeBlockData, default_color
from timegrid.utils.schedule import calculate_duration, normalize_day, normalize_time

from .models import Teacher, TimeBlock, Timetable, UploadedFile

DEFAULT_TEACHER_NAME = "Default Teacher"
DEFAULT_TEACHER_EMAIL = "teacher@example.com"


def count_teachers(db: Session) -> int:
    return db.execute(select(func.count()).select_from(Teacher)).scalar_one()


def list_teachers(db: Session) -> list[Teacher]:
    return list(db.execute(select(Teacher).order_by(Teacher.name.asc())).scalars())


def get_teacher(db: Session, teacher_id: str) -> Teacher | None:
    return db.get(Teacher, teacher_id)


def get_teacher_by_email(db: Session, email: str) -> Teacher | None:
    return db.execute(select(Teacher).where(Teacher.email == email)).scalar_one_or_none()


def create_teacher(db: Session, name: str, email: str) -> Teacher:
    teacher = Teacher(name=name, email=email)
    db.add(teacher)
    db.flush()
    return teacher


def get_or_create_default_teacher(db: Session) -> Teacher:
    """Return the shared default teacher, creating it on first use."""
    teacher = get_teacher_by_email(db, DEFAULT_TEACHER_EMAIL)
    if teacher is None:
        teacher = create_teacher(db, DEFAULT_TEACHER_NAME, DEFAULT_TEACHER_EMAIL)
    return teacher


def _normalize_schedule_fields(values: dict[str, Any]) -> None:
    for key in ("start_time", "end_time"):
        if values.get(key):
            values[key] = normalize_time(values[key])
    if values.get("day_of_week"):
        values["day_of_week"] = normalize_day(values["day_of_week"])


def _block_from_record(record: dict[str, Any]) -> TimeBlock:
    record = dict(record)
    _normalize_schedule_fields(record)
    if not record.get("duration"):
        record["duration"] = calculate_duration(record["start_time"], record["end_time"])
    if not record.get("color"):
        record["color"] = default_color(record["title"])
    return TimeBlock(**record)


def block_records(blocks: Iterable[TimeBlockData]) -> list[dict[str, Any]]:
    return [block.as_record() for block in blocks]


def create_timetable(
    db: Session,
    title: str,
    teacher_id: str,
    description: str | None = None,
    blocks: Iterable[dict[str, Any]] = (),
) -> Timetable:
    """Create a timetable together with its blocks.

    Args:
        db: Active session.
        title: Timetable title.
        teacher_id: Owning teacher.
        description: Optional description.
        blocks: Block column values keyed by ORM attribute name.

    Returns:
        The new timetable, flushed so its id is populated.
    """
    timetable = Timetable(
        title=title,
        description=description or "",
        teacher_id=teacher_id,
        timeblocks=[_block_from_record(record) for record in blocks],
    )
    db.add(timetable)
    db.flush()
    return timetable


def list_timetables(db: Session, teacher_id: str | None = None) -> list[Timetable]:
    """Return timetables with their blocks, newest first."""
    query = select(Timetable).options(selectinload(Timetable.timeblocks))
    if teacher_id:
        query = query.where(Timetable.teacher_id == teacher_id)
    query = query.order_by(Timetable.created_at.desc())
    return list(db.execute(query).scalars())


def get_timetable(db: Session, timetable_id: str) -> Timetable | None:
    return db.get(Timetable, timetable_id)


def update_timetable(
    db: Session,
    timetable: Timetable,
    title: str | None = None,
    description: str | None = None,
    blocks: Iterable[dict[str, Any]] | None = None,
) -> Timetable:
    """Update a timetable's fields; given blocks replace all existing ones."""
    if title is not None:
        timetable.title = title
    if description is not None:
        timetable.description = description
    if blocks is not None:
        timetable.timeblocks = [_block_from_record(record) for record in blocks]
    db.flush()
    return timetable


def delete_timetable(db: Session, timetable: Timetable) -> None:
    db.delete(timetable)
    db.flush()


def get_timeblock(db: Session, timeblock_id: str) -> TimeBlock | None:
    return db.get(TimeBlock, timeblock_id)


def update_timeblock(db: Session, block: TimeBlock, **values: Any) -> TimeBlock:
    _normalize_schedule_fields(values)
    for key, value in values.items():
        setattr(block, key, value)
    block.duration = calculate_duration(block.start_time, block.end_time)
    db.flush()
    return block


def delete_timeblock(db: Session, block: TimeBlock) -> None:
    db.delete(block)
    db.flush()


def create_uploaded_file(
    db: Session,
    filename: str,
    original_name: str,
    mime_type: str,
    size: int,
    path: str,
) -> UploadedFile:
    record = UploadedFile(
        filename=filename,
        original_name=original_name,
        mime_type=mime_type,
        size=size,
        path=path,
        processed=False,
    )
    db.add(record)
    db.flush()
    return record


def get_uploaded_file(db: Session, file_id: str) -> UploadedFile | None:
    return db.get(UploadedFile, file_id)
