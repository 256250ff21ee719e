"""SQLAlchemy ORM models for teachers, timetables, blocks and uploads."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    timetables = relationship(
        "Timetable", back_populates="teacher", cascade="all, delete-orphan"
    )


class Timetable(Base):
    __tablename__ = "timetables"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    teacher_id = Column(
        String(36), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    teacher = relationship("Teacher", back_populates="timetables")
    timeblocks = relationship(
        "TimeBlock", back_populates="timetable", cascade="all, delete-orphan"
    )


class TimeBlock(Base):
    __tablename__ = "timeblocks"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    day_of_week = Column(String(16), nullable=False)
    duration = Column(Integer, nullable=True)
    color = Column(String(16), nullable=True)
    subject = Column(String(64), nullable=True)
    activity_type = Column(String(32), nullable=True)
    timetable_id = Column(
        String(36),
        ForeignKey("timetables.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    timetable = relationship("Timetable", back_populates="timeblocks")


class UploadedFile(Base):
    __tablename__ = "uploaded_files"

    id = Column(String(36), primary_key=True, default=_new_id)
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(128), nullable=False)
    size = Column(Integer, nullable=False)
    path = Column(Text, nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
