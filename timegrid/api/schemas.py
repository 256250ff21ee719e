"""Pydantic request/response schemas for the FastAPI endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for block payloads, which use camelCase keys on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class TimeBlockIn(CamelModel):
    """A block supplied by the client."""

    title: str
    description: str = ""
    start_time: str
    end_time: str
    day_of_week: str
    duration: int | None = None
    color: str | None = None
    subject: str | None = None
    activity_type: str | None = None


class TimeBlockUpdate(CamelModel):
    """Replacement values for a stored block."""

    title: str | None = None
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    day_of_week: str | None = None
    color: str | None = None


class TimeBlockOut(CamelModel):
    """A stored block."""

    id: str
    title: str
    description: str = ""
    start_time: str
    end_time: str
    day_of_week: str
    duration: int | None = None
    color: str | None = None
    subject: str | None = None
    activity_type: str | None = None
    timetable_id: str


class TeacherCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class TeacherOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    created_at: datetime


class TimetableCreate(BaseModel):
    title: str | None = None
    description: str | None = None
    teacher_id: str | None = None
    timeblocks: list[TimeBlockIn] = Field(default_factory=list)


class TimetableUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    timeblocks: list[TimeBlockIn] | None = None


class TimetableOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str = ""
    teacher_id: str
    created_at: datetime
    updated_at: datetime
    timeblocks: list[TimeBlockOut] = Field(default_factory=list)


class TimetableResponse(BaseModel):
    success: bool = True
    timetable: TimetableOut


class TimetableListResponse(BaseModel):
    success: bool = True
    timetables: list[TimetableOut]


class TimeBlockResponse(BaseModel):
    success: bool = True
    timeblock: TimeBlockOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UploadResponse(BaseModel):
    """Response schema for a stored upload."""

    success: bool = True
    file_id: str
    filename: str
    original_name: str
    mime_type: str
    size: int


class ProcessRequest(BaseModel):
    """Request to extract a timetable from an uploaded file."""

    file_id: str | None = None
    teacher_id: str | None = None
    title: str | None = None
    description: str | None = None
    include_logs: bool = False


class ProcessResponse(BaseModel):
    """Response schema for a processed upload."""

    success: bool = True
    timetable: TimetableOut
    provider: str | None = None
    used_fallback: bool = False
    source_kind: str | None = None
    error: str | None = None
    page_count: int | None = None
    logs: list[str] | None = None
    raw_text: str | None = None


class SearchHitOut(CamelModel):
    key: str
    title: str
    description: str = ""
    start_time: str
    end_time: str
    day_of_week: str
    duration: int | None = None
    color: str | None = None
    subject: str | None = None
    activity_type: str | None = None


class SearchResponse(BaseModel):
    query: str
    total: int
    results: list[SearchHitOut]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    database: str
    teacher_count: int | None = None
    tesseract_available: bool
    providers: list[str]
