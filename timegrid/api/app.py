"""FastAPI application for the timetable extraction service.

Provides REST endpoints for uploading documents, extracting timetables,
editing stored timetables and blocks, searching extracted blocks, and
health checks.
"""

import shutil
from contextlib import nullcontext
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from timegrid.db import crud
from timegrid.db.models import Timetable
from timegrid.db.session import get_session, ping
from timegrid.enrichment.index import BlockIndex, enrich_blocks, get_block_index
from timegrid.extraction.hybrid import HybridProcessor
from timegrid.extraction.normalizer import TimeBlockData
from timegrid.utils.config import AppConfig, load_config
from timegrid.utils.logger import LogCapture, get_logger
from timegrid.utils.schedule import sort_timeblocks
from timegrid.utils.storage import is_supported_mime_type, save_upload

from .schemas import (
    HealthResponse,
    MessageResponse,
    ProcessRequest,
    ProcessResponse,
    SearchHitOut,
    SearchResponse,
    TeacherCreate,
    TeacherOut,
    TimeBlockOut,
    TimeBlockResponse,
    TimeBlockUpdate,
    TimetableCreate,
    TimetableListResponse,
    TimetableOut,
    TimetableResponse,
    TimetableUpdate,
    UploadResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"
DEFAULT_TIMETABLE_TITLE = "Extracted Timetable"
DEFAULT_BLOCK_COLOR = "#3B82F6"

app = FastAPI(
    title="Timegrid API",
    description="Extract weekly teaching timetables from uploaded documents",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_settings() -> AppConfig:
    """Return the application configuration, loaded once."""
    return load_config()


@lru_cache(maxsize=1)
def get_processor() -> HybridProcessor:
    """Return the shared extraction pipeline."""
    return HybridProcessor(get_settings())


def get_index() -> BlockIndex:
    return get_block_index()


DbSession = Annotated[Session, Depends(get_session)]
Settings = Annotated[AppConfig, Depends(get_settings)]
Processor = Annotated[HybridProcessor, Depends(get_processor)]
Index = Annotated[BlockIndex, Depends(get_index)]


@app.exception_handler(SQLAlchemyError)
def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Database error"})


def _timetable_out(timetable: Timetable) -> TimetableOut:
    out = TimetableOut.model_validate(timetable)
    out.timeblocks = sort_timeblocks(out.timeblocks)
    return out


def _index_timetable(index: BlockIndex, timetable: Timetable) -> None:
    blocks = [
        TimeBlockData(
            title=block.title,
            description=block.description or "",
            start_time=block.start_time,
            end_time=block.end_time,
            day_of_week=block.day_of_week,
            duration=block.duration,
            color=block.color,
            subject=block.subject,
            activity_type=block.activity_type,
        )
        for block in timetable.timeblocks
    ]
    index.add(timetable.id, blocks)


def _require_timetable(db: Session, timetable_id: str) -> Timetable:
    timetable = crud.get_timetable(db, timetable_id)
    if timetable is None:
        raise HTTPException(status_code=404, detail="Timetable not found")
    return timetable


@app.get("/health", response_model=HealthResponse)
def health_check(db: DbSession, processor: Processor) -> HealthResponse | JSONResponse:
    """Return system health, including database reachability."""
    tesseract_available = shutil.which("tesseract") is not None
    try:
        ping(db)
        teacher_count = crud.count_teachers(db)
    except SQLAlchemyError as exc:
        logger.error("Health check failed: %s", exc)
        unhealthy = HealthResponse(
            status="unhealthy",
            version=VERSION,
            database="disconnected",
            tesseract_available=tesseract_available,
            providers=processor.available_providers,
        )
        return JSONResponse(status_code=503, content=unhealthy.model_dump())

    return HealthResponse(
        status="healthy",
        version=VERSION,
        database="connected",
        teacher_count=teacher_count,
        tesseract_available=tesseract_available,
        providers=processor.available_providers,
    )


@app.post("/upload", response_model=UploadResponse)
def upload_file(
    file: Annotated[UploadFile, File(...)], db: DbSession, config: Settings
) -> UploadResponse:
    """Store an uploaded timetable document for later processing.

    Args:
        file: Uploaded document (PNG, JPEG, PDF or DOCX).

    Returns:
        Identifier and stored name of the upload.
    """
    if not is_supported_mime_type(file.content_type):
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Please upload an image, PDF, or Word document.",
        )

    content = file.file.read()
    original_name = file.filename or "document"
    path = save_upload(
        content, original_name, Path(config.storage.upload_dir), file.content_type
    )
    record = crud.create_uploaded_file(
        db,
        filename=path.name,
        original_name=original_name,
        mime_type=file.content_type,
        size=len(content),
        path=str(path),
    )
    db.commit()

    return UploadResponse(
        file_id=record.id,
        filename=record.filename,
        original_name=record.original_name,
        mime_type=record.mime_type,
        size=record.size,
    )


@app.post("/process", response_model=ProcessResponse)
def process_upload(
    request: ProcessRequest, db: DbSession, processor: Processor, index: Index
) -> ProcessResponse:
    """Extract a timetable from a previously uploaded file and store it.

    Extraction itself never fails: when OCR or every LLM provider fails the
    placeholder schedule is stored and ``used_fallback`` is set.
    """
    if not request.file_id:
        raise HTTPException(status_code=400, detail="File ID is required")

    upload = crud.get_uploaded_file(db, request.file_id)
    if upload is None:
        raise HTTPException(status_code=404, detail="File not found")
    if upload.processed:
        raise HTTPException(status_code=400, detail="File has already been processed")

    teacher = crud.get_teacher(db, request.teacher_id) if request.teacher_id else None
    if teacher is None:
        if request.teacher_id:
            logger.warning("Teacher %s not found, using the default teacher", request.teacher_id)
        teacher = crud.get_or_create_default_teacher(db)

    capture = LogCapture() if request.include_logs else nullcontext()
    with capture:
        logger.info("Processing upload %s (%s)", upload.original_name, upload.mime_type)
        result = processor.process_file(Path(upload.path), upload.mime_type)

    timetable = crud.create_timetable(
        db,
        title=request.title or DEFAULT_TIMETABLE_TITLE,
        teacher_id=teacher.id,
        description=request.description or f"Extracted from {upload.original_name}",
        blocks=crud.block_records(result.timeblocks),
    )
    upload.processed = True
    db.commit()
    db.refresh(timetable)
    index.add(timetable.id, result.timeblocks)

    return ProcessResponse(
        timetable=_timetable_out(timetable),
        provider=result.provider,
        used_fallback=result.used_fallback,
        source_kind=result.source_kind,
        error=result.error,
        page_count=result.page_count,
        logs=capture.lines if isinstance(capture, LogCapture) else None,
        raw_text=result.raw_text if request.include_logs else None,
    )


@app.get("/teachers", response_model=list[TeacherOut])
def list_teachers(db: DbSession) -> list[TeacherOut]:
    return [TeacherOut.model_validate(t) for t in crud.list_teachers(db)]


@app.post("/teachers", response_model=TeacherOut, status_code=201)
def create_teacher(payload: TeacherCreate, db: DbSession) -> TeacherOut:
    if crud.get_teacher_by_email(db, payload.email) is not None:
        raise HTTPException(status_code=409, detail="Teacher email already exists")
    teacher = crud.create_teacher(db, payload.name, payload.email)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Teacher email already exists")
    return TeacherOut.model_validate(teacher)


@app.get("/timetables", response_model=TimetableListResponse)
def list_timetables(
    db: DbSession, teacher_id: Annotated[str | None, Query()] = None
) -> TimetableListResponse:
    """List stored timetables, newest first."""
    timetables = crud.list_timetables(db, teacher_id)
    return TimetableListResponse(timetables=[_timetable_out(t) for t in timetables])


@app.post("/timetables", response_model=TimetableResponse, status_code=201)
def create_timetable(
    payload: TimetableCreate, db: DbSession, index: Index
) -> TimetableResponse:
    if not payload.title or not payload.teacher_id:
        raise HTTPException(status_code=400, detail="Title and teacher_id are required")
    if crud.get_teacher(db, payload.teacher_id) is None:
        raise HTTPException(status_code=404, detail="Teacher not found")

    blocks = [TimeBlockData(**block.model_dump()) for block in payload.timeblocks]
    timetable = crud.create_timetable(
        db,
        title=payload.title,
        teacher_id=payload.teacher_id,
        description=payload.description,
        blocks=crud.block_records(enrich_blocks(blocks)),
    )
    db.commit()
    db.refresh(timetable)
    _index_timetable(index, timetable)
    return TimetableResponse(timetable=_timetable_out(timetable))


@app.get("/timetables/{timetable_id}", response_model=TimetableResponse)
def get_timetable(timetable_id: str, db: DbSession) -> TimetableResponse:
    return TimetableResponse(timetable=_timetable_out(_require_timetable(db, timetable_id)))


@app.put("/timetables/{timetable_id}", response_model=TimetableResponse)
def update_timetable(
    timetable_id: str, payload: TimetableUpdate, db: DbSession, index: Index
) -> TimetableResponse:
    """Update a timetable; a ``timeblocks`` list replaces every stored block."""
    timetable = _require_timetable(db, timetable_id)

    records = None
    if payload.timeblocks is not None:
        blocks = [TimeBlockData(**block.model_dump()) for block in payload.timeblocks]
        records = crud.block_records(enrich_blocks(blocks))

    crud.update_timetable(
        db,
        timetable,
        title=payload.title,
        description=payload.description,
        blocks=records,
    )
    db.commit()
    db.refresh(timetable)
    _index_timetable(index, timetable)
    return TimetableResponse(timetable=_timetable_out(timetable))


@app.delete("/timetables/{timetable_id}", response_model=MessageResponse)
def delete_timetable(timetable_id: str, db: DbSession, index: Index) -> MessageResponse:
    timetable = _require_timetable(db, timetable_id)
    crud.delete_timetable(db, timetable)
    db.commit()
    index.remove(timetable_id)
    return MessageResponse(message="Timetable deleted successfully")


@app.put("/timeblocks/{timeblock_id}", response_model=TimeBlockResponse)
def update_timeblock(
    timeblock_id: str, payload: TimeBlockUpdate, db: DbSession, index: Index
) -> TimeBlockResponse:
    """Replace a block's values; duration is recalculated from the times."""
    if not (
        payload.title and payload.start_time and payload.end_time and payload.day_of_week
    ):
        raise HTTPException(
            status_code=400,
            detail="Title, startTime, endTime, and dayOfWeek are required",
        )

    block = crud.get_timeblock(db, timeblock_id)
    if block is None:
        raise HTTPException(status_code=404, detail="Timeblock not found")

    enriched = enrich_blocks(
        [
            TimeBlockData(
                title=payload.title,
                description=payload.description or "",
                start_time=payload.start_time,
                end_time=payload.end_time,
                day_of_week=payload.day_of_week,
            )
        ]
    )[0]
    crud.update_timeblock(
        db,
        block,
        title=enriched.title,
        description=enriched.description,
        start_time=enriched.start_time,
        end_time=enriched.end_time,
        day_of_week=enriched.day_of_week,
        color=payload.color or DEFAULT_BLOCK_COLOR,
        subject=enriched.subject,
        activity_type=enriched.activity_type,
    )
    db.commit()
    db.refresh(block)
    _index_timetable(index, block.timetable)
    return TimeBlockResponse(timeblock=TimeBlockOut.model_validate(block))


@app.delete("/timeblocks/{timeblock_id}", response_model=MessageResponse)
def delete_timeblock(timeblock_id: str, db: DbSession, index: Index) -> MessageResponse:
    block = crud.get_timeblock(db, timeblock_id)
    if block is None:
        raise HTTPException(status_code=404, detail="Timeblock not found")

    timetable = block.timetable
    crud.delete_timeblock(db, block)
    db.commit()
    db.refresh(timetable)
    _index_timetable(index, timetable)
    return MessageResponse(message="Timeblock deleted successfully")


@app.get("/search", response_model=SearchResponse)
def search_blocks(
    index: Index,
    q: Annotated[str, Query()] = "",
    subject: Annotated[str | None, Query()] = None,
    activity_type: Annotated[str | None, Query()] = None,
    day: Annotated[str | None, Query()] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> SearchResponse:
    """Search extracted blocks by text, subject, activity type and day."""
    hits = index.search(q, subject=subject, activity_type=activity_type, day=day, limit=limit)
    return SearchResponse(
        query=q,
        total=len(hits),
        results=[SearchHitOut(key=hit.key, **hit.block.as_record()) for hit in hits],
    )
