"""Shared test fixtures for the timegrid test suite."""

from collections.abc import Iterator
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timegrid.api.app import app, get_index, get_processor, get_settings
from timegrid.db.models import Base
from timegrid.db.session import get_session
from timegrid.enrichment.index import BlockIndex
from timegrid.extraction.hybrid import HybridProcessor
from timegrid.extraction.normalizer import TimeBlockData
from timegrid.utils.config import AppConfig, StorageConfig


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


@pytest.fixture
def sample_blocks() -> list[TimeBlockData]:
    """A small extracted week."""
    return [
        TimeBlockData("Maths", "09:15", "10:15", "Tuesday"),
        TimeBlockData("Phonics", "09:00", "09:30", "Monday", description="RWI groups"),
        TimeBlockData("Lunch", "12:00", "13:00", "Monday"),
    ]


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Configuration that stores uploads in a temporary directory."""
    return AppConfig(
        storage=StorageConfig(
            database_url="sqlite://", upload_dir=str(tmp_path / "uploads")
        )
    )


@pytest.fixture
def db_session_factory() -> Iterator[sessionmaker]:
    """In-memory SQLite database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def db_session(db_session_factory: sessionmaker) -> Iterator[Session]:
    session = db_session_factory()
    yield session
    session.close()


@pytest.fixture
def block_index() -> BlockIndex:
    return BlockIndex()


@pytest.fixture
def client(
    db_session_factory: sessionmaker,
    app_config: AppConfig,
    block_index: BlockIndex,
) -> Iterator[TestClient]:
    """FastAPI test client backed by the in-memory database.

    The default processor has no LLM providers, so extraction falls back
    to the placeholder schedule unless a test overrides ``get_processor``.
    """

    def _session() -> Iterator[Session]:
        session = db_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_settings] = lambda: app_config
    app.dependency_overrides[get_index] = lambda: block_index
    app.dependency_overrides[get_processor] = lambda: HybridProcessor(
        app_config, providers=[]
    )
    yield TestClient(app)
    app.dependency_overrides.clear()
