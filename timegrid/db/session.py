"""Database engine and request-scoped sessions."""

from collections.abc import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from timegrid.utils.config import load_config
from timegrid.utils.logger import get_logger

from .models import Base

logger = get_logger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def create_db_engine(database_url: str, **kwargs: object) -> Engine:
    """Create an engine for a database URL.

    SQLite connections are shared across FastAPI's worker threads, so the
    same-thread check is disabled for them.
    """
    connect_args: dict[str, object] = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url, pool_pre_ping=True, connect_args=connect_args, **kwargs
    )


def init_db(engine: Engine) -> sessionmaker:
    """Create all tables and return a session factory bound to the engine."""
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def configure(database_url: str | None = None) -> sessionmaker:
    """Bind the process-wide session factory.

    Args:
        database_url: Database URL; read from the configuration when omitted.

    Returns:
        The session factory.
    """
    global _engine, _session_factory
    if database_url is None:
        database_url = load_config().storage.database_url
    logger.info("Connecting to database %s", database_url)
    _engine = create_db_engine(database_url)
    _session_factory = init_db(_engine)
    return _session_factory


def get_session() -> Iterator[Session]:
    """Yield a session for one request, closing it afterwards."""
    factory = _session_factory or configure()
    db = factory()
    try:
        yield db
    finally:
        db.close()


def ping(db: Session) -> None:
    """Run a trivial query to check the connection."""
    db.execute(text("SELECT 1"))
