"""Application entry point for the timetable extraction API server."""

import uvicorn

from timegrid.api.app import app, get_processor, get_settings
from timegrid.db.session import configure
from timegrid.extraction.hybrid import HybridProcessor
from timegrid.utils.config import AppConfig, load_config
from timegrid.utils.logger import setup_logging


def serve(config: AppConfig, host: str = "0.0.0.0", port: int = 8000) -> None:
    """Bind the database and run the FastAPI application server."""
    configure(config.storage.database_url)
    processor = HybridProcessor(config)
    app.dependency_overrides[get_settings] = lambda: config
    app.dependency_overrides[get_processor] = lambda: processor
    uvicorn.run(app, host=host, port=port)


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    serve(config)


if __name__ == "__main__":
    main()
