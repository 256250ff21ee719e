"""Configuration management for the timetable extraction service.

Loads and validates YAML configuration with sensible defaults for OCR,
image preprocessing, LLM providers, extraction and storage settings.
API keys are never read from the YAML file; providers look them up in
the environment under the variable names configured here.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PreprocessingConfig(BaseModel):
    """Configuration for image preprocessing before OCR."""

    denoise_enabled: bool = True
    contrast_enabled: bool = True
    binarize_enabled: bool = False
    clahe_clip_limit: float = 2.0
    clahe_tile_size: int = 8


class OCRConfig(BaseModel):
    """Configuration for Tesseract OCR and line reconstruction."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 6
    pdf_dpi: int = 300
    line_threshold: int = 20


class LLMConfig(BaseModel):
    """Configuration for the hosted LLM providers, tried in ``providers`` order."""

    providers: list[str] = Field(
        default_factory=lambda: ["openai", "anthropic", "gemini"]
    )
    openai_model: str = "gpt-3.5-turbo"
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    gemini_model: str = "gemini-1.5-flash"
    openai_key_env: str = "OPENAI_API_KEY"
    anthropic_key_env: str = "ANTHROPIC_API_KEY"
    gemini_key_env: str = "GOOGLE_API_KEY"
    temperature: float = 0.1
    max_tokens: int = 4000
    timeout: float = 60.0


class ExtractionConfig(BaseModel):
    """Configuration for post-processing of extracted time blocks."""

    add_standard_blocks: bool = True
    default_duration: int = 60


class StorageConfig(BaseModel):
    """Configuration for the database and uploaded file storage."""

    database_url: str = "sqlite:///./timegrid.db"
    upload_dir: str = "uploads"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
