"""Configuration management for the receipt pipeline.

Loads and validates YAML configuration with defaults for image
compression, OCR, and object storage settings.
"""

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

TEN_YEARS_SECONDS = 60 * 60 * 24 * 365 * 10


class CompressionConfig(BaseModel):
    """Bounds applied to receipt photos before upload."""

    max_width: int = Field(default=1200, gt=0)
    quality: float = Field(default=0.8, gt=0.0, le=1.0)


class OCRConfig(BaseModel):
    """Configuration for the Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "por"
    psm: int = 3


class StorageConfig(BaseModel):
    """Object storage backend and signed URL lifetimes."""

    backend: Literal["local", "supabase"] = "local"
    bucket: str = "comprovantes"

    local_root: str = "data/storage"
    public_base_url: str = "http://localhost:8000/files"
    signing_secret: str = "change-me"

    supabase_url: str | None = None
    supabase_key: str | None = None

    receipt_url_ttl: int = Field(default=TEN_YEARS_SECONDS, gt=0)
    view_url_ttl: int = Field(default=3600, gt=0)
    cache_control: str = "3600"
    timeout: float = 30.0


class AppConfig(BaseModel):
    """Top-level application configuration."""

    compression: CompressionConfig = Field(default_factory=CompressionConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
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
