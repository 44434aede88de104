"""Configuration management for the ID verification system.

Loads and validates YAML configuration with sensible defaults for OCR,
field parsing, verification policy thresholds, and storage settings.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)


class OCRConfig(BaseModel):
    """Configuration for the Tesseract text extractor."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    pdf_dpi: int = 300
    max_workers: int = Field(default=2, ge=1)


class ParsingConfig(BaseModel):
    """Configuration for ID field parsing."""

    rules_path: str = "configs/id_rules.yaml"


class VerificationPolicy(BaseModel):
    """Business risk thresholds used by the matcher and decision engine.

    Score thresholds are inclusive lower bounds; the ``*_below`` values
    raise a flag when a similarity score falls strictly under them.
    """

    auto_approve_min_score: int = Field(default=95, ge=0, le=100)
    minor_review_min_score: int = Field(default=80, ge=0, le=100)
    multiple_review_min_score: int = Field(default=60, ge=0, le=100)

    name_warning_below: int = Field(default=70, ge=0, le=100)
    name_error_below: int = Field(default=50, ge=0, le=100)
    address_warning_below: int = Field(default=60, ge=0, le=100)
    address_error_below: int = Field(default=40, ge=0, le=100)
    state_mismatch_score: int = Field(default=50, ge=0, le=100)

    expiration_date_formats: list[str] = Field(
        default_factory=lambda: ["%m/%d/%Y", "%d/%m/%Y", "%Y-%m-%d"]
    )

    @model_validator(mode="after")
    def _check_ordering(self) -> "VerificationPolicy":
        if self.name_error_below > self.name_warning_below:
            raise ValueError("name_error_below must not exceed name_warning_below")
        if self.address_error_below > self.address_warning_below:
            raise ValueError(
                "address_error_below must not exceed address_warning_below"
            )
        return self


class StorageConfig(BaseModel):
    """Configuration for the SQLite application and status store."""

    database_path: str = "data/idverify.db"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    parsing: ParsingConfig = Field(default_factory=ParsingConfig)
    policy: VerificationPolicy = Field(default_factory=VerificationPolicy)
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
