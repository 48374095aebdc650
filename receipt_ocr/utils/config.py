"""Configuration management for the receipt OCR pipeline.

Loads and validates YAML configuration with sensible defaults
for preprocessing, recognition, field extraction, and the AI service.
"""

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: list[str] = [
    "Yemek",
    "Ulaşım",
    "Faturalar",
    "Alışveriş",
    "Eğlence",
    "Sağlık",
    "Eğitim",
    "Kira",
    "Diğer",
]

DEFAULT_CHAR_WHITELIST = (
    "0123456789"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
    "ÇĞİÖŞÜçğıöşü"
    ".,:;-/()*%#&+=@"
    "₺$€£"
)


class PreprocessingConfig(BaseModel):
    """Configuration for the image preprocessing pipeline."""

    resize_enabled: bool = True
    min_dimension: int = Field(default=1200, gt=0)
    max_dimension: int = Field(default=3000, gt=0)
    contrast_enabled: bool = True
    contrast: float = Field(default=1.8, gt=0)
    brightness: float = 20.0
    sharpen_enabled: bool = True
    sharpen_center: float = Field(default=5.0, ge=5.0)
    binarize_enabled: bool = True
    binarize_threshold: int = Field(default=135, ge=0, le=255)
    binarize_mix: float = Field(default=0.4, ge=0.0, le=1.0)


class OCRConfig(BaseModel):
    """Configuration for the Tesseract recognition engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "tur+eng"
    psm: int = 11
    oem: int = 3
    preserve_interword_spaces: bool = True
    char_whitelist: str | None = DEFAULT_CHAR_WHITELIST


class ExtractionConfig(BaseModel):
    """Configuration for heuristic extraction and result merging."""

    mode: Literal["heuristic", "ai_text", "ai_image", "hybrid"] = "ai_text"
    max_candidates: int = Field(default=5, ge=1)
    vendor_scan_lines: int = 3
    vendor_min_length: int = 6
    vendor_max_length: int = 99


class AIConfig(BaseModel):
    """Configuration for the Gemini generative model service."""

    enabled: bool = True
    api_key: str | None = None
    model: str = "gemini-2.0-flash-exp"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    temperature: float = 0.1
    text_max_output_tokens: int = 500
    image_max_output_tokens: int = 1000
    timeout: float | None = None
    categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))

    @property
    def is_configured(self) -> bool:
        """Whether AI extraction can be attempted at all."""
        return self.enabled and bool(self.api_key)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    The Gemini API key falls back to the ``GEMINI_API_KEY`` environment
    variable when the file does not set one.

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
        config = AppConfig(**raw)
    else:
        logger.info("No config file found at %s, using defaults", path)
        config = AppConfig()

    if not config.ai.api_key:
        config.ai.api_key = os.environ.get("GEMINI_API_KEY") or None
    return config
