"""
Configuration for ShelfReader.

Settings are grouped per component and loaded from environment variables:
- Segmentation limits (aspect ratio, area fraction, segment cap, pixel budget)
- OCR engine pool (language, tessdata path, parallelism)
- Parsing heuristics (base confidence, author tokens)
- Catalog lookup endpoint
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse

from shelfreader.exceptions import ConfigurationError


ENV_PREFIX = "SHELFREADER_"

# Hard ceiling for the pixel budget, regardless of configuration
MAX_IMAGE_PIXELS_CEILING = 50_000_000


def _env(name: str) -> Optional[str]:
    value = os.getenv(ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _default_parallelism() -> int:
    return max(1, os.cpu_count() or 1)


@dataclass
class SegmentationConfig:
    """Bounds used to accept contour regions as book spines."""

    # Width / height of the upright bounding box
    min_aspect_ratio: float = 0.1
    max_aspect_ratio: float = 10.0

    # Bounding box area relative to image area
    min_area_fraction: float = 0.0025
    max_area_fraction: float = 0.9

    # 0 disables the cap
    max_segments: int = 64
    max_image_pixels: int = 25_000_000

    def validate(self) -> list[str]:
        errors = []
        if not 0 < self.max_image_pixels <= MAX_IMAGE_PIXELS_CEILING:
            errors.append(
                f"segmentation.max_image_pixels must be between 1 and {MAX_IMAGE_PIXELS_CEILING:,}"
            )
        if self.min_aspect_ratio <= 0 or self.min_aspect_ratio > self.max_aspect_ratio:
            errors.append("segmentation aspect ratio bounds must be positive with min <= max")
        if self.min_area_fraction < 0 or self.min_area_fraction > self.max_area_fraction:
            errors.append("segmentation area fraction bounds must be non-negative with min <= max")
        if self.max_segments < 0:
            errors.append("segmentation.max_segments must not be negative")
        return errors

    @classmethod
    def from_env(cls) -> "SegmentationConfig":
        return cls(
            min_aspect_ratio=float(_env("SEGMENTATION_MIN_ASPECT_RATIO") or cls.min_aspect_ratio),
            max_aspect_ratio=float(_env("SEGMENTATION_MAX_ASPECT_RATIO") or cls.max_aspect_ratio),
            min_area_fraction=float(_env("SEGMENTATION_MIN_AREA_FRACTION") or cls.min_area_fraction),
            max_area_fraction=float(_env("SEGMENTATION_MAX_AREA_FRACTION") or cls.max_area_fraction),
            max_segments=int(_env("SEGMENTATION_MAX_SEGMENTS") or cls.max_segments),
            max_image_pixels=int(_env("SEGMENTATION_MAX_IMAGE_PIXELS") or cls.max_image_pixels),
        )


@dataclass
class OCRConfig:
    """Tesseract engine pool settings."""

    data_path: str = ""
    language: str = "eng"
    max_parallelism: int = field(default_factory=_default_parallelism)
    page_segmentation_mode: int = 3  # fully automatic page segmentation

    @property
    def parallelism(self) -> int:
        return max(1, self.max_parallelism)

    def validate(self) -> list[str]:
        errors = []
        if not self.language:
            errors.append("ocr.language must be configured")
        if not 0 <= self.page_segmentation_mode <= 13:
            errors.append("ocr.page_segmentation_mode must be between 0 and 13")
        return errors

    @classmethod
    def from_env(cls) -> "OCRConfig":
        parallelism = _env("OCR_MAX_PARALLELISM")
        return cls(
            data_path=_env("OCR_DATA_PATH") or "",
            language=_env("OCR_LANGUAGE") or cls.language,
            max_parallelism=int(parallelism) if parallelism else _default_parallelism(),
            page_segmentation_mode=int(_env("OCR_PSM") or cls.page_segmentation_mode),
        )


@dataclass
class ParsingConfig:
    """Heuristics for turning OCR text into a title and author."""

    base_confidence: float = 0.35
    author_tokens: tuple[str, ...] = ("by", "author", "edited by")
    alternative_title_threshold: float = 90.0

    def validate(self) -> list[str]:
        errors = []
        if not 0.0 <= self.base_confidence <= 1.0:
            errors.append("parsing.base_confidence must be between 0 and 1")
        if any(not token.strip() for token in self.author_tokens):
            errors.append("parsing.author_tokens must not contain blank entries")
        return errors

    @classmethod
    def from_env(cls) -> "ParsingConfig":
        tokens = _env("PARSING_AUTHOR_TOKENS")
        return cls(
            base_confidence=float(_env("PARSING_BASE_CONFIDENCE") or cls.base_confidence),
            author_tokens=(
                tuple(t.strip() for t in tokens.split(",") if t.strip())
                if tokens else cls.author_tokens
            ),
        )


@dataclass
class LookupConfig:
    """Open Library catalog lookup settings."""

    base_url: str = "https://openlibrary.org/"
    timeout_seconds: float = 10.0
    max_results: int = 5

    def validate(self) -> list[str]:
        errors = []
        parsed = urlparse(self.base_url)
        if not parsed.scheme or not parsed.netloc:
            errors.append("lookup.base_url must be a valid absolute URL")
        elif parsed.scheme.lower() != "https":
            errors.append("lookup.base_url must use HTTPS")
        if self.timeout_seconds <= 0:
            errors.append("lookup.timeout_seconds must be positive")
        if self.max_results <= 0:
            errors.append("lookup.max_results must be positive")
        return errors

    @classmethod
    def from_env(cls) -> "LookupConfig":
        return cls(
            base_url=_env("LOOKUP_BASE_URL") or cls.base_url,
            timeout_seconds=float(_env("LOOKUP_TIMEOUT_SECONDS") or cls.timeout_seconds),
        )


@dataclass
class Settings:
    """Application settings loaded from environment."""

    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    parsing: ParsingConfig = field(default_factory=ParsingConfig)
    lookup: LookupConfig = field(default_factory=LookupConfig)
    log_level: str = "INFO"

    def validate(self) -> "Settings":
        """Raise ConfigurationError listing every violated rule."""
        errors = (
            self.segmentation.validate()
            + self.ocr.validate()
            + self.parsing.validate()
            + self.lookup.validate()
        )
        if errors:
            raise ConfigurationError(errors)
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            segmentation=SegmentationConfig.from_env(),
            ocr=OCRConfig.from_env(),
            parsing=ParsingConfig.from_env(),
            lookup=LookupConfig.from_env(),
            log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        )
