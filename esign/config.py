"""
Configuration module.
Settings are read from environment variables (or a local .env file) and cached.
"""
import logging
from functools import lru_cache
from typing import Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """Parse '#rrggbb' (or 'rrggbb') into an RGB tuple."""
    s = value.strip().lstrip("#")
    if len(s) != 6:
        raise ValueError(f"Expected a #rrggbb colour, got: {value!r}")
    return int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16)


class Settings(BaseSettings):
    """Signing core settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Field placement (surface pixels)
    default_field_width: float = Field(default=150.0, alias="DEFAULT_FIELD_WIDTH")
    default_field_height: float = Field(default=50.0, alias="DEFAULT_FIELD_HEIGHT")
    field_inset: float = Field(
        default=5.0,
        alias="FIELD_INSET",
        description="Padding between a field border and its signature in the live preview",
    )

    # Rendering
    max_render_scale: float = Field(default=1.5, alias="MAX_RENDER_SCALE")
    export_render_scale: float = Field(
        default=2.0,
        alias="EXPORT_RENDER_SCALE",
        description="Scale used when pages must be rasterized for export",
    )
    placeholder_page_width: int = Field(default=600, alias="PLACEHOLDER_PAGE_WIDTH")
    placeholder_page_height: int = Field(default=800, alias="PLACEHOLDER_PAGE_HEIGHT")

    # Ink capture
    stroke_color: str = Field(default="#1f2937", alias="STROKE_COLOR")
    stroke_width: float = Field(default=2.0, alias="STROKE_WIDTH")

    # Export
    raster_jpeg_quality: int = Field(default=95, alias="RASTER_JPEG_QUALITY")
    temp_dir: str = Field(default="/tmp/esign", alias="TEMP_DIR")

    @field_validator(
        "default_field_width",
        "default_field_height",
        "max_render_scale",
        "export_render_scale",
        "stroke_width",
    )
    @classmethod
    def _must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @field_validator("placeholder_page_width", "placeholder_page_height")
    @classmethod
    def _page_size_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"page size must be positive, got {v}")
        return v

    @field_validator("raster_jpeg_quality")
    @classmethod
    def _quality_range(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError(f"JPEG quality must be within 1..100, got {v}")
        return v

    @field_validator("stroke_color")
    @classmethod
    def _valid_color(cls, v: str) -> str:
        parse_hex_color(v)
        return v

    @property
    def stroke_rgb(self) -> Tuple[int, int, int]:
        return parse_hex_color(self.stroke_color)

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        if not isinstance(level, int):
            logger.warning(f"Unknown LOG_LEVEL '{self.log_level}', using INFO")
            return logging.INFO
        return level


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
