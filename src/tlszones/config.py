"""tlszones configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files. Values are fixed at invocation start; a pipeline run never
mutates its settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from tlszones.zoning.types import Zone

RGB = tuple[int, int, int]


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        frozen=True,
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Zoning
    MARGIN_DISTANCE: float = Field(default=500.0, gt=0)  # physical units (um)
    LOCK_NEW_ANNOTATIONS: bool = True
    CALIBRATION_REL_TOL: float = Field(default=1e-4, ge=0)
    STRICT_LABELS: bool = False  # duplicate Tumor/Tissue raise instead of warn
    BUFFER_QUAD_SEGS: int = Field(default=16, ge=1)

    # Input labels (matched case-insensitively)
    TUMOR_LABEL: str = "Tumor"
    TISSUE_LABEL: str = "Tissue"
    TLS_LABEL: str = "TLS"

    # Zone display colors
    COLOR_CENTER: RGB = (255, 0, 0)
    COLOR_INNER_MARGIN: RGB = (255, 165, 0)
    COLOR_OUTER_MARGIN: RGB = (255, 255, 0)
    COLOR_STROMA: RGB = (0, 128, 0)

    # Labels applied to classified TLS regions
    LABEL_CENTER: str = "TLS_Center"
    LABEL_INNER_MARGIN: str = "TLS_InnerMargin"
    LABEL_OUTER_MARGIN: str = "TLS_OuterMargin"
    LABEL_STROMA: str = "TLS_Stroma"
    LABEL_NO_OVERLAP: str | None = None  # None leaves unclassified TLS untouched

    @field_validator(
        "COLOR_CENTER",
        "COLOR_INNER_MARGIN",
        "COLOR_OUTER_MARGIN",
        "COLOR_STROMA",
    )
    @classmethod
    def _check_rgb(cls, value: RGB) -> RGB:
        if any(component < 0 or component > 255 for component in value):
            raise ValueError(f"RGB components must be in [0, 255], got {value}")
        return value

    @field_validator("LOG_FORMAT")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("console", "json"):
            raise ValueError(f"LOG_FORMAT must be 'console' or 'json', got {value!r}")
        return value

    def color_for(self, zone: Zone) -> RGB:
        """Return the configured display color for a zone."""
        color: RGB = getattr(self, f"COLOR_{zone.name}")
        return color

    def label_for(self, zone: Zone) -> str:
        """Return the classification label applied to TLS regions in a zone."""
        label: str = getattr(self, f"LABEL_{zone.name}")
        return label


# Singleton instance for import convenience
settings = Settings()
