"""Configuration settings for Gerberscope."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class ClosingPolicy(str, Enum):
    """What to do with a region contour whose gap exceeds the closing tolerance."""

    BRIDGE = "bridge"
    STRICT = "strict"


class LegacyDirectiveMode(str, Enum):
    """Whether deprecated image directives (MI, SF, OF, IR, AS, IP) are honoured."""

    INTERPRET = "interpret"
    IGNORE = "ignore"


class TessellationConfig(BaseModel):
    """Configuration for arc and circle tessellation.

    Error values are in the image's own unit (inch or millimetre). The
    effective chord error bound for an arc of radius r is
    ``max(max_error, relative_error * r)``.
    """

    max_error: float | None = Field(
        default=None,
        gt=0.0,
        description="Absolute chord-to-arc error bound (None = one format resolution unit)",
    )
    relative_error: float = Field(
        default=0.001,
        ge=0.0,
        le=0.5,
        description="Chord-to-arc error bound as a fraction of the arc radius",
    )
    min_segments: int = Field(
        default=3,
        ge=3,
        le=64,
        description="Minimum segment count for any arc with a non-zero sweep",
    )

    def get_error_bound(self, radius: float, resolution: float) -> float:
        """Get the chord error bound for an arc of the given radius.

        Args:
            radius: Arc radius in image units
            resolution: Smallest representable coordinate increment

        Returns:
            Maximum allowed sagitta
        """
        absolute = self.max_error if self.max_error is not None else resolution
        return max(absolute, self.relative_error * abs(radius))


class RegionConfig(BaseModel):
    """Configuration for region contour closing."""

    closing_tolerance: float | None = Field(
        default=None,
        ge=0.0,
        description="Maximum gap snapped closed (None = one format resolution unit)",
    )
    closing_policy: ClosingPolicy = Field(
        default=ClosingPolicy.BRIDGE,
        description="Policy for gaps above the closing tolerance",
    )

    def get_closing_tolerance(self, resolution: float) -> float:
        """Get the closing tolerance for an image with the given resolution."""
        if self.closing_tolerance is None:
            return resolution
        return self.closing_tolerance


class LimitsConfig(BaseModel):
    """Upper bounds that keep a single build finite."""

    max_commands: int = Field(
        default=5_000_000,
        ge=1,
        description="Maximum number of commands processed per build",
    )
    max_vertices: int = Field(
        default=50_000_000,
        ge=1,
        description="Maximum number of vertices emitted per build",
    )


class TransformConfig(BaseModel):
    """Configuration for image-level transforms."""

    legacy_directives: LegacyDirectiveMode = Field(
        default=LegacyDirectiveMode.IGNORE,
        description="Deprecated MI/SF/OF/IR/AS/IP directives are skipped unless set to INTERPRET",
    )


class ProcessingConfig(BaseModel):
    """Configuration for optional parallel work."""

    max_workers: int | None = Field(
        default=None,
        description="Max worker threads for aperture resolution (None = auto)",
    )
    parallel_apertures: bool = Field(
        default=False,
        description="Resolve every aperture on a thread pool before walking the commands",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    log_file: Path | None = Field(
        default=None,
        description="Path to log file (None = console only)",
    )
    log_level: str = Field(
        default="WARNING",
        description="Console log level",
    )
    file_log_level: str = Field(
        default="DEBUG",
        description="File log level (more verbose)",
    )


class GerberScopeSettings(BaseModel):
    """Main application settings."""

    tessellation: TessellationConfig = Field(default_factory=TessellationConfig)
    region: RegionConfig = Field(default_factory=RegionConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    transform: TransformConfig = Field(default_factory=TransformConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_settings() -> GerberScopeSettings:
    """Get default application settings."""
    return GerberScopeSettings()
