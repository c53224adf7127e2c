"""Configuration management for gerberscope.

This module provides configuration management using Pydantic models.

Key classes:
- TessellationConfig: Arc/circle chord error budget
- RegionConfig: Region closing tolerance and policy
- LimitsConfig: Command and vertex budgets
- TransformConfig: Legacy image directive handling
- ProcessingConfig: Parallel aperture resolution
- LoggingConfig: Logging settings
- GerberScopeSettings: Main settings
"""

from gerberscope.config.settings import (
    ClosingPolicy,
    GerberScopeSettings,
    LegacyDirectiveMode,
    LimitsConfig,
    LoggingConfig,
    ProcessingConfig,
    RegionConfig,
    TessellationConfig,
    TransformConfig,
    get_default_settings,
)

__all__ = [
    "ClosingPolicy",
    "GerberScopeSettings",
    "LegacyDirectiveMode",
    "LimitsConfig",
    "LoggingConfig",
    "ProcessingConfig",
    "RegionConfig",
    "TessellationConfig",
    "TransformConfig",
    "get_default_settings",
]
