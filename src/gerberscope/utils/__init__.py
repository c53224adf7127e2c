"""Utility functions for gerberscope.

This module provides utility functions including:

- Logging setup and configuration
- Build statistics tracking
"""

from gerberscope.utils.logging import (
    BuildLogger,
    BuildStats,
    configure_logging,
)

__all__ = [
    "BuildLogger",
    "BuildStats",
    "configure_logging",
]
