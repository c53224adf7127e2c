"""Logging utilities for Gerberscope."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import structlog


@dataclass
class BuildStats:
    """Statistics from a geometry build."""

    commands_processed: int = 0
    primitives_emitted: int = 0
    skipped_count: int = 0
    snapped_closures: int = 0
    bridged_closures: int = 0
    errors: list[tuple[int | None, str]] = field(default_factory=list)
    start_time: float | None = None
    end_time: float | None = None

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def duration_seconds(self) -> float:
        """Calculate build duration."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return 0.0


def configure_logging(
    log_file: Path | None = None,
    console_level: str = "WARNING",
    file_level: str = "DEBUG",
    quiet: bool = False,
) -> structlog.stdlib.BoundLogger:
    """Configure structured logging.

    Gerberscope is a library, so nothing is written to disk unless a log
    file is requested.

    Args:
        log_file: Path to log file (console only if None)
        console_level: Logging level for console output
        file_level: Logging level for file output
        quiet: If True, suppress console output except errors

    Returns:
        Configured structlog logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(getattr(logging, file_level.upper()))
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
        )
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.ERROR if quiet else getattr(logging, console_level.upper()))
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("gerberscope")
    logger.info("Logging initialized", log_file=str(log_file) if log_file else None, level=console_level)

    return logger


class BuildLogger:
    """Logger for tracking build progress and statistics."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger if logger is not None else structlog.get_logger("gerberscope")
        self._stats = BuildStats()

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        return self._logger

    def log_build_start(self, command_count: int, aperture_count: int, start_time: float) -> None:
        """Log start of a build."""
        self._stats.start_time = start_time
        self._logger.debug("Build started", commands=command_count, apertures=aperture_count)

    def log_build_complete(self, end_time: float) -> None:
        """Log completed build with summary statistics."""
        self._stats.end_time = end_time
        self._logger.info(
            "Build complete",
            commands=self._stats.commands_processed,
            primitives=self._stats.primitives_emitted,
            skipped=self._stats.skipped_count,
            bridged=self._stats.bridged_closures,
            duration_ms=round(self._stats.duration_seconds * 1000.0, 2),
        )

    def log_command(self) -> None:
        self._stats.commands_processed += 1

    def log_primitives(self, count: int) -> None:
        self._stats.primitives_emitted += count

    def log_region_closed(self, command_index: int | None, rings: int, snapped: int, bridged: int) -> None:
        """Log a finished G36/G37 region."""
        self._logger.debug(
            "Region closed",
            command_index=command_index,
            rings=rings,
            snapped=snapped,
            bridged=bridged,
        )
        self._stats.snapped_closures += snapped
        self._stats.bridged_closures += bridged

    def log_primitive_skipped(self, command_index: int | None, error: Exception) -> None:
        """Log a per-primitive failure that was recovered by skipping."""
        self._logger.warning(
            "Primitive skipped",
            command_index=command_index,
            error=str(error),
            error_type=type(error).__name__,
        )
        self._stats.skipped_count += 1
        self._stats.errors.append((command_index, str(error)))

    def log_legacy_directive(self, command_index: int, directive: str, applied: bool) -> None:
        self._logger.debug("Legacy directive", command_index=command_index, directive=directive, applied=applied)

    @property
    def stats(self) -> BuildStats:
        """Get current build statistics."""
        return self._stats
