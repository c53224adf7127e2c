"""Path segments and region contours.

A region boundary arrives as a sequence of MoveTo / LineTo / ArcTo
segments. A Contour groups the segments of one boundary starting at a
single MoveTo.
"""

from dataclasses import dataclass, field
from enum import Enum, auto

from gerberscope.domain.geometry import Point


class ArcDirection(Enum):
    """Sweep direction of a circular arc."""

    CLOCKWISE = auto()
    COUNTER_CLOCKWISE = auto()

    def reversed(self) -> "ArcDirection":
        if self is ArcDirection.CLOCKWISE:
            return ArcDirection.COUNTER_CLOCKWISE
        return ArcDirection.CLOCKWISE


@dataclass(frozen=True)
class MoveTo:
    point: Point


@dataclass(frozen=True)
class LineTo:
    point: Point


@dataclass(frozen=True)
class ArcTo:
    """Circular arc from the current point to ``point`` around ``center``."""

    point: Point
    center: Point
    direction: ArcDirection


PathSegment = MoveTo | LineTo | ArcTo


@dataclass
class Contour:
    """Ordered segments forming one region boundary.

    The first segment is always a MoveTo. A contour is considered closed
    once its end point coincides with its start point.

    Attributes:
        segments: Segments in draw order
        command_index: Index of the command that started the contour
    """

    segments: list[PathSegment] = field(default_factory=list)
    command_index: int | None = None

    @property
    def start_point(self) -> Point:
        return self.segments[0].point

    @property
    def end_point(self) -> Point:
        return self.segments[-1].point

    @property
    def drawn_segment_count(self) -> int:
        """Number of LineTo/ArcTo segments."""
        return sum(1 for s in self.segments if not isinstance(s, MoveTo))

    def closing_gap(self) -> float:
        """Distance between the last vertex and the first vertex."""
        if not self.segments:
            return 0.0
        return self.end_point.distance_to(self.start_point)
