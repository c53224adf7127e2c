"""Core geometric types for image-space geometry.

This module defines the fundamental geometric types used throughout gerberscope:
- Point: An immutable 2D point
- BoundingBox: An axis-aligned bounding box
- Polygon: A closed vertex ring with area, winding and containment queries
- WindingDirection: Enum for ring winding direction
- Polarity: Dark (paint) or clear (erase) compositing mode
- MirrorAxis: Mirroring selection used by transforms
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, auto
from functools import cached_property
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gerberscope.core.transform import AffineTransform


class WindingDirection(Enum):
    """Ring winding direction in a Y-up coordinate system.

    DEGENERATE is used for rings with zero signed area, which legitimately
    occur under zero scale factors.
    """

    CLOCKWISE = auto()
    COUNTER_CLOCKWISE = auto()
    DEGENERATE = auto()

    @classmethod
    def from_area(cls, area: float) -> "WindingDirection":
        """Classify a signed area."""
        if area > 0.0:
            return cls.COUNTER_CLOCKWISE
        if area < 0.0:
            return cls.CLOCKWISE
        return cls.DEGENERATE


class Polarity(Enum):
    """Compositing mode: DARK adds material, CLEAR erases it."""

    DARK = auto()
    CLEAR = auto()

    def inverted(self) -> "Polarity":
        """Return the opposite polarity."""
        return Polarity.CLEAR if self is Polarity.DARK else Polarity.DARK


class MirrorAxis(Enum):
    """Mirroring selection.

    X mirrors along the X axis (negates X coordinates), Y negates Y
    coordinates and XY negates both.
    """

    NONE = auto()
    X = auto()
    Y = auto()
    XY = auto()

    @property
    def mirrors_x(self) -> bool:
        return self in (MirrorAxis.X, MirrorAxis.XY)

    @property
    def mirrors_y(self) -> bool:
        return self in (MirrorAxis.Y, MirrorAxis.XY)

    @classmethod
    def from_flags(cls, mirror_x: bool, mirror_y: bool) -> "MirrorAxis":
        """Build a mirror selection from two independent flags."""
        if mirror_x and mirror_y:
            return cls.XY
        if mirror_x:
            return cls.X
        if mirror_y:
            return cls.Y
        return cls.NONE


@dataclass(frozen=True, slots=True)
class Point:
    """A point in 2D space.

    Immutable and hashable for use in sets/dicts.

    Attributes:
        x: X coordinate
        y: Y coordinate
    """

    x: float
    y: float

    def to_tuple(self) -> tuple[float, float]:
        """Convert to simple (x, y) tuple."""
        return (self.x, self.y)

    def distance_to(self, other: "Point") -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def translated(self, dx: float, dy: float) -> "Point":
        """Return this point moved by (dx, dy)."""
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned bounding box.

    Attributes:
        min_x: Smallest X coordinate
        min_y: Smallest Y coordinate
        max_x: Largest X coordinate
        max_y: Largest Y coordinate
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> "BoundingBox":
        """Compute the bounding box of a set of points.

        Raises:
            ValueError: If no points are given
        """
        pts = list(points)
        if not pts:
            raise ValueError("Cannot compute bounds from empty point list")
        xs = [p.x for p in pts]
        ys = [p.y for p in pts]
        return cls(min(xs), min(ys), max(xs), max(ys))

    @property
    def min(self) -> Point:
        return Point(self.min_x, self.min_y)

    @property
    def max(self) -> Point:
        return Point(self.max_x, self.max_y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Point:
        return Point((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    def vertices(self) -> tuple[Point, Point, Point, Point]:
        """Corners in counter-clockwise order starting at the minimum corner."""
        return (
            Point(self.min_x, self.min_y),
            Point(self.max_x, self.min_y),
            Point(self.max_x, self.max_y),
            Point(self.min_x, self.max_y),
        )

    def union(self, other: "BoundingBox") -> "BoundingBox":
        """Smallest box containing both boxes."""
        return BoundingBox(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def contains(self, point: Point) -> bool:
        """Check whether a point lies inside or on the box."""
        return self.min_x <= point.x <= self.max_x and self.min_y <= point.y <= self.max_y

    def transformed(self, matrix: "AffineTransform") -> "BoundingBox":
        """Axis-aligned box of the transformed corners."""
        return BoundingBox.from_points(matrix.apply(v) for v in self.vertices())


@dataclass(frozen=True)
class Polygon:
    """A closed ring of vertices.

    Rings are stored explicitly closed: the last vertex equals the first.
    Vertex order is preserved exactly as built, so the sign of the area
    reflects the winding of the source geometry.

    Attributes:
        points: Ring vertices, first == last
    """

    points: tuple[Point, ...]

    @classmethod
    def closed(cls, points: Iterable[Point]) -> "Polygon":
        """Build a ring, appending the first vertex if the input is open."""
        pts = list(points)
        if pts and pts[0] != pts[-1]:
            pts.append(pts[0])
        return cls(tuple(pts))

    def __len__(self) -> int:
        return len(self.points)

    def signed_area(self) -> float:
        """Calculate signed area using the shoelace formula.

        Positive area means counter-clockwise winding, negative clockwise.
        Result is cached.
        """
        return self._signed_area

    @cached_property
    def _signed_area(self) -> float:
        pts = self.points
        n = len(pts)
        area = 0.0
        if n >= 3:
            for i in range(n):
                j = (i + 1) % n
                area += pts[i].x * pts[j].y
                area -= pts[j].x * pts[i].y
            area /= 2.0
        return area

    @property
    def winding(self) -> WindingDirection:
        return WindingDirection.from_area(self.signed_area())

    def distinct_vertex_count(self) -> int:
        """Number of distinct vertices, ignoring the closing duplicate."""
        return len(set(self.points))

    def bounding_box(self) -> BoundingBox:
        return BoundingBox.from_points(self.points)

    def winding_number(self, x: float, y: float) -> int:
        """Winding number of the ring around a point.

        Non-zero means the point is inside under the non-zero fill rule.
        """
        pts = self.points
        n = len(pts)
        wn = 0
        for i in range(n):
            a = pts[i]
            b = pts[(i + 1) % n]
            cross = (b.x - a.x) * (y - a.y) - (x - a.x) * (b.y - a.y)
            if a.y <= y:
                if b.y > y and cross > 0:
                    wn += 1
            elif b.y <= y and cross < 0:
                wn -= 1
        return wn

    def contains_point(self, x: float, y: float) -> bool:
        """Check if a point is inside the ring (non-zero rule)."""
        return self.winding_number(x, y) != 0

    def transformed(self, matrix: "AffineTransform") -> "Polygon":
        """Apply an affine transform to every vertex, keeping vertex order."""
        return Polygon(tuple(matrix.apply(p) for p in self.points))

    def translated(self, dx: float, dy: float) -> "Polygon":
        return Polygon(tuple(p.translated(dx, dy) for p in self.points))

    def reversed(self) -> "Polygon":
        """Same ring with opposite winding."""
        return Polygon(tuple(reversed(self.points)))
