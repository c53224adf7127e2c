"""Arc and circle tessellation.

Curves are approximated by chords whose maximum deviation from the true
arc (the sagitta) stays under a configurable error bound. Generated
vertices lie exactly on the arc; the requested start and end points are
used verbatim so consecutive segments join without seams.
"""

import math

from gerberscope.config import TessellationConfig
from gerberscope.core.transform import AffineTransform
from gerberscope.domain import ArcDirection, Point, Polygon

TAU = 2.0 * math.pi

# Start/end coincidence below this fraction of the radius means a full circle.
_FULL_CIRCLE_RATIO = 1e-9


def sagitta(radius: float, chord_angle: float) -> float:
    """Maximum distance between an arc and its chord.

    Args:
        radius: Arc radius
        chord_angle: Angle subtended by the chord, in radians

    Returns:
        Sagitta length
    """
    return abs(radius) * (1.0 - math.cos(chord_angle / 2.0))


def arc_sweep(start: Point, end: Point, center: Point, direction: ArcDirection) -> float:
    """Signed sweep angle from start to end around center.

    Positive sweeps are counter-clockwise. Coincident start and end points
    describe a full circle.
    """
    a0 = math.atan2(start.y - center.y, start.x - center.x)
    a1 = math.atan2(end.y - center.y, end.x - center.x)
    radius = start.distance_to(center)
    full = start.distance_to(end) <= max(radius * _FULL_CIRCLE_RATIO, 1e-15)

    if direction is ArcDirection.COUNTER_CLOCKWISE:
        sweep = (a1 - a0) % TAU
        if full or sweep == 0.0:
            sweep = TAU
        return sweep

    sweep = (a0 - a1) % TAU
    if full or sweep == 0.0:
        sweep = TAU
    return -sweep


def transform_arc(
    start: Point,
    end: Point,
    center: Point,
    direction: ArcDirection,
    matrix: AffineTransform,
) -> tuple[Point, Point, Point, ArcDirection]:
    """Map an arc's defining points through a conformal transform.

    A mirroring transform (negative determinant) reverses the sense of
    rotation, so the sweep direction is flipped to keep the arc on the
    same side of its chord.
    """
    new_direction = direction.reversed() if matrix.is_mirroring else direction
    return matrix.apply(start), matrix.apply(end), matrix.apply(center), new_direction


class Tessellator:
    """Converts arcs and circles into polygon chains.

    Example:
        tessellator = Tessellator(TessellationConfig(), resolution=1e-6)
        ring = tessellator.circle(Point(0.0, 0.0), 1.0)
    """

    def __init__(self, config: TessellationConfig, resolution: float, scale: float = 1.0) -> None:
        """Initialize tessellator.

        Args:
            config: Error budget configuration
            resolution: Smallest coordinate increment of the image
            scale: Magnification applied to all output before display
        """
        self.config = config
        self.resolution = resolution
        self.scale = scale

    def scaled(self, factor: float) -> "Tessellator":
        """Tessellator for geometry that will be magnified by ``factor``."""
        return Tessellator(self.config, self.resolution, self.scale * factor)

    def error_bound(self, radius: float) -> float:
        return self.config.get_error_bound(radius, self.resolution)

    def segment_count(self, radius: float, sweep: float, scale: float = 1.0) -> int:
        """Number of chords needed for an arc.

        Args:
            radius: Arc radius in source units
            sweep: Sweep angle in radians (sign ignored)
            scale: Factor by which the result will later be magnified; the
                error bound applies to the magnified arc

        Returns:
            Chord count (0 for a zero sweep or zero radius)
        """
        sweep = abs(sweep)
        effective_radius = abs(radius) * scale * self.scale
        if sweep == 0.0 or effective_radius == 0.0:
            return 0

        error = self.error_bound(effective_radius)
        min_segments = self.config.min_segments
        if error >= effective_radius:
            return min_segments

        step = 2.0 * math.acos(1.0 - error / effective_radius)
        count = math.ceil(sweep / step)
        return max(count, min_segments)

    def arc(
        self,
        start: Point,
        end: Point,
        center: Point,
        direction: ArcDirection,
        scale: float = 1.0,
    ) -> list[Point]:
        """Tessellate an arc from start to end.

        The radius is interpolated from the start radius to the end radius
        so that slightly inconsistent Gerber arcs still land on ``end``.

        Returns:
            Vertices from ``start`` to ``end`` inclusive; a single point for
            a zero-radius arc
        """
        r0 = start.distance_to(center)
        r1 = end.distance_to(center)
        if r0 == 0.0 and r1 == 0.0:
            return [start] if start == end else [start, end]

        sweep = arc_sweep(start, end, center, direction)
        count = self.segment_count(max(r0, r1), sweep, scale)
        a0 = math.atan2(start.y - center.y, start.x - center.x)

        points = [start]
        for i in range(1, count):
            t = i / count
            angle = a0 + sweep * t
            radius = r0 + (r1 - r0) * t
            points.append(Point(center.x + radius * math.cos(angle), center.y + radius * math.sin(angle)))
        points.append(end)
        return points

    def circle(self, center: Point, radius: float, scale: float = 1.0) -> Polygon:
        """Tessellate a full circle as a closed counter-clockwise ring.

        The ring starts at angle zero and its last vertex is the very same
        point as its first. A zero radius collapses to the centre point.
        """
        radius = abs(radius)
        if radius == 0.0:
            return Polygon((center, center))

        count = max(self.segment_count(radius, TAU, scale), self.config.min_segments)
        points = [
            Point(center.x + radius * math.cos(TAU * i / count), center.y + radius * math.sin(TAU * i / count))
            for i in range(count)
        ]
        points.append(points[0])
        return Polygon(tuple(points))

    def circle_points(self, center: Point, radius: float, start_angle: float, sweep: float) -> list[Point]:
        """Vertices along a circle from ``start_angle`` over ``sweep`` radians, inclusive."""
        radius = abs(radius)
        if radius == 0.0:
            return [center]
        count = max(self.segment_count(radius, sweep), 1)
        return [
            Point(
                center.x + radius * math.cos(start_angle + sweep * i / count),
                center.y + radius * math.sin(start_angle + sweep * i / count),
            )
            for i in range(count + 1)
        ]
