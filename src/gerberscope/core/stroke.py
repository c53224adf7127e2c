"""Stroke outlines for D01 draws outside regions.

A stroke is the area swept by an aperture moving along a path segment.
Straight strokes of a convex aperture are the convex hull of the aperture
placed at both ends. Arc strokes are supported for circular apertures and
become an annular sector with round caps.

All functions are pure and work in path coordinates; callers map the
result into image space afterwards.
"""

import math

from gerberscope.core.tessellation import Tessellator, arc_sweep
from gerberscope.domain import ArcDirection, Point, Polygon


def _cross(o: Point, a: Point, b: Point) -> float:
    return (a.x - o.x) * (b.y - o.y) - (a.y - o.y) * (b.x - o.x)


def convex_hull(points: list[Point]) -> list[Point]:
    """Convex hull using Andrew's monotone chain.

    Args:
        points: Input points (any order, duplicates allowed)

    Returns:
        Hull vertices in counter-clockwise order, without repeating the
        first vertex. Collinear points are dropped.

    Examples:
        >>> hull = convex_hull([Point(0, 0), Point(1, 0), Point(1, 1), Point(0, 1), Point(0.5, 0.5)])
        >>> len(hull)
        4
    """
    pts = sorted(set(points), key=lambda p: (p.x, p.y))
    if len(pts) <= 2:
        return pts

    lower: list[Point] = []
    for p in pts:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)

    upper: list[Point] = []
    for p in reversed(pts):
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)

    return lower[:-1] + upper[:-1]


def line_stroke(outline: Polygon, start: Point, end: Point) -> Polygon:
    """Area swept by a convex aperture outline moving in a straight line.

    Args:
        outline: Aperture outline centred on the origin
        start: Start of the draw
        end: End of the draw

    Returns:
        Closed counter-clockwise ring
    """
    placed = [p.translated(start.x, start.y) for p in outline.points]
    if end != start:
        placed += [p.translated(end.x, end.y) for p in outline.points]
    return Polygon.closed(convex_hull(placed))


def arc_stroke(
    tessellator: Tessellator,
    start: Point,
    end: Point,
    center: Point,
    direction: ArcDirection,
    width: float,
) -> Polygon:
    """Area swept by a circular aperture along an arc.

    The outline runs along the outer arc, around a semicircular cap at the
    end, back along the inner arc and around the start cap. For a full
    circle this yields an annulus whose inner ring winds opposite to the
    outer one.

    Args:
        tessellator: Curve tessellator
        start: Arc start
        end: Arc end
        center: Arc centre
        direction: Sweep direction
        width: Aperture diameter

    Returns:
        Closed counter-clockwise ring
    """
    sweep = arc_sweep(start, end, center, direction)
    if sweep < 0.0:
        start, end, sweep = end, start, -sweep

    radius = start.distance_to(center)
    half = width / 2.0
    a0 = math.atan2(start.y - center.y, start.x - center.x)
    a1 = a0 + sweep
    cap_end = Point(center.x + radius * math.cos(a1), center.y + radius * math.sin(a1))
    cap_start = Point(center.x + radius * math.cos(a0), center.y + radius * math.sin(a0))

    points = tessellator.circle_points(center, radius + half, a0, sweep)
    points += tessellator.circle_points(cap_end, half, a1, math.pi)[1:-1]
    points += tessellator.circle_points(center, max(radius - half, 0.0), a1, -sweep)
    points += tessellator.circle_points(cap_start, half, a0 + math.pi, math.pi)[1:-1]
    return Polygon.closed(points)
