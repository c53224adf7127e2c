"""Aperture resolution.

Turns aperture definitions into ordered sequences of signed polygons in
aperture-local coordinates (centred on the flash point). Standard shapes
become one dark polygon; an optional hole is an inner ring wound the
other way, so it leaves whatever lies beneath untouched. Macro
apertures are evaluated statement by statement against their bound
modifiers; each primitive contributes dark (exposure on) or clear
(exposure off) polygons in body order.

Key classes:
- SignedPolygon: A polygon with its exposure
- ResolvedAperture: Resolution result for one aperture
- ApertureResolver: Resolves and caches apertures for one image
"""

import math
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import ClassVar

import structlog

from gerberscope.core.tessellation import Tessellator
from gerberscope.core.transform import AffineTransform, compose_all
from gerberscope.domain import (
    Aperture,
    ApertureMacro,
    CircleShape,
    MacroPrimitive,
    MacroShape,
    MacroVariableAssignment,
    ObroundShape,
    Point,
    Polarity,
    Polygon,
    PolygonShape,
    PrimitiveCode,
    RectangleShape,
)
from gerberscope.exceptions import (
    ApertureError,
    InvalidModifierCount,
    UndefinedAperture,
    UnsupportedApertureKind,
)

ORIGIN = Point(0.0, 0.0)


@dataclass(frozen=True)
class SignedPolygon:
    """Polygon tagged with its exposure.

    Attributes:
        polygon: Outer ring
        polarity: Exposure of the filled area
        holes: Rings wound opposite to ``polygon``; under the non-zero rule
            they leave their area unpainted rather than clearing it
    """

    polygon: Polygon
    polarity: Polarity
    holes: tuple[Polygon, ...] = ()

    @property
    def rings(self) -> tuple[Polygon, ...]:
        return (self.polygon, *self.holes)


@dataclass(frozen=True)
class ResolvedAperture:
    """Resolved aperture in aperture-local coordinates.

    Attributes:
        aperture: The source definition
        polygons: Signed polygons in draw order
    """

    aperture: Aperture
    polygons: tuple[SignedPolygon, ...]

    @property
    def identifier(self) -> int:
        return self.aperture.identifier

    @property
    def outline(self) -> Polygon | None:
        """Outer polygon of a standard aperture, used for stroking."""
        if self.aperture.is_macro or not self.polygons:
            return None
        return self.polygons[0].polygon


def _rectangle(x0: float, y0: float, x1: float, y1: float) -> Polygon:
    """Counter-clockwise closed rectangle."""
    return Polygon.closed([Point(x0, y0), Point(x1, y0), Point(x1, y1), Point(x0, y1)])


def _rotated(polygons: list[SignedPolygon], degrees: float) -> list[SignedPolygon]:
    if degrees == 0.0:
        return polygons
    matrix = AffineTransform.rotation(math.radians(degrees))
    return [SignedPolygon(sp.polygon.transformed(matrix), sp.polarity) for sp in polygons]


def _exposure(value: float) -> Polarity:
    return Polarity.CLEAR if int(round(value)) == 0 else Polarity.DARK


class ApertureResolver:
    """Resolves apertures of one image into signed polygons.

    Resolution is a pure function of the aperture table, the macro
    templates and the tessellation budget; results are cached per aperture
    identifier for the lifetime of the resolver.

    Example:
        resolver = ApertureResolver(image.apertures, image.macros, tessellator)
        resolved = resolver.resolve(10)
    """

    # Required modifier counts for fixed-arity macro primitives.
    ARITY: ClassVar[dict[int, tuple[int, ...]]] = {
        PrimitiveCode.CIRCLE: (4, 5),
        PrimitiveCode.VECTOR_LINE_LEGACY: (7,),
        PrimitiveCode.VECTOR_LINE: (7,),
        PrimitiveCode.CENTER_LINE: (6,),
        PrimitiveCode.LOWER_LEFT_LINE: (6,),
        PrimitiveCode.POLYGON: (6,),
        PrimitiveCode.MOIRE: (9,),
        PrimitiveCode.THERMAL: (6,),
    }

    def __init__(
        self,
        apertures: dict[int, Aperture],
        macros: dict[str, ApertureMacro],
        tessellator: Tessellator,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.apertures = apertures
        self.macros = macros
        self.tessellator = tessellator
        self.logger = logger if logger is not None else structlog.get_logger("gerberscope")
        self._cache: dict[tuple[int, float], ResolvedAperture] = {}
        self._lock = threading.Lock()
        self._handlers: dict[int, Callable[[list[float], Tessellator], list[SignedPolygon]]] = {
            PrimitiveCode.CIRCLE: self._macro_circle,
            PrimitiveCode.VECTOR_LINE_LEGACY: self._macro_vector_line,
            PrimitiveCode.VECTOR_LINE: self._macro_vector_line,
            PrimitiveCode.CENTER_LINE: self._macro_center_line,
            PrimitiveCode.LOWER_LEFT_LINE: self._macro_lower_left_line,
            PrimitiveCode.OUTLINE: self._macro_outline,
            PrimitiveCode.POLYGON: self._macro_polygon,
            PrimitiveCode.MOIRE: self._macro_moire,
            PrimitiveCode.THERMAL: self._macro_thermal,
        }

    def get(self, identifier: int) -> Aperture:
        """Look up an aperture definition.

        Raises:
            UndefinedAperture: If the D-code is not in the table
        """
        aperture = self.apertures.get(identifier)
        if aperture is None:
            raise UndefinedAperture(identifier)
        return aperture

    def resolve(self, identifier: int, scale: float = 1.0) -> ResolvedAperture:
        """Resolve an aperture by identifier, using the cache.

        Args:
            identifier: Aperture D-code
            scale: Magnification the polygons will undergo; curves are
                tessellated finely enough for the magnified result

        Raises:
            ApertureError: If the aperture is undefined or cannot be resolved
        """
        key = (identifier, scale)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        resolved = self.resolve_aperture(self.get(identifier), scale)
        with self._lock:
            self._cache.setdefault(key, resolved)
        self.logger.debug(
            "Aperture resolved",
            aperture=identifier,
            kind=resolved.aperture.kind,
            polygons=len(resolved.polygons),
        )
        return resolved

    def resolve_all(
        self,
        identifiers: Iterable[int] | None = None,
        max_workers: int | None = None,
    ) -> dict[int, ResolvedAperture]:
        """Resolve several apertures on a thread pool.

        Apertures are independent, so the result is identical to resolving
        them one by one. Failures are logged and left out of the result;
        resolving the same aperture later raises the error again.

        Args:
            identifiers: D-codes to resolve (all apertures if None)
            max_workers: Maximum worker threads (None = auto)

        Returns:
            Mapping of D-code to resolved aperture
        """
        ids = list(self.apertures) if identifiers is None else list(identifiers)
        results: dict[int, ResolvedAperture] = {}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            pending = {executor.submit(self.resolve, ident): ident for ident in ids}
            for future in as_completed(pending):
                ident = pending[future]
                try:
                    results[ident] = future.result()
                except ApertureError as e:
                    self.logger.warning(
                        "Aperture resolution failed",
                        aperture=ident,
                        error=str(e),
                        error_type=type(e).__name__,
                    )

        return results

    def resolve_aperture(self, aperture: Aperture, scale: float = 1.0) -> ResolvedAperture:
        """Resolve one aperture definition without touching the cache."""
        tess = self.tessellator.scaled(scale)
        shape = aperture.shape

        if isinstance(shape, CircleShape):
            polygons = [SignedPolygon(tess.circle(ORIGIN, shape.diameter / 2.0), Polarity.DARK)]
        elif isinstance(shape, RectangleShape):
            hw, hh = shape.width / 2.0, shape.height / 2.0
            polygons = [SignedPolygon(_rectangle(-hw, -hh, hw, hh), Polarity.DARK)]
        elif isinstance(shape, ObroundShape):
            polygons = [SignedPolygon(self._obround(tess, shape.width, shape.height), Polarity.DARK)]
        elif isinstance(shape, PolygonShape):
            polygons = [SignedPolygon(self._regular_polygon(shape), Polarity.DARK)]
        elif isinstance(shape, MacroShape):
            polygons = self._evaluate_macro(tess, shape)
        else:
            raise UnsupportedApertureKind(type(shape).__name__, "unknown aperture shape")

        if aperture.hole_diameter:
            if aperture.is_macro:
                raise UnsupportedApertureKind("macro", "macro apertures take no hole")
            outer = polygons[0].polygon
            hole = tess.circle(ORIGIN, aperture.hole_diameter / 2.0)
            if hole.winding == outer.winding:
                hole = hole.reversed()
            polygons = [SignedPolygon(outer, Polarity.DARK, (hole,))]

        return ResolvedAperture(aperture=aperture, polygons=tuple(polygons))

    def _obround(self, tess: Tessellator, width: float, height: float) -> Polygon:
        """Stadium shape: two semicircular caps joined by straight sides."""
        if width == height:
            return tess.circle(ORIGIN, width / 2.0)

        if width > height:
            r = height / 2.0
            offset = width / 2.0 - r
            right = tess.circle_points(Point(offset, 0.0), r, -math.pi / 2.0, math.pi)
            left = tess.circle_points(Point(-offset, 0.0), r, math.pi / 2.0, math.pi)
            return Polygon.closed(right + left)

        r = width / 2.0
        offset = height / 2.0 - r
        top = tess.circle_points(Point(0.0, offset), r, 0.0, math.pi)
        bottom = tess.circle_points(Point(0.0, -offset), r, math.pi, math.pi)
        return Polygon.closed(top + bottom)

    def _regular_polygon(self, shape: PolygonShape) -> Polygon:
        if not 3 <= shape.sides <= 12:
            raise UnsupportedApertureKind("polygon", f"vertex count must be 3..12, got {shape.sides}")
        r = shape.diameter / 2.0
        start = math.radians(shape.rotation)
        return Polygon.closed(
            Point(
                r * math.cos(start + 2.0 * math.pi * i / shape.sides),
                r * math.sin(start + 2.0 * math.pi * i / shape.sides),
            )
            for i in range(shape.sides)
        )

    def _evaluate_macro(self, tess: Tessellator, shape: MacroShape) -> list[SignedPolygon]:
        macro = self.macros.get(shape.template)
        if macro is None:
            raise UndefinedAperture(shape.template)

        env: dict[int, float] = {i: value for i, value in enumerate(shape.modifiers, 1)}
        polygons: list[SignedPolygon] = []

        for statement in macro.statements:
            if isinstance(statement, MacroVariableAssignment):
                env[statement.number] = statement.expression.evaluate(env)
                continue

            if statement.code == PrimitiveCode.COMMENT:
                continue

            handler = self._handlers.get(statement.code)
            if handler is None:
                raise UnsupportedApertureKind(
                    f"macro primitive {statement.code}",
                    f"unknown primitive code in macro '{macro.name}'",
                )

            self._check_arity(statement, env)
            polygons.extend(handler(statement.evaluate(env), tess))

        return polygons

    def _check_arity(self, statement: MacroPrimitive, env: dict[int, float]) -> None:
        count = len(statement.modifiers)
        kind = f"macro primitive {statement.code}"

        if statement.code == PrimitiveCode.OUTLINE:
            if count < 2:
                raise InvalidModifierCount(kind, "at least 2", count)
            vertices = int(round(statement.modifiers[1].evaluate(env)))
            expected = 2 * (vertices + 1) + 3
            if count != expected:
                raise InvalidModifierCount(kind, str(expected), count)
            return

        allowed = self.ARITY[statement.code]
        if count not in allowed:
            raise InvalidModifierCount(kind, " or ".join(str(n) for n in allowed), count)

    def _macro_circle(self, m: list[float], tess: Tessellator) -> list[SignedPolygon]:
        exposure, diameter, cx, cy = m[:4]
        rotation = m[4] if len(m) > 4 else 0.0
        ring = tess.circle(Point(cx, cy), diameter / 2.0)
        return _rotated([SignedPolygon(ring, _exposure(exposure))], rotation)

    def _macro_vector_line(self, m: list[float], tess: Tessellator) -> list[SignedPolygon]:
        exposure, width, sx, sy, ex, ey, rotation = m
        dx, dy = ex - sx, ey - sy
        length = math.hypot(dx, dy)
        if length == 0.0:
            nx, ny = 0.0, 0.0
        else:
            nx, ny = -dy / length * width / 2.0, dx / length * width / 2.0
        ring = Polygon.closed([
            Point(sx - nx, sy - ny),
            Point(ex - nx, ey - ny),
            Point(ex + nx, ey + ny),
            Point(sx + nx, sy + ny),
        ])
        return _rotated([SignedPolygon(ring, _exposure(exposure))], rotation)

    def _macro_center_line(self, m: list[float], tess: Tessellator) -> list[SignedPolygon]:
        exposure, width, height, cx, cy, rotation = m
        ring = _rectangle(cx - width / 2.0, cy - height / 2.0, cx + width / 2.0, cy + height / 2.0)
        return _rotated([SignedPolygon(ring, _exposure(exposure))], rotation)

    def _macro_lower_left_line(self, m: list[float], tess: Tessellator) -> list[SignedPolygon]:
        exposure, width, height, x, y, rotation = m
        ring = _rectangle(x, y, x + width, y + height)
        return _rotated([SignedPolygon(ring, _exposure(exposure))], rotation)

    def _macro_outline(self, m: list[float], tess: Tessellator) -> list[SignedPolygon]:
        exposure = m[0]
        coords = m[2:-1]
        rotation = m[-1]
        points = [Point(coords[i], coords[i + 1]) for i in range(0, len(coords), 2)]
        return _rotated([SignedPolygon(Polygon.closed(points), _exposure(exposure))], rotation)

    def _macro_polygon(self, m: list[float], tess: Tessellator) -> list[SignedPolygon]:
        exposure, sides, cx, cy, diameter, rotation = m
        n = int(round(sides))
        if not 3 <= n <= 12:
            raise UnsupportedApertureKind("macro polygon", f"vertex count must be 3..12, got {n}")
        r = diameter / 2.0
        ring = Polygon.closed(
            Point(cx + r * math.cos(2.0 * math.pi * i / n), cy + r * math.sin(2.0 * math.pi * i / n))
            for i in range(n)
        )
        return _rotated([SignedPolygon(ring, _exposure(exposure))], rotation)

    def _macro_moire(self, m: list[float], tess: Tessellator) -> list[SignedPolygon]:
        cx, cy, outer, thickness, gap, max_rings, cross_thickness, cross_length, rotation = m
        center = Point(cx, cy)
        polygons: list[SignedPolygon] = []

        diameter = outer
        for _ in range(int(round(max_rings))):
            if diameter <= 0.0:
                break
            polygons.append(SignedPolygon(tess.circle(center, diameter / 2.0), Polarity.DARK))
            inner = diameter - 2.0 * thickness
            if inner > 0.0:
                polygons.append(SignedPolygon(tess.circle(center, inner / 2.0), Polarity.CLEAR))
            diameter = inner - 2.0 * gap

        if cross_thickness > 0.0 and cross_length > 0.0:
            ht, hl = cross_thickness / 2.0, cross_length / 2.0
            polygons.append(SignedPolygon(_rectangle(cx - hl, cy - ht, cx + hl, cy + ht), Polarity.DARK))
            polygons.append(SignedPolygon(_rectangle(cx - ht, cy - hl, cx + ht, cy + hl), Polarity.DARK))

        return _rotated(polygons, rotation)

    def _macro_thermal(self, m: list[float], tess: Tessellator) -> list[SignedPolygon]:
        """Four ring quadrants separated by a cross-shaped gap."""
        cx, cy, outer, inner, gap, rotation = m
        ro, ri, g = outer / 2.0, max(inner / 2.0, 0.0), gap / 2.0
        if ro <= ri or 2.0 * g * g >= ro * ro:
            return []

        center = Point(cx, cy)
        alpha = math.asin(g / ro)
        quadrant = tess.circle_points(center, ro, alpha, math.pi / 2.0 - 2.0 * alpha)
        if ri * ri > 2.0 * g * g:
            beta = math.asin(g / ri)
            quadrant += tess.circle_points(center, ri, math.pi / 2.0 - beta, -(math.pi / 2.0 - 2.0 * beta))
        else:
            quadrant.append(Point(cx + g, cy + g))
        first = Polygon.closed(quadrant)

        polygons = []
        for k in range(4):
            turn = compose_all([
                AffineTransform.translation(-cx, -cy),
                AffineTransform.rotation(k * math.pi / 2.0),
                AffineTransform.translation(cx, cy),
            ])
            polygons.append(SignedPolygon(first.transformed(turn), Polarity.DARK))

        return _rotated(polygons, rotation)
