"""Region contour construction (G36/G37).

Segments between G36 and G37 are collected into contours and tessellated
into closed rings. A contour closes when it returns to its first vertex,
when a D02 move starts the next contour, or when the region ends.

Generators such as EasyEDA end a contour on a vertex that only
approximately repeats the first one, or omit the closing segment
altogether. The closing tolerance handles both: a gap below the tolerance
is snapped shut, a larger gap is bridged with a synthetic edge (or
rejected under the strict policy).
"""

from enum import Enum, auto

import structlog

from gerberscope.config import ClosingPolicy
from gerberscope.core.tessellation import Tessellator
from gerberscope.domain import ArcDirection, ArcTo, Contour, LineTo, MoveTo, Point, Polygon
from gerberscope.exceptions import DegenerateRegion, UnclosableRegion


class RegionState(Enum):
    """Contour state of a region builder."""

    IDLE = auto()
    OPEN = auto()
    CLOSED = auto()


class RegionBuilder:
    """Builds the rings of one region.

    Contours that fail to close are dropped individually; the builder
    stays usable and the remaining contours of the region are kept.

    Example:
        builder = RegionBuilder(tessellator, closing_tolerance=1e-6, start=Point(2, 3))
        builder.line_to(Point(7, 3))
        builder.line_to(Point(7, 7))
        builder.line_to(Point(2, 7))
        builder.line_to(Point(2, 3))
        rings = builder.finish()
    """

    def __init__(
        self,
        tessellator: Tessellator,
        closing_tolerance: float,
        policy: ClosingPolicy = ClosingPolicy.BRIDGE,
        start: Point | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize region builder.

        Args:
            tessellator: Tessellator for arc segments
            closing_tolerance: Gaps strictly below this are snapped shut
            policy: What to do with larger gaps
            start: Current point when the region begins
            logger: Logger for closing diagnostics
        """
        self.tessellator = tessellator
        self.closing_tolerance = closing_tolerance
        self.policy = policy
        self.logger = logger if logger is not None else structlog.get_logger("gerberscope")

        self.state = RegionState.IDLE
        self.current_point = start
        self.contour: Contour | None = None
        self.rings: list[Polygon] = []
        self.snapped_count = 0
        self.bridged_count = 0

    def move_to(self, point: Point, command_index: int | None = None) -> None:
        """Start a new contour, implicitly closing an open one.

        Raises:
            RegionError: If the open contour cannot be closed; the new
                contour is started regardless
        """
        try:
            self._close_open_contour()
        finally:
            self._start(point, command_index)

    def line_to(self, point: Point, command_index: int | None = None) -> None:
        """Append a straight segment to the open contour."""
        self._ensure_open(command_index)
        self.contour.segments.append(LineTo(point))
        self._advance(point)

    def arc_to(
        self,
        point: Point,
        center: Point,
        direction: ArcDirection,
        command_index: int | None = None,
    ) -> None:
        """Append a circular arc segment to the open contour."""
        self._ensure_open(command_index)
        self.contour.segments.append(ArcTo(point, center, direction))
        self._advance(point)

    def finish(self) -> list[Polygon]:
        """Close the open contour (if any) and return all rings.

        Raises:
            RegionError: If the last contour cannot be closed; rings built
                so far remain available on ``rings``
        """
        try:
            self._close_open_contour()
        finally:
            self.state = RegionState.CLOSED
        return self.rings

    def _start(self, point: Point, command_index: int | None) -> None:
        self.contour = Contour([MoveTo(point)], command_index)
        self.current_point = point
        self.state = RegionState.OPEN

    def _ensure_open(self, command_index: int | None) -> None:
        if self.state is not RegionState.OPEN:
            start = self.current_point if self.current_point is not None else Point(0.0, 0.0)
            self._start(start, command_index)

    def _advance(self, point: Point) -> None:
        self.current_point = point
        contour = self.contour
        gap = contour.closing_gap()
        if contour.drawn_segment_count >= 2 and (gap == 0.0 or gap < self.closing_tolerance):
            self._close_open_contour()

    def _close_open_contour(self) -> None:
        contour = self.contour
        if self.state is not RegionState.OPEN or contour is None:
            return

        self.contour = None
        self.state = RegionState.CLOSED
        if contour.drawn_segment_count == 0:
            return

        self._apply_closing_policy(contour)
        ring = self._tessellate(contour)
        distinct = ring.distinct_vertex_count()
        if distinct < 3:
            raise DegenerateRegion(distinct, contour.command_index)
        self.rings.append(ring)

    def _apply_closing_policy(self, contour: Contour) -> None:
        gap = contour.closing_gap()
        if gap == 0.0:
            return

        start = contour.start_point
        if gap < self.closing_tolerance:
            last = contour.segments[-1]
            if isinstance(last, ArcTo):
                contour.segments[-1] = ArcTo(start, last.center, last.direction)
            else:
                contour.segments[-1] = LineTo(start)
            self.snapped_count += 1
            return

        if self.policy is ClosingPolicy.STRICT:
            raise UnclosableRegion(gap, self.closing_tolerance, contour.command_index)

        contour.segments.append(LineTo(start))
        self.bridged_count += 1
        self.logger.warning(
            "Region contour bridged",
            command_index=contour.command_index,
            gap=gap,
            tolerance=self.closing_tolerance,
        )

    def _tessellate(self, contour: Contour) -> Polygon:
        points = [contour.start_point]
        for segment in contour.segments[1:]:
            if isinstance(segment, ArcTo):
                points.extend(
                    self.tessellator.arc(points[-1], segment.point, segment.center, segment.direction)[1:]
                )
            else:
                points.append(segment.point)
        return Polygon.closed(points)
