"""Geometry assembly from a Gerber command stream.

This module walks a parsed command stream once and produces the ordered
list of renderable primitives for one image.

Key components:
- GeometryAssembler: Main entry point, one ``build`` per image
- BuildState: Mutable graphics state of a single build

The walk is strictly sequential because every command depends on the
graphics state left by the previous ones. Primitives are appended in
command order; clear primitives erase earlier dark ones when painted, so
this order is part of the output.
"""

import math
import time
from dataclasses import dataclass, field

import structlog

from gerberscope.config import GerberScopeSettings, LegacyDirectiveMode
from gerberscope.core.aperture import ApertureResolver, ResolvedAperture
from gerberscope.core.region import RegionBuilder
from gerberscope.core.stroke import arc_stroke, line_stroke
from gerberscope.core.tessellation import Tessellator, arc_sweep, transform_arc
from gerberscope.core.transform import AffineTransform, ImageTransform
from gerberscope.domain import (
    COMMAND_TYPES,
    ArcDirection,
    AxisSelect,
    BeginRegion,
    BoundingBox,
    BuildDiagnostic,
    CircleShape,
    EndOfFile,
    EndRegion,
    Flash,
    GerberImage,
    ImageMirror,
    ImageOffset,
    ImagePolarity,
    ImageRotation,
    Interpolate,
    InterpolationMode,
    LayerGeometry,
    LoadMirroring,
    LoadPolarity,
    LoadRotation,
    LoadScaling,
    MirrorAxis,
    Move,
    Point,
    Polarity,
    Polygon,
    PrimitiveKind,
    PrimitiveSource,
    QuadrantMode,
    RenderablePrimitive,
    ScaleFactor,
    SelectAperture,
    SetInterpolation,
    SetQuadrantMode,
    StepRepeat,
)
from gerberscope.exceptions import (
    CommandStreamError,
    PrimitiveError,
    RegionError,
    ResourceLimitExceeded,
    UndefinedAperture,
    UnsupportedApertureKind,
)
from gerberscope.utils import BuildLogger

LEGACY_DIRECTIVES = (ImageMirror, ScaleFactor, ImageOffset, ImageRotation, AxisSelect, ImagePolarity)


@dataclass
class BuildState:
    """Graphics state of one build.

    Attributes:
        transform: Current layered transform
        tessellator: Curve tessellator for the image resolution
        resolver: Aperture resolver for the image
        closing_tolerance: Region closing tolerance in path units
        point: Current point in logical A/B path coordinates
        aperture_id: Current aperture D-code
        interpolation: G01/G02/G03 mode
        quadrant: G74/G75 mode
        region: Open region builder between G36 and G37
        region_start: Command index of the open G36
        region_matrix: Matrix mapping region builder output to image space
        region_count: Number of regions started so far
        step_repeat: Open SR block
        step_repeat_start: Index of the first primitive inside the SR block
        primitives: Output primitives in draw order
        diagnostics: Recovered per-primitive failures
        vertex_count: Vertices emitted so far
    """

    transform: ImageTransform
    tessellator: Tessellator
    resolver: ApertureResolver
    closing_tolerance: float
    point: Point = Point(0.0, 0.0)
    aperture_id: int | None = None
    interpolation: InterpolationMode = InterpolationMode.LINEAR
    quadrant: QuadrantMode = QuadrantMode.MULTI
    region: RegionBuilder | None = None
    region_start: int | None = None
    region_matrix: AffineTransform | None = None
    region_count: int = 0
    step_repeat: StepRepeat | None = None
    step_repeat_start: int = 0
    primitives: list[RenderablePrimitive] = field(default_factory=list)
    diagnostics: list[BuildDiagnostic] = field(default_factory=list)
    vertex_count: int = 0


def single_quadrant_center(
    start: Point,
    end: Point,
    i: float,
    j: float,
    direction: ArcDirection,
) -> Point:
    """Pick the arc centre for a single-quadrant (G74) arc.

    In G74 mode I and J are unsigned. Of the four signed candidates, the
    one giving a sweep of at most 90 degrees in the requested direction
    and the smallest start/end radius mismatch wins.
    """
    best: Point | None = None
    best_cost = math.inf
    fallback: Point | None = None
    fallback_cost = math.inf

    for sx in (1.0, -1.0):
        for sy in (1.0, -1.0):
            center = Point(start.x + sx * abs(i), start.y + sy * abs(j))
            cost = abs(start.distance_to(center) - end.distance_to(center))
            if cost < fallback_cost:
                fallback, fallback_cost = center, cost
            if abs(arc_sweep(start, end, center, direction)) <= math.pi / 2.0 + 1e-9 and cost < best_cost:
                best, best_cost = center, cost

    return best if best is not None else fallback


class GeometryAssembler:
    """Builds renderable geometry from a parsed Gerber image.

    Per-primitive failures (bad apertures, degenerate or unclosable region
    contours) are logged with their command index, recorded as diagnostics
    and skipped. Structural failures (resource limits, unreadable commands,
    impossible axis mappings) abort the build.

    Example:
        assembler = GeometryAssembler(get_default_settings())
        geometry = assembler.build(image)
        for primitive in geometry:
            paint(primitive)
    """

    def __init__(
        self,
        settings: GerberScopeSettings | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize assembler.

        Args:
            settings: Pipeline settings (defaults if None)
            logger: Structured logger (module logger if None)
        """
        self.settings = settings if settings is not None else GerberScopeSettings()
        self.logger = logger if logger is not None else structlog.get_logger("gerberscope")
        self.build_logger = BuildLogger(self.logger)

    def build(self, image: GerberImage, image_transform: ImageTransform | None = None) -> LayerGeometry:
        """Build the primitives of one image.

        Args:
            image: Parsed image (format, apertures, macros, commands)
            image_transform: Initial transform, e.g. a caller offset (identity if None)

        Returns:
            Primitives in draw order with their aggregate bounding box

        Raises:
            ResourceLimitExceeded: If the command or vertex budget is exceeded
            CommandStreamError: If the stream holds a non-command value
            AxisConfigurationConflict: If an AS directive cannot be mapped
        """
        limits = self.settings.limits
        if len(image.commands) > limits.max_commands:
            raise ResourceLimitExceeded("commands", limits.max_commands)

        self.build_logger = BuildLogger(self.logger)
        self.build_logger.log_build_start(len(image.commands), len(image.apertures), time.time())

        tessellator = Tessellator(self.settings.tessellation, image.format.resolution)
        resolver = ApertureResolver(image.apertures, image.macros, tessellator, self.logger)
        if self.settings.processing.parallel_apertures:
            resolver.resolve_all(max_workers=self.settings.processing.max_workers)

        state = BuildState(
            transform=image_transform if image_transform is not None else ImageTransform(),
            tessellator=tessellator,
            resolver=resolver,
            closing_tolerance=self.settings.region.get_closing_tolerance(image.format.resolution),
        )

        for index, command in enumerate(image.commands):
            if not isinstance(command, COMMAND_TYPES):
                raise CommandStreamError(index, f"unexpected {type(command).__name__}")

            self.build_logger.log_command()
            if isinstance(command, EndOfFile):
                break

            try:
                self._dispatch(state, index, command)
            except PrimitiveError as e:
                self._record_failure(state, index, e)

        if state.region is not None:
            self.logger.warning("Region not terminated before end of stream", command_index=state.region_start)
            self._end_region(state)
        if state.step_repeat is not None:
            self._close_step_repeat(state)

        self.build_logger.log_build_complete(time.time())

        bounding_box = None
        if state.primitives:
            bounding_box = BoundingBox.from_points(
                pt for prim in state.primitives for ring in prim.rings for pt in ring.points
            )
        return LayerGeometry(
            primitives=tuple(state.primitives),
            bounding_box=bounding_box,
            format=image.format,
            diagnostics=tuple(state.diagnostics),
        )

    def _dispatch(self, state: BuildState, index: int, command: object) -> None:
        if isinstance(command, SelectAperture):
            state.aperture_id = command.identifier
        elif isinstance(command, SetInterpolation):
            state.interpolation = command.mode
        elif isinstance(command, SetQuadrantMode):
            state.quadrant = command.mode
        elif isinstance(command, Move):
            self._move(state, index, command)
        elif isinstance(command, Interpolate):
            self._interpolate(state, index, command)
        elif isinstance(command, Flash):
            self._flash(state, index, command)
        elif isinstance(command, BeginRegion):
            self._begin_region(state, index)
        elif isinstance(command, EndRegion):
            self._end_region(state)
        elif isinstance(command, LoadPolarity):
            state.transform = state.transform.with_polarity(command.polarity)
        elif isinstance(command, LoadMirroring):
            state.transform = state.transform.with_mirror(command.mirror)
        elif isinstance(command, LoadRotation):
            state.transform = state.transform.with_rotation(math.radians(command.degrees))
        elif isinstance(command, LoadScaling):
            state.transform = state.transform.with_scale(command.factor)
        elif isinstance(command, StepRepeat):
            self._step_repeat(state, index, command)
        elif isinstance(command, LEGACY_DIRECTIVES):
            self._legacy_directive(state, index, command)

    def _legacy_directive(self, state: BuildState, index: int, command: object) -> None:
        applied = self.settings.transform.legacy_directives is LegacyDirectiveMode.INTERPRET
        self.build_logger.log_legacy_directive(index, type(command).__name__, applied)
        if not applied:
            return

        transform = state.transform
        if isinstance(command, ImageMirror):
            state.transform = transform.with_image_mirror(MirrorAxis.from_flags(command.a, command.b))
        elif isinstance(command, ScaleFactor):
            state.transform = transform.with_scale_factor(command.a, command.b)
        elif isinstance(command, ImageOffset):
            state.transform = transform.with_image_offset(command.a, command.b)
        elif isinstance(command, ImageRotation):
            state.transform = transform.with_image_rotation(math.radians(command.degrees))
        elif isinstance(command, AxisSelect):
            state.transform = transform.with_axis_select(command.a_axis, command.b_axis)
        elif isinstance(command, ImagePolarity):
            state.transform = transform.with_image_polarity(command.negative)

    def _target(self, state: BuildState, x: float | None, y: float | None) -> Point:
        """Resolve modal coordinates against the current point."""
        return Point(state.point.x if x is None else x, state.point.y if y is None else y)

    def _move(self, state: BuildState, index: int, command: Move) -> None:
        target = self._target(state, command.x, command.y)
        state.point = target
        if state.region is not None:
            if state.region_matrix is None:
                target = state.transform.to_matrix().apply(target)
            state.region.move_to(target, index)

    def _interpolate(self, state: BuildState, index: int, command: Interpolate) -> None:
        start = state.point
        end = self._target(state, command.x, command.y)
        state.point = end

        center = None
        direction = None
        if state.interpolation is not InterpolationMode.LINEAR:
            direction = (
                ArcDirection.CLOCKWISE
                if state.interpolation is InterpolationMode.CLOCKWISE
                else ArcDirection.COUNTER_CLOCKWISE
            )
            i = command.i or 0.0
            j = command.j or 0.0
            if state.quadrant is QuadrantMode.SINGLE:
                center = single_quadrant_center(start, end, i, j, direction)
            else:
                center = Point(start.x + i, start.y + j)

        if state.region is not None:
            self._region_segment(state, index, start, end, center, direction)
        elif center is None:
            self._line_stroke(state, index, start, end)
        else:
            self._arc_stroke(state, index, start, end, center, direction)

    def _region_segment(
        self,
        state: BuildState,
        index: int,
        start: Point,
        end: Point,
        center: Point | None,
        direction: ArcDirection | None,
    ) -> None:
        region = state.region
        if state.region_matrix is None:
            # Builder works in image space; conformal maps keep arcs circular.
            matrix = state.transform.to_matrix()
            if center is None:
                region.line_to(matrix.apply(end), index)
            else:
                _, mapped_end, mapped_center, mapped_direction = transform_arc(
                    start, end, center, direction, matrix
                )
                region.arc_to(mapped_end, mapped_center, mapped_direction, index)
        elif center is None:
            region.line_to(end, index)
        else:
            region.arc_to(end, center, direction, index)

    def _begin_region(self, state: BuildState, index: int) -> None:
        if state.region is not None:
            self._end_region(state)

        matrix = state.transform.to_matrix()
        closing_tolerance = state.closing_tolerance
        # A singular matrix collapses every vertex; contours are checked in path space first.
        if matrix.is_conformal() and abs(matrix.determinant) > 0.0:
            tessellator = state.tessellator
            start = matrix.apply(state.point)
            state.region_matrix = None
            closing_tolerance *= matrix.max_scale()
        else:
            tessellator = state.tessellator.scaled(matrix.max_scale())
            start = state.point
            state.region_matrix = matrix

        state.region = RegionBuilder(
            tessellator,
            closing_tolerance,
            self.settings.region.closing_policy,
            start=start,
            logger=self.logger,
        )
        state.region_start = index
        state.region_count += 1

    def _end_region(self, state: BuildState) -> None:
        region = state.region
        if region is None:
            return

        start_index = state.region_start
        matrix = state.region_matrix
        state.region = None
        state.region_start = None
        state.region_matrix = None

        try:
            region.finish()
        except RegionError as e:
            self._record_failure(state, start_index, e)

        self.build_logger.log_region_closed(
            start_index, len(region.rings), region.snapped_count, region.bridged_count
        )
        rings = region.rings
        if matrix is not None:
            rings = [ring.transformed(matrix) for ring in rings]
        if rings:
            source = PrimitiveSource(
                kind=PrimitiveKind.REGION,
                command_index=start_index,
                region_index=state.region_count,
            )
            self._emit(state, RenderablePrimitive(tuple(rings), state.transform.effective_polarity, source))

    def _flash(self, state: BuildState, index: int, command: Flash) -> None:
        at = self._target(state, command.x, command.y)
        state.point = at
        if state.region is not None:
            raise PrimitiveError("Flash is not allowed inside a region", index)

        aperture_id = self._current_aperture(state, index)
        matrix = state.transform.flash_matrix(at)
        resolved = state.resolver.resolve(aperture_id, matrix.max_scale())
        polarity = state.transform.effective_polarity
        source = PrimitiveSource(kind=PrimitiveKind.FLASH, command_index=index, aperture_id=aperture_id)

        for signed in resolved.polygons:
            if polarity is Polarity.CLEAR:
                if signed.polarity is Polarity.CLEAR:
                    continue
                exposure = Polarity.CLEAR
            else:
                exposure = signed.polarity
            rings = tuple(ring.transformed(matrix) for ring in signed.rings)
            self._emit(state, RenderablePrimitive(rings, exposure, source))

    def _current_aperture(self, state: BuildState, index: int) -> int:
        if state.aperture_id is None:
            raise UndefinedAperture("none", index)
        return state.aperture_id

    def _stroke_aperture(self, state: BuildState, index: int) -> tuple[int, ResolvedAperture]:
        aperture_id = self._current_aperture(state, index)
        aperture_matrix = state.transform.aperture_matrix()
        path_matrix = state.transform.to_matrix()
        resolved = state.resolver.resolve(aperture_id, aperture_matrix.max_scale() * path_matrix.max_scale())
        if resolved.outline is None:
            raise UnsupportedApertureKind(resolved.aperture.kind, "macro apertures cannot be stroked", index)
        return aperture_id, resolved

    def _line_stroke(self, state: BuildState, index: int, start: Point, end: Point) -> None:
        aperture_id, resolved = self._stroke_aperture(state, index)
        outline = resolved.outline.transformed(state.transform.aperture_matrix())
        ring = line_stroke(outline, start, end).transformed(state.transform.to_matrix())
        self._emit_stroke(state, index, aperture_id, ring)

    def _arc_stroke(
        self,
        state: BuildState,
        index: int,
        start: Point,
        end: Point,
        center: Point,
        direction: ArcDirection,
    ) -> None:
        aperture_id, resolved = self._stroke_aperture(state, index)
        aperture_matrix = state.transform.aperture_matrix()
        shape = resolved.aperture.shape
        if not isinstance(shape, CircleShape) or not aperture_matrix.is_conformal():
            raise UnsupportedApertureKind(resolved.aperture.kind, "arcs can only be stroked with a circle", index)

        width = shape.diameter * aperture_matrix.max_scale()
        matrix = state.transform.to_matrix()
        if matrix.is_conformal():
            start, end, center, direction = transform_arc(start, end, center, direction, matrix)
            ring = arc_stroke(state.tessellator, start, end, center, direction, width * matrix.max_scale())
        else:
            tessellator = state.tessellator.scaled(matrix.max_scale())
            ring = arc_stroke(tessellator, start, end, center, direction, width).transformed(matrix)
        self._emit_stroke(state, index, aperture_id, ring)

    def _emit_stroke(self, state: BuildState, index: int, aperture_id: int, ring: Polygon) -> None:
        source = PrimitiveSource(kind=PrimitiveKind.STROKE, command_index=index, aperture_id=aperture_id)
        self._emit(state, RenderablePrimitive((ring,), state.transform.effective_polarity, source))

    def _step_repeat(self, state: BuildState, index: int, command: StepRepeat) -> None:
        if state.step_repeat is not None:
            self._close_step_repeat(state)
        if command.is_block:
            state.step_repeat = command
            state.step_repeat_start = len(state.primitives)
            self.logger.debug(
                "Step and repeat opened",
                command_index=index,
                x_repeat=command.x_repeat,
                y_repeat=command.y_repeat,
            )

    def _close_step_repeat(self, state: BuildState) -> None:
        block = state.step_repeat
        state.step_repeat = None
        originals = state.primitives[state.step_repeat_start:]
        if not originals:
            return

        image_matrix = state.transform.image_matrix()
        for iy in range(block.y_repeat):
            for ix in range(block.x_repeat):
                if ix == 0 and iy == 0:
                    continue
                step = image_matrix.apply_vector(Point(ix * block.x_step, iy * block.y_step))
                for primitive in originals:
                    self._emit(state, primitive.translated(step.x, step.y))

    def _emit(self, state: BuildState, primitive: RenderablePrimitive) -> None:
        state.vertex_count += primitive.vertex_count
        if state.vertex_count > self.settings.limits.max_vertices:
            raise ResourceLimitExceeded("vertices", self.settings.limits.max_vertices)
        state.primitives.append(primitive)
        self.build_logger.log_primitives(1)

    def _record_failure(self, state: BuildState, index: int | None, error: PrimitiveError) -> None:
        command_index = error.command_index if error.command_index is not None else index
        self.build_logger.log_primitive_skipped(command_index, error)
        state.diagnostics.append(
            BuildDiagnostic(command_index=command_index, error_type=type(error).__name__, message=str(error))
        )
