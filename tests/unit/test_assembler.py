"""Tests for the geometry assembler."""

import math

import pytest

from gerberscope.config import ClosingPolicy, GerberScopeSettings, LegacyDirectiveMode
from gerberscope.core.assembler import GeometryAssembler, single_quadrant_center
from gerberscope.core.transform import ImageTransform
from gerberscope.domain import (
    Aperture,
    ApertureMacro,
    ArcDirection,
    AxisSelect,
    BeginRegion,
    BoundingBox,
    CircleShape,
    Constant,
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
    LoadPolarity,
    MacroPrimitive,
    MacroShape,
    Move,
    Point,
    Polarity,
    PrimitiveKind,
    QuadrantMode,
    RectangleShape,
    ScaleFactor,
    SelectAperture,
    SetInterpolation,
    SetQuadrantMode,
    StepRepeat,
)
from gerberscope.exceptions import (
    AxisConfigurationConflict,
    CommandStreamError,
    ResourceLimitExceeded,
)

H = math.sqrt(0.5)

APERTURES = {
    10: Aperture(10, RectangleShape(0.2, 0.2)),
    11: Aperture(11, CircleShape(0.2)),
    12: Aperture(12, RectangleShape(2.0, 2.0)),
    13: Aperture(13, MacroShape("DOT")),
    14: Aperture(14, CircleShape(2.0), hole_diameter=1.0),
}
MACROS = {
    "DOT": ApertureMacro(
        "DOT", (MacroPrimitive(1, (Constant(1.0), Constant(1.0), Constant(0.0), Constant(0.0))),)
    )
}

SQUARE_REGION = [
    BeginRegion(),
    Move(0, 0),
    Interpolate(1, 0),
    Interpolate(1, 1),
    Interpolate(0, 1),
    Interpolate(0, 0),
    EndRegion(),
]


@pytest.fixture
def assembler() -> GeometryAssembler:
    """Assembler with default settings."""
    return GeometryAssembler(GerberScopeSettings())


@pytest.fixture
def legacy_assembler() -> GeometryAssembler:
    """Assembler that honours MI, SF, OF, IR, AS and IP."""
    return GeometryAssembler(GerberScopeSettings(transform={"legacy_directives": LegacyDirectiveMode.INTERPRET}))


def _build(
    assembler: GeometryAssembler,
    commands: list[object],
    image_transform: ImageTransform | None = None,
) -> LayerGeometry:
    image = GerberImage(apertures=dict(APERTURES), macros=dict(MACROS), commands=list(commands))
    return assembler.build(image, image_transform)


def _center(geometry: LayerGeometry, index: int = 0) -> Point:
    return geometry.primitives[index].bounding_box().center


def _assert_center(geometry: LayerGeometry, x: float, y: float, index: int = 0) -> None:
    center = _center(geometry, index)
    assert center.x == pytest.approx(x, abs=1e-9)
    assert center.y == pytest.approx(y, abs=1e-9)


class TestFlashes:
    """Tests for D03 flashes."""

    def test_flash_position_and_source(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(10), Flash(5, 5)])
        assert len(geometry) == 1
        _assert_center(geometry, 5, 5)
        source = geometry.primitives[0].source
        assert source.kind == PrimitiveKind.FLASH
        assert source.aperture_id == 10
        assert source.command_index == 1

    def test_modal_coordinates(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(10), Flash(2, 3), Flash(x=4)])
        _assert_center(geometry, 4, 3, index=1)

    def test_load_polarity(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(10), Flash(0, 0), LoadPolarity(Polarity.CLEAR), Flash(0, 0)])
        assert [p.polarity for p in geometry] == [Polarity.DARK, Polarity.CLEAR]

    def test_hole_is_ring_of_the_flash(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(14), Flash(5, 5)])
        assert len(geometry) == 1
        primitive = geometry.primitives[0]
        assert primitive.polarity == Polarity.DARK
        assert len(primitive.rings) == 2
        assert not primitive.contains_point(5, 5)
        assert primitive.contains_point(5.75, 5)

    def test_hole_keeps_earlier_copper(self, assembler: GeometryAssembler) -> None:
        """Only clear primitives erase; the hole leaves the region below painted."""
        commands = [
            BeginRegion(),
            Move(-5, -5),
            Interpolate(5, -5),
            Interpolate(5, 5),
            Interpolate(-5, 5),
            Interpolate(-5, -5),
            EndRegion(),
            SelectAperture(14),
            Flash(0, 0),
        ]
        geometry = _build(assembler, commands)
        covering = [p for p in geometry if p.contains_point(0, 0)]
        assert [p.polarity for p in covering] == [Polarity.DARK]
        assert covering[0].source.kind == PrimitiveKind.REGION

    def test_clear_flash_keeps_hole(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [LoadPolarity(Polarity.CLEAR), SelectAperture(14), Flash(0, 0)])
        assert len(geometry) == 1
        primitive = geometry.primitives[0]
        assert primitive.polarity == Polarity.CLEAR
        assert not primitive.contains_point(0, 0)

    def test_bounding_box_covers_all(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(10), Flash(0, 0), Flash(10, 5)])
        assert geometry.bounding_box.min_x == pytest.approx(-0.1)
        assert geometry.bounding_box.max_y == pytest.approx(5.1)

    def test_empty_stream(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [])
        assert geometry.is_empty()
        assert geometry.bounding_box is None

    def test_commands_after_end_of_file_ignored(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(10), Flash(0, 0), EndOfFile(), Flash(1, 1)])
        assert len(geometry) == 1

    def test_parallel_resolution_same_result(self) -> None:
        commands = [SelectAperture(11), Flash(0, 0), SelectAperture(12), Flash(3, 3)]
        sequential = _build(GeometryAssembler(GerberScopeSettings()), commands)
        settings = GerberScopeSettings(processing={"parallel_apertures": True, "max_workers": 2})
        parallel = _build(GeometryAssembler(settings), commands)
        assert parallel.primitives == sequential.primitives


class TestLegacyDirectives:
    """Tests for MI, SF, OF, IR, AS and IP."""

    @pytest.fixture
    def assembler(self, legacy_assembler: GeometryAssembler) -> GeometryAssembler:
        return legacy_assembler

    def test_ignored_by_default(self) -> None:
        geometry = _build(GeometryAssembler(), [ImageRotation(90.0), SelectAperture(10), Flash(1, 0)])
        _assert_center(geometry, 1, 0)

    def test_axis_conflict_ignored_by_default(self) -> None:
        geometry = _build(GeometryAssembler(), [AxisSelect("X", "X"), SelectAperture(10), Flash(1, 2)])
        _assert_center(geometry, 1, 2)

    def test_axis_select_swaps(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [AxisSelect("Y", "X"), SelectAperture(10), Flash(1, 2)])
        _assert_center(geometry, 2, 1)

    def test_axis_select_conflict_aborts(self, assembler: GeometryAssembler) -> None:
        with pytest.raises(AxisConfigurationConflict):
            _build(assembler, [AxisSelect("X", "X"), SelectAperture(10), Flash(1, 2)])

    def test_image_mirror(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [ImageMirror(a=True), SelectAperture(10), Flash(3, 1)])
        _assert_center(geometry, -3, 1)

    def test_scale_factor(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [ScaleFactor(2.0, 2.0), SelectAperture(10), Flash(1, 1)])
        _assert_center(geometry, 2, 2)
        assert geometry.primitives[0].bounding_box().width == pytest.approx(0.4)

    def test_image_offset(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [ImageOffset(1.0, 2.0), SelectAperture(10), Flash(0, 0)])
        _assert_center(geometry, 1, 2)

    def test_image_rotation(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [ImageRotation(90.0), SelectAperture(10), Flash(1, 0)])
        _assert_center(geometry, 0, 1)

    def test_image_polarity_negative(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [ImagePolarity(negative=True), SelectAperture(10), Flash(0, 0)])
        assert geometry.primitives[0].polarity == Polarity.CLEAR

    def test_ignored_when_configured(self) -> None:
        settings = GerberScopeSettings(transform={"legacy_directives": LegacyDirectiveMode.IGNORE})
        geometry = _build(
            GeometryAssembler(settings),
            [ImageOffset(1.0, 2.0), ImagePolarity(negative=True), SelectAperture(10), Flash(0, 0)],
        )
        _assert_center(geometry, 0, 0)
        assert geometry.primitives[0].polarity == Polarity.DARK

    def test_caller_offset(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(10), Flash(0, 0)], ImageTransform().with_offset(5.0, 0.0))
        _assert_center(geometry, 5, 0)


class TestStrokes:
    """Tests for D01 draws outside regions."""

    def test_line_stroke(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(12), Move(0, 0), Interpolate(10, 0)])
        primitive = geometry.primitives[0]
        assert primitive.source.kind == PrimitiveKind.STROKE
        assert primitive.bounding_box() == BoundingBox(-1, -1, 11, 1)
        assert primitive.signed_area() == pytest.approx(24.0)

    def test_modal_stroke_end(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(12), Move(1, 1), Interpolate(x=5)])
        assert geometry.primitives[0].bounding_box() == BoundingBox(0, 0, 6, 2)

    def test_arc_stroke(self, assembler: GeometryAssembler) -> None:
        geometry = _build(
            assembler,
            [
                SelectAperture(11),
                Move(1, 0),
                SetInterpolation(InterpolationMode.COUNTER_CLOCKWISE),
                Interpolate(0, 1, i=-1, j=0),
            ],
        )
        primitive = geometry.primitives[0]
        assert primitive.contains_point(H, H)
        assert not primitive.contains_point(-H, -H)

    def test_single_quadrant_arc_stroke(self, assembler: GeometryAssembler) -> None:
        geometry = _build(
            assembler,
            [
                SelectAperture(11),
                Move(1, 0),
                SetQuadrantMode(QuadrantMode.SINGLE),
                SetInterpolation(InterpolationMode.COUNTER_CLOCKWISE),
                Interpolate(0, 1, i=1, j=0),
            ],
        )
        assert geometry.primitives[0].contains_point(H, H)

    def test_arc_with_rectangle_skipped(self, assembler: GeometryAssembler) -> None:
        geometry = _build(
            assembler,
            [
                SelectAperture(12),
                Move(1, 0),
                SetInterpolation(InterpolationMode.CLOCKWISE),
                Interpolate(0, 1, i=-1, j=0),
            ],
        )
        assert geometry.is_empty()
        assert geometry.diagnostics[0].error_type == "UnsupportedApertureKind"
        assert geometry.diagnostics[0].command_index == 3

    def test_macro_stroke_skipped(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(13), Move(0, 0), Interpolate(1, 0)])
        assert geometry.is_empty()
        assert geometry.diagnostics[0].error_type == "UnsupportedApertureKind"

    def test_stroke_without_aperture(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [Move(0, 0), Interpolate(1, 0)])
        assert geometry.diagnostics[0].error_type == "UndefinedAperture"


class TestSingleQuadrantCenter:
    def test_picks_quarter_arc_center(self) -> None:
        center = single_quadrant_center(Point(1, 0), Point(0, 1), 1.0, 0.0, ArcDirection.COUNTER_CLOCKWISE)
        assert center == Point(0, 0)

    def test_clockwise(self) -> None:
        center = single_quadrant_center(Point(0, 1), Point(1, 0), 0.0, 1.0, ArcDirection.CLOCKWISE)
        assert center == Point(0, 0)


class TestRegions:
    """Tests for G36/G37 regions."""

    def test_region_primitive(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, SQUARE_REGION)
        assert len(geometry) == 1
        primitive = geometry.primitives[0]
        assert primitive.source.kind == PrimitiveKind.REGION
        assert primitive.source.region_index == 1
        assert primitive.source.command_index == 0
        assert primitive.signed_area() == pytest.approx(1.0)

    def test_clear_region(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [LoadPolarity(Polarity.CLEAR), *SQUARE_REGION])
        assert geometry.primitives[0].polarity == Polarity.CLEAR

    def test_multiple_contours_one_primitive(self, assembler: GeometryAssembler) -> None:
        commands = [
            BeginRegion(),
            Move(0, 0),
            Interpolate(4, 0),
            Interpolate(4, 4),
            Interpolate(0, 4),
            Interpolate(0, 0),
            Move(10, 0),
            Interpolate(11, 0),
            Interpolate(11, 1),
            Interpolate(10, 0),
            EndRegion(),
        ]
        geometry = _build(assembler, commands)
        assert len(geometry) == 1
        assert len(geometry.primitives[0].rings) == 2

    def test_circular_region(self, assembler: GeometryAssembler) -> None:
        commands = [
            SetInterpolation(InterpolationMode.COUNTER_CLOCKWISE),
            BeginRegion(),
            Move(1, 0),
            Interpolate(1, 0, i=-1, j=0),
            EndRegion(),
        ]
        geometry = _build(assembler, commands)
        assert geometry.primitives[0].signed_area() == pytest.approx(math.pi, rel=1e-2)

    def test_mirrored_arc_keeps_its_side(self, legacy_assembler: GeometryAssembler) -> None:
        """Under MI the upper half disc stays above the X axis."""
        commands = [
            ImageMirror(a=True),
            BeginRegion(),
            Move(1, 0),
            SetInterpolation(InterpolationMode.COUNTER_CLOCKWISE),
            Interpolate(-1, 0, i=-1, j=0),
            SetInterpolation(InterpolationMode.LINEAR),
            Interpolate(1, 0),
            EndRegion(),
        ]
        bbox = _build(legacy_assembler, commands).primitives[0].bounding_box()
        assert bbox.min_y == pytest.approx(0.0, abs=1e-12)
        assert bbox.max_y == pytest.approx(1.0, abs=1e-2)

    def test_non_uniform_scale_region(self, legacy_assembler: GeometryAssembler) -> None:
        geometry = _build(legacy_assembler, [ScaleFactor(2.0, 1.0), *SQUARE_REGION])
        assert geometry.primitives[0].bounding_box() == BoundingBox(0, 0, 2, 1)

    def test_non_uniform_scale_arc_region(self, legacy_assembler: GeometryAssembler) -> None:
        commands = [
            ScaleFactor(2.0, 1.0),
            SetInterpolation(InterpolationMode.COUNTER_CLOCKWISE),
            BeginRegion(),
            Move(1, 0),
            Interpolate(1, 0, i=-1, j=0),
            EndRegion(),
        ]
        primitive = _build(legacy_assembler, commands).primitives[0]
        assert primitive.signed_area() == pytest.approx(2 * math.pi, rel=1e-2)
        assert primitive.bounding_box().width == pytest.approx(4.0, rel=1e-2)

    def test_zero_scale_region_builds_silently(self, legacy_assembler: GeometryAssembler) -> None:
        """SF 0,0 collapses the region to a point without failing."""
        geometry = _build(legacy_assembler, [ScaleFactor(0.0, 0.0), *SQUARE_REGION])
        assert len(geometry) == 1
        assert not geometry.diagnostics
        assert geometry.primitives[0].signed_area() == 0.0
        assert geometry.bounding_box == BoundingBox(0, 0, 0, 0)

    def test_degenerate_contour_skipped(self, assembler: GeometryAssembler) -> None:
        commands = [
            BeginRegion(),
            Move(0, 0),
            Interpolate(1, 0),
            EndRegion(),
            *SQUARE_REGION,
        ]
        geometry = _build(assembler, commands)
        assert len(geometry) == 1
        assert len(geometry.diagnostics) == 1
        assert geometry.diagnostics[0].error_type == "DegenerateRegion"
        assert geometry.diagnostics[0].command_index == 1
        assert assembler.build_logger.stats.skipped_count == 1

    def test_strict_policy_skips_unclosed(self) -> None:
        settings = GerberScopeSettings(region={"closing_policy": ClosingPolicy.STRICT})
        commands = [BeginRegion(), Move(0, 0), Interpolate(1, 0), Interpolate(1, 1), EndRegion()]
        geometry = _build(GeometryAssembler(settings), commands)
        assert geometry.is_empty()
        assert geometry.diagnostics[0].error_type == "UnclosableRegion"

    def test_bridged_closure_counted(self, assembler: GeometryAssembler) -> None:
        commands = [BeginRegion(), Move(0, 0), Interpolate(1, 0), Interpolate(1, 1), EndRegion()]
        geometry = _build(assembler, commands)
        assert len(geometry) == 1
        assert assembler.build_logger.stats.bridged_closures == 1

    def test_flash_inside_region_skipped(self, assembler: GeometryAssembler) -> None:
        commands = [SelectAperture(10), BeginRegion(), Move(0, 0), Flash(1, 1), EndRegion()]
        geometry = _build(assembler, commands)
        assert geometry.diagnostics[0].command_index == 3

    def test_unterminated_region_finished(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, SQUARE_REGION[:-1])
        assert len(geometry) == 1


class TestStepRepeat:
    """Tests for SR blocks."""

    def test_grid_replication(self, assembler: GeometryAssembler) -> None:
        commands = [
            SelectAperture(10),
            StepRepeat(2, 3, 10.0, 5.0),
            Flash(0, 0),
            StepRepeat(),
            Flash(100, 100),
        ]
        geometry = _build(assembler, commands)
        assert len(geometry) == 7
        centers = [_center(geometry, i) for i in range(7)]
        expected = [(0, 0), (10, 0), (0, 5), (10, 5), (0, 10), (10, 10), (100, 100)]
        for center, (x, y) in zip(centers, expected):
            assert center.x == pytest.approx(x, abs=1e-9)
            assert center.y == pytest.approx(y, abs=1e-9)

    def test_block_closed_at_end_of_stream(self, assembler: GeometryAssembler) -> None:
        geometry = _build(assembler, [SelectAperture(10), StepRepeat(2, 1, 3.0, 0.0), Flash(0, 0)])
        assert len(geometry) == 2
        _assert_center(geometry, 3, 0, index=1)


class TestStructuralErrors:
    """Tests for errors that abort the build."""

    def test_command_limit(self) -> None:
        settings = GerberScopeSettings(limits={"max_commands": 2})
        with pytest.raises(ResourceLimitExceeded) as exc_info:
            _build(GeometryAssembler(settings), [SelectAperture(10), Flash(0, 0), Flash(1, 1)])
        assert exc_info.value.resource == "commands"

    def test_vertex_limit(self) -> None:
        settings = GerberScopeSettings(limits={"max_vertices": 10})
        with pytest.raises(ResourceLimitExceeded) as exc_info:
            _build(GeometryAssembler(settings), [SelectAperture(11), Flash(0, 0)])
        assert exc_info.value.resource == "vertices"

    def test_unreadable_command(self, assembler: GeometryAssembler) -> None:
        with pytest.raises(CommandStreamError) as exc_info:
            _build(assembler, [SelectAperture(10), "D03*"])
        assert exc_info.value.command_index == 1


class TestBuildStats:
    def test_stats_recorded(self, assembler: GeometryAssembler) -> None:
        _build(assembler, [SelectAperture(10), Flash(0, 0), Flash(1, 1), SelectAperture(99), Flash(2, 2)])
        stats = assembler.build_logger.stats
        assert stats.commands_processed == 5
        assert stats.primitives_emitted == 2
        assert stats.error_count == 1
        assert stats.errors[0][0] == 4
