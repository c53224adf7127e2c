"""Renderable output of a geometry build.

A build produces an ordered sequence of RenderablePrimitive values. Order
matters: a clear primitive erases whatever dark primitives were drawn
before it, so consumers must paint primitives in sequence.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

from gerberscope.domain.format import CoordinateFormat
from gerberscope.domain.geometry import BoundingBox, Polarity, Polygon, WindingDirection

if TYPE_CHECKING:
    from gerberscope.core.transform import AffineTransform


class PrimitiveKind(Enum):
    """Which kind of command produced a primitive."""

    FLASH = auto()
    STROKE = auto()
    REGION = auto()


@dataclass(frozen=True)
class PrimitiveSource:
    """Where a primitive came from, for diagnostics and highlighting.

    Attributes:
        kind: Flash, stroke or region
        command_index: Index of the producing command in the stream
        aperture_id: D-code for flashes and strokes
        region_index: Sequence number of the G36/G37 region
    """

    kind: PrimitiveKind
    command_index: int
    aperture_id: int | None = None
    region_index: int | None = None

    @property
    def label(self) -> str:
        if self.kind is PrimitiveKind.REGION:
            return f"region {self.region_index}"
        return f"D{self.aperture_id}"


@dataclass(frozen=True)
class RenderablePrimitive:
    """Filled or cleared geometry in image space.

    A primitive holds one or more rings filled together with the non-zero
    winding rule; region holes are expressed as oppositely wound rings.

    Attributes:
        rings: Closed polygon rings
        polarity: DARK paints, CLEAR erases earlier primitives
        source: Producing command
    """

    rings: tuple[Polygon, ...]
    polarity: Polarity
    source: PrimitiveSource

    @property
    def is_dark(self) -> bool:
        return self.polarity is Polarity.DARK

    def signed_area(self) -> float:
        """Sum of the rings' signed areas."""
        return sum(ring.signed_area() for ring in self.rings)

    @property
    def winding(self) -> WindingDirection:
        return WindingDirection.from_area(self.signed_area())

    @property
    def vertex_count(self) -> int:
        return sum(len(ring) for ring in self.rings)

    def bounding_box(self) -> BoundingBox:
        return BoundingBox.from_points(p for ring in self.rings for p in ring.points)

    def contains_point(self, x: float, y: float) -> bool:
        """Non-zero winding containment over all rings."""
        return sum(ring.winding_number(x, y) for ring in self.rings) != 0

    def transformed(self, matrix: "AffineTransform") -> "RenderablePrimitive":
        return RenderablePrimitive(
            rings=tuple(ring.transformed(matrix) for ring in self.rings),
            polarity=self.polarity,
            source=self.source,
        )

    def translated(self, dx: float, dy: float) -> "RenderablePrimitive":
        return RenderablePrimitive(
            rings=tuple(ring.translated(dx, dy) for ring in self.rings),
            polarity=self.polarity,
            source=self.source,
        )


@dataclass(frozen=True)
class BuildDiagnostic:
    """A recovered per-primitive failure.

    Attributes:
        command_index: Index of the offending command
        error_type: Exception class name
        message: Human readable description
    """

    command_index: int | None
    error_type: str
    message: str


@dataclass(frozen=True)
class LayerGeometry:
    """Result of building one Gerber image.

    Attributes:
        primitives: Primitives in draw order
        bounding_box: Aggregate bounds of every primitive (None if empty)
        format: Coordinate format of the source image
        diagnostics: Recovered failures, in command order
    """

    primitives: tuple[RenderablePrimitive, ...]
    bounding_box: BoundingBox | None
    format: CoordinateFormat = field(default_factory=CoordinateFormat)
    diagnostics: tuple[BuildDiagnostic, ...] = ()

    def __len__(self) -> int:
        return len(self.primitives)

    def __iter__(self) -> Iterator[RenderablePrimitive]:
        return iter(self.primitives)

    def is_empty(self) -> bool:
        return len(self.primitives) == 0

    @property
    def vertex_count(self) -> int:
        return sum(p.vertex_count for p in self.primitives)

    def dark_primitives(self) -> list[RenderablePrimitive]:
        return [p for p in self.primitives if p.polarity is Polarity.DARK]

    def clear_primitives(self) -> list[RenderablePrimitive]:
        return [p for p in self.primitives if p.polarity is Polarity.CLEAR]

    def placed(self, matrix: "AffineTransform") -> "LayerGeometry":
        """Apply a placement transform to the whole layer.

        Used to align layers that were authored in different units or at
        different origins before displaying them together.
        """
        primitives = tuple(p.transformed(matrix) for p in self.primitives)
        bounding_box = None
        if primitives:
            bounding_box = BoundingBox.from_points(
                pt for prim in primitives for ring in prim.rings for pt in ring.points
            )
        return LayerGeometry(
            primitives=primitives,
            bounding_box=bounding_box,
            format=self.format,
            diagnostics=self.diagnostics,
        )
