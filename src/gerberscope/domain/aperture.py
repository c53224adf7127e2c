"""Aperture definitions.

Apertures are the closed set of tool shapes a Gerber image can flash or
stroke with. Shapes are plain immutable values; turning them into polygons
is the job of the aperture resolver.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CircleShape:
    """Standard circle aperture (C)."""

    diameter: float


@dataclass(frozen=True)
class RectangleShape:
    """Standard rectangle aperture (R), centred on the flash point."""

    width: float
    height: float


@dataclass(frozen=True)
class ObroundShape:
    """Standard obround aperture (O): a rectangle with semicircular short ends."""

    width: float
    height: float


@dataclass(frozen=True)
class PolygonShape:
    """Standard regular polygon aperture (P).

    Attributes:
        diameter: Circumscribed circle diameter
        sides: Number of vertices (3..12)
        rotation: Rotation of the first vertex in degrees, counter-clockwise
    """

    diameter: float
    sides: int
    rotation: float = 0.0


@dataclass(frozen=True)
class MacroShape:
    """Aperture instantiated from an aperture macro template.

    Attributes:
        template: Name of the aperture macro
        modifiers: Values bound to $1, $2, ... in the macro body
    """

    template: str
    modifiers: tuple[float, ...] = ()


ApertureShape = CircleShape | RectangleShape | ObroundShape | PolygonShape | MacroShape


@dataclass(frozen=True)
class Aperture:
    """A named tool shape from the aperture dictionary.

    Attributes:
        identifier: D-code number (10 and up)
        shape: Shape variant
        hole_diameter: Optional round hole cut through the centre
    """

    identifier: int
    shape: ApertureShape
    hole_diameter: float | None = None

    @property
    def kind(self) -> str:
        """Short name of the shape variant, used in diagnostics."""
        return {
            CircleShape: "circle",
            RectangleShape: "rectangle",
            ObroundShape: "obround",
            PolygonShape: "polygon",
            MacroShape: "macro",
        }.get(type(self.shape), type(self.shape).__name__)

    @property
    def is_macro(self) -> bool:
        return isinstance(self.shape, MacroShape)
