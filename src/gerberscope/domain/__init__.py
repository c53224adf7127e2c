"""Domain models for gerberscope.

This module contains the value types flowing through the geometry pipeline:
the parsed image handed over by a Gerber parser, the apertures and macro
templates it references, region path segments, and the renderable
primitives a build produces. All models are designed to be:

- Immutable where possible (using frozen dataclasses)
- Closed tagged variants (shapes, segments, commands) matched exhaustively
- Independent of any parser or paint backend

Key classes:
- Point, BoundingBox, Polygon: Image-space geometry
- CoordinateFormat: Unit and fixed-point precision
- Aperture: Named tool shape
- ApertureMacro: Macro template with expression modifiers
- GerberImage: Apertures, macros and the command stream
- RenderablePrimitive, LayerGeometry: Build output
"""

from gerberscope.domain.aperture import (
    Aperture,
    ApertureShape,
    CircleShape,
    MacroShape,
    ObroundShape,
    PolygonShape,
    RectangleShape,
)
from gerberscope.domain.commands import (
    COMMAND_TYPES,
    AxisSelect,
    BeginRegion,
    Command,
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
    LoadMirroring,
    LoadPolarity,
    LoadRotation,
    LoadScaling,
    Move,
    QuadrantMode,
    ScaleFactor,
    SelectAperture,
    SetInterpolation,
    SetQuadrantMode,
    StepRepeat,
)
from gerberscope.domain.format import CoordinateFormat, Unit
from gerberscope.domain.geometry import (
    BoundingBox,
    MirrorAxis,
    Point,
    Polarity,
    Polygon,
    WindingDirection,
)
from gerberscope.domain.macro import (
    ApertureMacro,
    BinaryOp,
    Constant,
    Expression,
    MacroPrimitive,
    MacroVariableAssignment,
    PrimitiveCode,
    UnaryOp,
    Variable,
)
from gerberscope.domain.path import ArcDirection, ArcTo, Contour, LineTo, MoveTo, PathSegment
from gerberscope.domain.primitive import (
    BuildDiagnostic,
    LayerGeometry,
    PrimitiveKind,
    PrimitiveSource,
    RenderablePrimitive,
)

__all__: list[str] = [
    # Enums
    "ArcDirection",
    "InterpolationMode",
    "MirrorAxis",
    "Polarity",
    "PrimitiveCode",
    "PrimitiveKind",
    "QuadrantMode",
    "Unit",
    "WindingDirection",
    # Geometry
    "BoundingBox",
    "Point",
    "Polygon",
    # Apertures
    "Aperture",
    "ApertureShape",
    "CircleShape",
    "MacroShape",
    "ObroundShape",
    "PolygonShape",
    "RectangleShape",
    # Macros
    "ApertureMacro",
    "BinaryOp",
    "Constant",
    "Expression",
    "MacroPrimitive",
    "MacroVariableAssignment",
    "UnaryOp",
    "Variable",
    # Paths
    "ArcTo",
    "Contour",
    "LineTo",
    "MoveTo",
    "PathSegment",
    # Commands
    "COMMAND_TYPES",
    "AxisSelect",
    "BeginRegion",
    "Command",
    "CoordinateFormat",
    "EndOfFile",
    "EndRegion",
    "Flash",
    "GerberImage",
    "ImageMirror",
    "ImageOffset",
    "ImagePolarity",
    "ImageRotation",
    "Interpolate",
    "LoadMirroring",
    "LoadPolarity",
    "LoadRotation",
    "LoadScaling",
    "Move",
    "ScaleFactor",
    "SelectAperture",
    "SetInterpolation",
    "SetQuadrantMode",
    "StepRepeat",
    # Output
    "BuildDiagnostic",
    "LayerGeometry",
    "PrimitiveSource",
    "RenderablePrimitive",
]
