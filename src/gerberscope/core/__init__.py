"""Core algorithms for gerberscope.

This module contains the geometry pipeline:

- Transform engine (affine matrices, layered image transform, placement)
- Macro expression parsing
- Arc and circle tessellation
- Aperture resolution into signed polygons
- Stroke outlines and region contour closing
- Geometry assembly from a command stream
- Viewport and screen mapping

Everything except GeometryAssembler.build is a pure function of its
inputs; builds are sequential because graphics state is ordered.

Key functions:
- compose: Compose two transforms (inner first)
- parse_expression: Parse macro arithmetic into an expression tree
- to_screen / to_image: Viewport mapping and its inverse
- fit_viewport: Viewport centring a bounding box on screen
- hit_test: Primitives under a screen point

Key classes:
- AffineTransform, ImageTransform, PlacementTransform: Transform values
- Tessellator: Chord-error bounded arc flattening
- ApertureResolver: Resolves apertures into signed polygons
- RegionBuilder: Closes region contours with the tolerance policy
- GeometryAssembler: Builds LayerGeometry from a GerberImage
- Viewport: Pan, zoom and rotation of a view
"""

from gerberscope.core.aperture import ApertureResolver, ResolvedAperture, SignedPolygon
from gerberscope.core.assembler import BuildState, GeometryAssembler, single_quadrant_center
from gerberscope.core.expression import parse_expression, parse_modifiers
from gerberscope.core.region import RegionBuilder, RegionState
from gerberscope.core.screen import (
    Viewport,
    fit_viewport,
    gerber_to_screen,
    hit_test,
    primitive_to_screen,
    screen_to_gerber,
    to_image,
    to_screen,
)
from gerberscope.core.stroke import arc_stroke, convex_hull, line_stroke
from gerberscope.core.tessellation import Tessellator, arc_sweep, sagitta, transform_arc
from gerberscope.core.transform import (
    AffineTransform,
    ImageTransform,
    PlacementTransform,
    compose,
    compose_all,
)

__all__ = [
    # Transform engine
    "AffineTransform",
    # Aperture resolution
    "ApertureResolver",
    # Assembly
    "BuildState",
    "GeometryAssembler",
    "ImageTransform",
    "PlacementTransform",
    # Region building
    "RegionBuilder",
    "RegionState",
    "ResolvedAperture",
    "SignedPolygon",
    # Tessellation
    "Tessellator",
    # Screen mapping
    "Viewport",
    "arc_stroke",
    "arc_sweep",
    "compose",
    "compose_all",
    # Strokes
    "convex_hull",
    "fit_viewport",
    "gerber_to_screen",
    "hit_test",
    "line_stroke",
    # Expressions
    "parse_expression",
    "parse_modifiers",
    "primitive_to_screen",
    "sagitta",
    "screen_to_gerber",
    "single_quadrant_center",
    "to_image",
    "to_screen",
    "transform_arc",
]
