"""Viewport and screen coordinate mapping.

Maps image-space points to screen pixels and back for a given viewport.
Gerber images are Y-up with a bottom-left origin while most paint surfaces
are Y-down with a top-left origin; the viewport says which convention the
target uses.

All functions are pure: the viewport is an explicit argument and nothing
is cached, so overlays and hit testing can map the same primitives
concurrently.
"""

from dataclasses import dataclass, field

from gerberscope.core.transform import AffineTransform, compose_all
from gerberscope.domain import BoundingBox, LayerGeometry, Point, RenderablePrimitive


@dataclass
class Viewport:
    """View onto an image.

    Attributes:
        bounds: Image-space bounding box the view was derived from
        pan: Screen-space translation applied last
        zoom: Screen pixels per image unit (must be positive)
        rotation: View rotation in radians, counter-clockwise
        y_axis_down: True if the target surface has Y pointing down
    """

    bounds: BoundingBox
    pan: Point = field(default_factory=lambda: Point(0.0, 0.0))
    zoom: float = 1.0
    rotation: float = 0.0
    y_axis_down: bool = True

    def matrix(self) -> AffineTransform:
        """Image-to-screen matrix.

        Raises:
            ValueError: If zoom is not positive
        """
        if self.zoom <= 0.0:
            raise ValueError(f"Viewport zoom must be positive, got {self.zoom}")
        origin = self.bounds.min
        return compose_all([
            AffineTransform.translation(-origin.x, -origin.y),
            AffineTransform.scaling(1.0, -1.0 if self.y_axis_down else 1.0),
            AffineTransform.scaling(self.zoom),
            AffineTransform.rotation(self.rotation),
            AffineTransform.translation(self.pan.x, self.pan.y),
        ])


def to_screen(point: Point, viewport: Viewport) -> Point:
    """Map an image-space point to screen coordinates."""
    return viewport.matrix().apply(point)


def to_image(point: Point, viewport: Viewport) -> Point:
    """Map a screen point back to image space (exact inverse of to_screen)."""
    return viewport.matrix().inverse().apply(point)


gerber_to_screen = to_screen
screen_to_gerber = to_image


def primitive_to_screen(primitive: RenderablePrimitive, viewport: Viewport) -> RenderablePrimitive:
    """Map every ring of a primitive to screen coordinates."""
    return primitive.transformed(viewport.matrix())


def fit_viewport(
    bounds: BoundingBox,
    width: float,
    height: float,
    zoom_factor: float = 1.0,
    rotation: float = 0.0,
    y_axis_down: bool = True,
) -> Viewport:
    """Viewport that centres ``bounds`` in a screen rectangle.

    The zoom makes the (rotated) content fill the rectangle, then
    ``zoom_factor`` is applied; values below 1.0 leave a margin.

    Args:
        bounds: Image-space content bounds
        width: Screen width
        height: Screen height
        zoom_factor: Multiplier on the fitting zoom
        rotation: View rotation in radians
        y_axis_down: Target surface Y convention

    Returns:
        New viewport

    Raises:
        ValueError: If the screen size or zoom factor is not positive
    """
    if width <= 0.0 or height <= 0.0:
        raise ValueError(f"Screen size must be positive, got {width}x{height}")
    if zoom_factor <= 0.0:
        raise ValueError(f"Zoom factor must be positive, got {zoom_factor}")

    rotated = bounds.transformed(AffineTransform.rotation(rotation))
    scales = []
    if rotated.width > 0.0:
        scales.append(width / rotated.width)
    if rotated.height > 0.0:
        scales.append(height / rotated.height)
    zoom = (min(scales) if scales else 1.0) * zoom_factor

    viewport = Viewport(bounds=bounds, zoom=zoom, rotation=rotation, y_axis_down=y_axis_down)
    center = to_screen(bounds.center, viewport)
    viewport.pan = Point(width / 2.0 - center.x, height / 2.0 - center.y)
    return viewport


def hit_test(geometry: LayerGeometry, screen_point: Point, viewport: Viewport) -> list[int]:
    """Indices of primitives under a screen point.

    Containment uses the non-zero winding rule. Indices are in draw order,
    so the last one is the topmost primitive.
    """
    p = to_image(screen_point, viewport)
    return [i for i, primitive in enumerate(geometry.primitives) if primitive.contains_point(p.x, p.y)]

