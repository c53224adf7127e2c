"""Affine transform engine.

This module provides:
- AffineTransform: an immutable 2D affine matrix with composition
- compose: order-preserving composition (inner first, then outer)
- ImageTransform: the layered transform state of a Gerber image
- PlacementTransform: caller-side placement of a whole built layer

ImageTransform keeps three layers that are always applied in the same
order: aperture-local (LM/LR/LS), path (caller offset plus flash
position), then image-level (legacy MI/SF/OF/AS/IR). Directive commands
never mutate a transform; they produce a new value.
"""

import math
from dataclasses import dataclass, replace
from functools import reduce

from gerberscope.domain import MirrorAxis, Point, Polarity
from gerberscope.exceptions import AxisConfigurationConflict

_EPSILON = 1e-12


@dataclass(frozen=True, slots=True)
class AffineTransform:
    """2D affine transform.

    Maps (x, y) to (a*x + b*y + tx, c*x + d*y + ty).
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    @classmethod
    def identity(cls) -> "AffineTransform":
        return cls()

    @classmethod
    def translation(cls, dx: float, dy: float) -> "AffineTransform":
        return cls(tx=dx, ty=dy)

    @classmethod
    def scaling(cls, sx: float, sy: float | None = None) -> "AffineTransform":
        """Scale about the origin. Zero factors are allowed."""
        return cls(a=sx, d=sx if sy is None else sy)

    @classmethod
    def rotation(cls, radians: float) -> "AffineTransform":
        """Counter-clockwise rotation about the origin.

        Quarter turns are snapped to exact values so that IR/LR multiples
        of 90 degrees do not introduce rounding noise.
        """
        quarter = radians / (math.pi / 2.0)
        if abs(quarter - round(quarter)) < 1e-12:
            cos, sin = ((1.0, 0.0), (0.0, 1.0), (-1.0, 0.0), (0.0, -1.0))[int(round(quarter)) % 4]
        else:
            cos, sin = math.cos(radians), math.sin(radians)
        return cls(a=cos, b=-sin, c=sin, d=cos)

    @classmethod
    def mirroring(cls, mirror: MirrorAxis) -> "AffineTransform":
        return cls(
            a=-1.0 if mirror.mirrors_x else 1.0,
            d=-1.0 if mirror.mirrors_y else 1.0,
        )

    @classmethod
    def axis_swap(cls) -> "AffineTransform":
        """Exchange the X and Y axes."""
        return cls(a=0.0, b=1.0, c=1.0, d=0.0)

    def compose(self, inner: "AffineTransform") -> "AffineTransform":
        """Transform equivalent to applying ``inner`` first, then ``self``."""
        o, i = self, inner
        return AffineTransform(
            a=o.a * i.a + o.b * i.c,
            b=o.a * i.b + o.b * i.d,
            c=o.c * i.a + o.d * i.c,
            d=o.c * i.b + o.d * i.d,
            tx=o.a * i.tx + o.b * i.ty + o.tx,
            ty=o.c * i.tx + o.d * i.ty + o.ty,
        )

    def then(self, outer: "AffineTransform") -> "AffineTransform":
        """Transform equivalent to applying ``self`` first, then ``outer``."""
        return outer.compose(self)

    def apply(self, point: Point) -> Point:
        return Point(
            self.a * point.x + self.b * point.y + self.tx,
            self.c * point.x + self.d * point.y + self.ty,
        )

    def apply_vector(self, vector: Point) -> Point:
        """Transform a direction, ignoring translation."""
        return Point(
            self.a * vector.x + self.b * vector.y,
            self.c * vector.x + self.d * vector.y,
        )

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    @property
    def is_mirroring(self) -> bool:
        """True if the transform reverses orientation (negative determinant)."""
        return self.determinant < 0.0

    def is_conformal(self, tolerance: float = 1e-9) -> bool:
        """True for rotation, uniform scale and mirroring combinations.

        Conformal transforms map circles to circles, so arcs can be
        tessellated after transforming their defining points.
        """
        rotation_like = abs(self.a - self.d) <= tolerance and abs(self.b + self.c) <= tolerance
        reflection_like = abs(self.a + self.d) <= tolerance and abs(self.b - self.c) <= tolerance
        return rotation_like or reflection_like

    def scale_factors(self) -> tuple[float, float]:
        """Lengths of the transformed unit X and Y vectors."""
        return math.hypot(self.a, self.c), math.hypot(self.b, self.d)

    def max_scale(self) -> float:
        """Largest singular value: the maximum length stretch of any vector."""
        s = self.a * self.a + self.b * self.b + self.c * self.c + self.d * self.d
        det = self.determinant
        disc = max(s * s - 4.0 * det * det, 0.0)
        return math.sqrt(max((s + math.sqrt(disc)) / 2.0, 0.0))

    def inverse(self) -> "AffineTransform":
        """Inverse transform.

        Raises:
            ValueError: If the transform is singular (e.g. zero scale)
        """
        det = self.determinant
        if abs(det) < _EPSILON:
            raise ValueError("Cannot invert a singular transform")
        a, b, c, d = self.d / det, -self.b / det, -self.c / det, self.a / det
        return AffineTransform(
            a=a,
            b=b,
            c=c,
            d=d,
            tx=-(a * self.tx + b * self.ty),
            ty=-(c * self.tx + d * self.ty),
        )


def compose(outer: AffineTransform, inner: AffineTransform) -> AffineTransform:
    """Compose two transforms: apply ``inner`` first, then ``outer``.

    Composition is not commutative; mirror and rotation in particular do
    not commute, so the argument order is significant.
    """
    return outer.compose(inner)


def compose_all(transforms: list[AffineTransform]) -> AffineTransform:
    """Compose transforms given in application order (first applied first)."""
    return reduce(lambda acc, t: t.compose(acc), transforms, AffineTransform.identity())


_AXES = ("X", "Y")


@dataclass(frozen=True)
class ImageTransform:
    """Layered transform state of a Gerber image.

    Attributes:
        polarity: Current load polarity (LP)
        mirror: Aperture mirroring (LM)
        rotation: Aperture rotation in radians (LR)
        scale: Aperture scale (LS), per axis
        offset: Caller offset applied to every path coordinate
        image_mirror: Legacy image mirroring of the logical A/B axes (MI)
        scale_factor: Legacy per-axis image scale (SF)
        image_offset: Legacy image offset along A/B (OF)
        image_rotation: Legacy image rotation in radians (IR)
        axis_swap: Legacy axis selection AYBX (AS)
        image_negative: Legacy negative image polarity (IP)
    """

    polarity: Polarity = Polarity.DARK
    mirror: MirrorAxis = MirrorAxis.NONE
    rotation: float = 0.0
    scale: tuple[float, float] = (1.0, 1.0)
    offset: tuple[float, float] = (0.0, 0.0)
    image_mirror: MirrorAxis = MirrorAxis.NONE
    scale_factor: tuple[float, float] = (1.0, 1.0)
    image_offset: tuple[float, float] = (0.0, 0.0)
    image_rotation: float = 0.0
    axis_swap: bool = False
    image_negative: bool = False

    @property
    def effective_polarity(self) -> Polarity:
        """Load polarity after applying a negative image polarity."""
        return self.polarity.inverted() if self.image_negative else self.polarity

    def with_polarity(self, polarity: Polarity) -> "ImageTransform":
        return replace(self, polarity=polarity)

    def with_mirror(self, mirror: MirrorAxis) -> "ImageTransform":
        return replace(self, mirror=mirror)

    def with_rotation(self, radians: float) -> "ImageTransform":
        return replace(self, rotation=radians)

    def with_scale(self, sx: float, sy: float | None = None) -> "ImageTransform":
        return replace(self, scale=(sx, sx if sy is None else sy))

    def with_offset(self, dx: float, dy: float) -> "ImageTransform":
        return replace(self, offset=(dx, dy))

    def with_image_mirror(self, mirror: MirrorAxis) -> "ImageTransform":
        return replace(self, image_mirror=mirror)

    def with_scale_factor(self, a: float, b: float) -> "ImageTransform":
        return replace(self, scale_factor=(a, b))

    def with_image_offset(self, a: float, b: float) -> "ImageTransform":
        return replace(self, image_offset=(a, b))

    def with_image_rotation(self, radians: float) -> "ImageTransform":
        return replace(self, image_rotation=radians)

    def with_axis_select(self, a_axis: str, b_axis: str) -> "ImageTransform":
        """Map the logical A/B axes onto output axes.

        Raises:
            AxisConfigurationConflict: If both axes map to the same output
                axis or an axis name is not X or Y
        """
        a, b = a_axis.upper(), b_axis.upper()
        if a not in _AXES or b not in _AXES or a == b:
            raise AxisConfigurationConflict(a_axis, b_axis)
        return replace(self, axis_swap=(a == "Y"))

    def with_image_polarity(self, negative: bool) -> "ImageTransform":
        return replace(self, image_negative=negative)

    def aperture_matrix(self) -> AffineTransform:
        """Aperture-local layer: mirror, then rotate, then scale."""
        return compose_all([
            AffineTransform.mirroring(self.mirror),
            AffineTransform.rotation(self.rotation),
            AffineTransform.scaling(*self.scale),
        ])

    def path_matrix(self) -> AffineTransform:
        """Path layer: the caller offset."""
        return AffineTransform.translation(*self.offset)

    def image_matrix(self) -> AffineTransform:
        """Image layer: MI, SF, OF in logical axes, then AS, then IR."""
        layers = [
            AffineTransform.mirroring(self.image_mirror),
            AffineTransform.scaling(*self.scale_factor),
            AffineTransform.translation(*self.image_offset),
        ]
        if self.axis_swap:
            layers.append(AffineTransform.axis_swap())
        layers.append(AffineTransform.rotation(self.image_rotation))
        return compose_all(layers)

    def stack(self, at: Point | None = None) -> list[tuple[str, AffineTransform]]:
        """The ordered transform stack, first applied first.

        Args:
            at: Flash position; when given the aperture-local layer and the
                translation to the flash point are included
        """
        layers: list[tuple[str, AffineTransform]] = []
        if at is not None:
            layers.append(("aperture", self.aperture_matrix()))
            layers.append(("position", AffineTransform.translation(at.x, at.y)))
        layers.append(("path", self.path_matrix()))
        layers.append(("image", self.image_matrix()))
        return layers

    def to_matrix(self) -> AffineTransform:
        """Path and image layers composed: maps path coordinates to image space."""
        return compose_all([t for _, t in self.stack()])

    def flash_matrix(self, at: Point) -> AffineTransform:
        """Maps aperture-local coordinates of a flash at ``at`` to image space."""
        return compose_all([t for _, t in self.stack(at)])


@dataclass(frozen=True)
class PlacementTransform:
    """Caller-side placement of a built layer.

    Mirroring, rotation and scale are applied about ``origin``; ``offset``
    is then added. This lets a viewer align several layers (for instance an
    inch layer next to a millimetre layer) without rebuilding them.

    Attributes:
        rotation: Rotation in radians, counter-clockwise
        mirror: Mirroring applied before rotation
        origin: Centre for mirroring, rotation and scale
        offset: Translation applied last
        scale: Uniform scale factor
    """

    rotation: float = 0.0
    mirror: MirrorAxis = MirrorAxis.NONE
    origin: Point = Point(0.0, 0.0)
    offset: Point = Point(0.0, 0.0)
    scale: float = 1.0

    def to_matrix(self) -> AffineTransform:
        return compose_all([
            AffineTransform.translation(-self.origin.x, -self.origin.y),
            AffineTransform.mirroring(self.mirror),
            AffineTransform.rotation(self.rotation),
            AffineTransform.scaling(self.scale),
            AffineTransform.translation(self.origin.x + self.offset.x, self.origin.y + self.offset.y),
        ])
