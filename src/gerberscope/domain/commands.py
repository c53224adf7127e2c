"""Structured Gerber command stream.

The external parser turns Gerber text into these values. Coordinates are
already decoded into decimal numbers in the image unit; ``None`` means the
coordinate was omitted and keeps its modal value. Coordinates are given in
the file's logical A/B axes, which map to X/Y unless an AS directive says
otherwise.
"""

from dataclasses import dataclass, field
from enum import Enum, auto

from gerberscope.domain.aperture import Aperture
from gerberscope.domain.format import CoordinateFormat
from gerberscope.domain.geometry import MirrorAxis, Polarity
from gerberscope.domain.macro import ApertureMacro


class InterpolationMode(Enum):
    """G01 / G02 / G03."""

    LINEAR = auto()
    CLOCKWISE = auto()
    COUNTER_CLOCKWISE = auto()


class QuadrantMode(Enum):
    """G74 / G75."""

    SINGLE = auto()
    MULTI = auto()


@dataclass(frozen=True)
class SelectAperture:
    """Dnn: make an aperture current."""

    identifier: int


@dataclass(frozen=True)
class SetInterpolation:
    mode: InterpolationMode


@dataclass(frozen=True)
class SetQuadrantMode:
    mode: QuadrantMode


@dataclass(frozen=True)
class Move:
    """D02: move the current point without drawing."""

    x: float | None = None
    y: float | None = None


@dataclass(frozen=True)
class Interpolate:
    """D01: draw to a point; ``i``/``j`` are arc centre offsets."""

    x: float | None = None
    y: float | None = None
    i: float | None = None
    j: float | None = None


@dataclass(frozen=True)
class Flash:
    """D03: flash the current aperture at a point."""

    x: float | None = None
    y: float | None = None


@dataclass(frozen=True)
class BeginRegion:
    """G36."""


@dataclass(frozen=True)
class EndRegion:
    """G37."""


@dataclass(frozen=True)
class LoadPolarity:
    """LP."""

    polarity: Polarity


@dataclass(frozen=True)
class LoadMirroring:
    """LM: aperture mirroring."""

    mirror: MirrorAxis


@dataclass(frozen=True)
class LoadRotation:
    """LR: aperture rotation in degrees, counter-clockwise."""

    degrees: float


@dataclass(frozen=True)
class LoadScaling:
    """LS: uniform aperture scale factor."""

    factor: float


@dataclass(frozen=True)
class ImageMirror:
    """MI (deprecated): mirror the logical A and/or B axis."""

    a: bool = False
    b: bool = False


@dataclass(frozen=True)
class ScaleFactor:
    """SF (deprecated): per-axis image scale."""

    a: float = 1.0
    b: float = 1.0


@dataclass(frozen=True)
class ImageOffset:
    """OF (deprecated): image offset along A and B."""

    a: float = 0.0
    b: float = 0.0


@dataclass(frozen=True)
class ImageRotation:
    """IR (deprecated): image rotation in degrees, counter-clockwise."""

    degrees: float


@dataclass(frozen=True)
class AxisSelect:
    """AS (deprecated): output axis for the logical A and B axes."""

    a_axis: str = "X"
    b_axis: str = "Y"


@dataclass(frozen=True)
class ImagePolarity:
    """IP (deprecated): negative images invert every LP polarity."""

    negative: bool = False


@dataclass(frozen=True)
class StepRepeat:
    """SR: open a step-and-repeat block, or close it with the defaults.

    Attributes:
        x_repeat: Number of copies along X
        y_repeat: Number of copies along Y
        x_step: Distance between copies along X
        y_step: Distance between copies along Y
    """

    x_repeat: int = 1
    y_repeat: int = 1
    x_step: float = 0.0
    y_step: float = 0.0

    @property
    def is_block(self) -> bool:
        return self.x_repeat > 1 or self.y_repeat > 1


@dataclass(frozen=True)
class EndOfFile:
    """M02."""


Command = (
    SelectAperture
    | SetInterpolation
    | SetQuadrantMode
    | Move
    | Interpolate
    | Flash
    | BeginRegion
    | EndRegion
    | LoadPolarity
    | LoadMirroring
    | LoadRotation
    | LoadScaling
    | ImageMirror
    | ScaleFactor
    | ImageOffset
    | ImageRotation
    | AxisSelect
    | ImagePolarity
    | StepRepeat
    | EndOfFile
)

COMMAND_TYPES: tuple[type, ...] = (
    SelectAperture,
    SetInterpolation,
    SetQuadrantMode,
    Move,
    Interpolate,
    Flash,
    BeginRegion,
    EndRegion,
    LoadPolarity,
    LoadMirroring,
    LoadRotation,
    LoadScaling,
    ImageMirror,
    ScaleFactor,
    ImageOffset,
    ImageRotation,
    AxisSelect,
    ImagePolarity,
    StepRepeat,
    EndOfFile,
)


@dataclass
class GerberImage:
    """A parsed Gerber image.

    Attributes:
        format: Unit and coordinate precision
        apertures: Aperture dictionary keyed by D-code
        macros: Aperture macro templates keyed by name
        commands: Command stream in file order
    """

    format: CoordinateFormat = field(default_factory=CoordinateFormat)
    apertures: dict[int, Aperture] = field(default_factory=dict)
    macros: dict[str, ApertureMacro] = field(default_factory=dict)
    commands: list[Command] = field(default_factory=list)
