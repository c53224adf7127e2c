"""Coordinate format metadata carried from the Gerber format statement."""

from dataclasses import dataclass
from enum import Enum

MM_PER_INCH = 25.4


class Unit(str, Enum):
    """Image unit selected by the MO command."""

    INCH = "in"
    MILLIMETER = "mm"


@dataclass(frozen=True)
class CoordinateFormat:
    """Unit and fixed-point precision of an image's coordinates.

    Attributes:
        unit: Unit of all coordinates in the image
        integer_digits: Number of integer digits in the FS statement
        decimal_digits: Number of decimal digits in the FS statement
    """

    unit: Unit = Unit.MILLIMETER
    integer_digits: int = 3
    decimal_digits: int = 6

    def __post_init__(self) -> None:
        if not 1 <= self.integer_digits <= 7:
            raise ValueError(f"integer_digits must be in 1..7, got {self.integer_digits}")
        if not 1 <= self.decimal_digits <= 7:
            raise ValueError(f"decimal_digits must be in 1..7, got {self.decimal_digits}")

    @property
    def resolution(self) -> float:
        """Smallest representable coordinate increment (one LSD unit)."""
        return 10.0 ** -self.decimal_digits

    def decode(self, raw: int) -> float:
        """Convert a fixed-point integer coordinate to a decimal value."""
        return raw / 10**self.decimal_digits

    def to_millimeters(self, value: float) -> float:
        """Convert a value in this format's unit to millimetres."""
        if self.unit is Unit.INCH:
            return value * MM_PER_INCH
        return value

    def conversion_factor(self, target: Unit) -> float:
        """Factor converting values in this format's unit to ``target``."""
        if self.unit is target:
            return 1.0
        if target is Unit.MILLIMETER:
            return MM_PER_INCH
        return 1.0 / MM_PER_INCH
