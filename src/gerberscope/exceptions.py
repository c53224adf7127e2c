"""Exception hierarchy for Gerberscope."""


class GerberScopeError(Exception):
    """Base exception for all Gerberscope errors."""

    pass


class PrimitiveError(GerberScopeError):
    """A failure confined to a single primitive.

    The assembler recovers from these by skipping the offending primitive.
    """

    def __init__(self, message: str, command_index: int | None = None) -> None:
        self.command_index = command_index
        super().__init__(message)


class ApertureError(PrimitiveError):
    """Errors related to aperture resolution."""

    pass


class UnsupportedApertureKind(ApertureError):
    """Aperture or macro primitive kind cannot be rendered."""

    def __init__(self, kind: str, reason: str = "unsupported", command_index: int | None = None) -> None:
        self.kind = kind
        self.reason = reason
        super().__init__(f"Unsupported aperture kind '{kind}': {reason}", command_index)


class InvalidModifierCount(ApertureError):
    """Macro primitive or aperture received the wrong number of modifiers."""

    def __init__(self, kind: str, expected: str, actual: int, command_index: int | None = None) -> None:
        self.kind = kind
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Invalid modifier count for '{kind}': expected {expected}, got {actual}",
            command_index,
        )


class UnboundVariable(ApertureError):
    """Macro expression references a variable with no bound value."""

    def __init__(self, number: int) -> None:
        self.number = number
        super().__init__(f"Macro variable '${number}' is not bound")


class UndefinedAperture(ApertureError):
    """Command references an aperture (or macro) that was never defined."""

    def __init__(self, identifier: int | str, command_index: int | None = None) -> None:
        self.identifier = identifier
        super().__init__(f"Aperture '{identifier}' is not defined", command_index)


class RegionError(PrimitiveError):
    """Errors related to region contour construction."""

    pass


class DegenerateRegion(RegionError):
    """Contour has fewer than three distinct vertices."""

    def __init__(self, vertex_count: int, command_index: int | None = None) -> None:
        self.vertex_count = vertex_count
        super().__init__(
            f"Degenerate region contour with {vertex_count} distinct vertices",
            command_index,
        )


class UnclosableRegion(RegionError):
    """Contour gap exceeds the closing tolerance and no closing policy applies."""

    def __init__(self, gap: float, tolerance: float, command_index: int | None = None) -> None:
        self.gap = gap
        self.tolerance = tolerance
        super().__init__(
            f"Region contour gap {gap:g} exceeds closing tolerance {tolerance:g}",
            command_index,
        )


class BuildError(GerberScopeError):
    """Structural failure that aborts a whole build."""

    pass


class ResourceLimitExceeded(BuildError):
    """Build exceeded a configured command or vertex budget."""

    def __init__(self, resource: str, limit: int) -> None:
        self.resource = resource
        self.limit = limit
        super().__init__(f"Resource limit exceeded: more than {limit} {resource}")


class AxisConfigurationConflict(BuildError):
    """Axis selection yields an unsupported coordinate mapping."""

    def __init__(self, a_axis: str, b_axis: str) -> None:
        self.a_axis = a_axis
        self.b_axis = b_axis
        super().__init__(f"Unsupported axis mapping A->{a_axis}, B->{b_axis}")


class CommandStreamError(BuildError):
    """Command stream contains something that is not a command."""

    def __init__(self, command_index: int, reason: str) -> None:
        self.command_index = command_index
        self.reason = reason
        super().__init__(f"Unreadable command at index {command_index}: {reason}")
