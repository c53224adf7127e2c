"""Aperture macro templates.

Macro bodies are sequences of statements. Primitive modifiers are small
typed expression trees evaluated against an explicit variable environment
mapping variable numbers ($1, $2, ...) to values.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum

from gerberscope.exceptions import ApertureError, UnboundVariable


class PrimitiveCode(IntEnum):
    """Macro primitive codes."""

    COMMENT = 0
    CIRCLE = 1
    VECTOR_LINE_LEGACY = 2
    OUTLINE = 4
    POLYGON = 5
    MOIRE = 6
    THERMAL = 7
    VECTOR_LINE = 20
    CENTER_LINE = 21
    LOWER_LEFT_LINE = 22


@dataclass(frozen=True)
class Constant:
    value: float

    def evaluate(self, env: Mapping[int, float]) -> float:
        return self.value

    def __str__(self) -> str:
        return f"{self.value:g}"


@dataclass(frozen=True)
class Variable:
    """Reference to macro variable ``$number``."""

    number: int

    def evaluate(self, env: Mapping[int, float]) -> float:
        if self.number not in env:
            raise UnboundVariable(self.number)
        return env[self.number]

    def __str__(self) -> str:
        return f"${self.number}"


@dataclass(frozen=True)
class UnaryOp:
    """Unary plus or minus."""

    operator: str
    operand: "Expression"

    def evaluate(self, env: Mapping[int, float]) -> float:
        value = self.operand.evaluate(env)
        return -value if self.operator == "-" else value

    def __str__(self) -> str:
        return f"{self.operator}{self.operand}"


@dataclass(frozen=True)
class BinaryOp:
    """Binary arithmetic: ``+``, ``-``, ``x`` (multiply) or ``/``."""

    operator: str
    left: "Expression"
    right: "Expression"

    def evaluate(self, env: Mapping[int, float]) -> float:
        a = self.left.evaluate(env)
        b = self.right.evaluate(env)
        if self.operator == "+":
            return a + b
        if self.operator == "-":
            return a - b
        if self.operator == "x":
            return a * b
        if self.operator == "/":
            if b == 0:
                raise ApertureError(f"Division by zero in macro expression '{self}'")
            return a / b
        raise ApertureError(f"Unknown macro operator '{self.operator}'")

    def __str__(self) -> str:
        return f"({self.left}{self.operator}{self.right})"


Expression = Constant | Variable | UnaryOp | BinaryOp


@dataclass(frozen=True)
class MacroPrimitive:
    """One primitive statement of a macro body.

    Attributes:
        code: Primitive code (see PrimitiveCode); unknown codes are kept so
            the resolver can report them
        modifiers: Modifier expressions in statement order, exposure first
            for primitives that carry one
    """

    code: int
    modifiers: tuple[Expression, ...] = ()

    def evaluate(self, env: Mapping[int, float]) -> list[float]:
        return [m.evaluate(env) for m in self.modifiers]


@dataclass(frozen=True)
class MacroVariableAssignment:
    """Statement ``$number=expression``."""

    number: int
    expression: Expression


MacroStatement = MacroPrimitive | MacroVariableAssignment


@dataclass(frozen=True)
class ApertureMacro:
    """Named macro template (AM)."""

    name: str
    statements: tuple[MacroStatement, ...] = ()
