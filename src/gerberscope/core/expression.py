"""Macro arithmetic expression parsing.

Converts the textual arithmetic used in aperture macro bodies into the
typed expression tree of ``gerberscope.domain.macro``:

    expression := term (('+' | '-') term)*
    term       := factor (('x' | 'X' | '*' | '/') factor)*
    factor     := ('+' | '-') factor | number | '$' integer | '(' expression ')'

Multiplication is normalised to the ``x`` operator.
"""

import re

from gerberscope.domain.macro import BinaryOp, Constant, Expression, UnaryOp, Variable
from gerberscope.exceptions import ApertureError

_TOKEN_RE = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|\$(\d+)|([-+xX*/()]))")


def _tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    text = text.strip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise ApertureError(f"Invalid macro expression '{text}' at position {pos}")
        number, variable, operator = match.groups()
        if number is not None:
            tokens.append(number)
        elif variable is not None:
            tokens.append("$" + variable)
        else:
            tokens.append("x" if operator in ("X", "*") else operator)
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> str:
        token = self.peek()
        if token is None:
            raise ApertureError(f"Unexpected end of macro expression '{self.text}'")
        self.pos += 1
        return token

    def expression(self) -> Expression:
        node = self.term()
        while self.peek() in ("+", "-"):
            operator = self.take()
            node = BinaryOp(operator, node, self.term())
        return node

    def term(self) -> Expression:
        node = self.factor()
        while self.peek() in ("x", "/"):
            operator = self.take()
            node = BinaryOp(operator, node, self.factor())
        return node

    def factor(self) -> Expression:
        token = self.take()
        if token in ("+", "-"):
            return UnaryOp(token, self.factor())
        if token == "(":
            node = self.expression()
            if self.take() != ")":
                raise ApertureError(f"Unbalanced parenthesis in macro expression '{self.text}'")
            return node
        if token.startswith("$"):
            return Variable(int(token[1:]))
        if token in ("x", "/", ")"):
            raise ApertureError(f"Unexpected '{token}' in macro expression '{self.text}'")
        return Constant(float(token))


def parse_expression(text: str) -> Expression:
    """Parse macro arithmetic into an expression tree.

    Args:
        text: Expression such as ``"$1x0.5+0.1"``

    Returns:
        Expression tree

    Raises:
        ApertureError: If the text is not a valid macro expression

    Examples:
        >>> parse_expression("$1x2").evaluate({1: 1.5})
        3.0
    """
    parser = _Parser(text)
    node = parser.expression()
    if parser.peek() is not None:
        raise ApertureError(f"Trailing input in macro expression '{text}'")
    return node


def parse_modifiers(text: str) -> tuple[Expression, ...]:
    """Parse a comma separated modifier list, e.g. ``"1,$1,0,0"``."""
    return tuple(parse_expression(part) for part in text.split(","))
