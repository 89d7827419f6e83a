"""Recursive-descent evaluator for arithmetic expressions.

Grammar, from lowest to highest binding::

    expression := term (('+' | '-') term)*
    term       := power (('*' | '/') power)*
    power      := factor (('^' | '**') factor)*
    factor     := '(' expression ')' | '-' factor | '+' factor
                | number | name '(' expression ')'

Exponentiation folds to the left, so ``2^3^2`` is ``(2^3)^2 == 64``, and a
leading minus binds tighter than the power (``-2^2 == 4``).
"""

import functools
import logging
import math
import re
import string
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from cloudy_calc.errors import EvalError, ParseError
from cloudy_calc.numbers import round_half_up

logger = logging.getLogger(__name__)

DEGREES_PATTERN = re.compile(r"(\d+(?:\.\d+)?)degrees?")
WHITESPACE_PATTERN = re.compile(r"[\s,]")
EXPONENT_PATTERN = re.compile(r"[eE][+-]?[0-9]+")
NUMBER_CHARS = frozenset(string.digits + ".")
NAME_CHARS = frozenset(string.ascii_letters)
RESULT_SCALE = 1e12


def _math_function(func: Callable) -> Callable:
    """Wrap a ``math`` function so domain errors give NaN and overflow gives
    infinity instead of raising."""

    @functools.wraps(func)
    def wrapper(*args):
        try:
            return float(func(*args))
        except ValueError:
            return math.nan
        except OverflowError:
            return math.inf

    return wrapper


def _cbrt(x: float) -> float:
    return -math.pow(-x, 1 / 3) if x < 0 else math.pow(x, 1 / 3)


power = _math_function(math.pow)

FUNCTIONS = MappingProxyType({
    "sin": _math_function(math.sin),
    "cos": _math_function(math.cos),
    "tan": _math_function(math.tan),
    "sqrt": _math_function(math.sqrt),
    "log": _math_function(math.log10),
    "ln": _math_function(math.log),
    "abs": _math_function(math.fabs),
    "floor": _math_function(math.floor),
    "ceil": _math_function(math.ceil),
    "round": round_half_up,
})

# Used by the unit resolver's arithmetic fallbacks
EXTENDED_FUNCTIONS = MappingProxyType(dict(
    FUNCTIONS,
    asin=_math_function(math.asin),
    acos=_math_function(math.acos),
    atan=_math_function(math.atan),
    cbrt=_math_function(_cbrt),
    exp=_math_function(math.exp),
))


class ExpressionParser:
    """Parses and evaluates one preprocessed expression in a single pass."""

    def __init__(self, text: str, functions: Mapping[str, Callable[[float], float]]):
        self.text = text
        self.pos = 0
        self.functions = functions

    def peek(self) -> Optional[str]:
        return self.text[self.pos] if self.pos < len(self.text) else None

    def consume(self) -> Optional[str]:
        char = self.peek()
        if char is not None:
            self.pos += 1
        return char

    def parse(self) -> float:
        result = self.parse_expression()
        if self.pos < len(self.text):
            raise ParseError(f"Unexpected character: {self.text[self.pos]}")
        return result

    def parse_expression(self) -> float:
        result = self.parse_term()
        while self.peek() in ("+", "-"):
            operator = self.consume()
            right = self.parse_term()
            result = result + right if operator == "+" else result - right
        return result

    def parse_term(self) -> float:
        result = self.parse_power()
        while self.peek() in ("*", "/"):
            operator = self.consume()
            right = self.parse_power()
            if operator == "*":
                result *= right
            else:
                if right == 0:
                    raise EvalError("Division by zero")
                result /= right
        return result

    def parse_power(self) -> float:
        result = self.parse_factor()
        while True:
            if self.text.startswith("**", self.pos):
                self.pos += 2
            elif self.peek() == "^":
                self.pos += 1
            else:
                return result
            result = power(result, self.parse_factor())

    def parse_factor(self) -> float:
        char = self.peek()
        if char == "(":
            self.consume()
            result = self.parse_expression()
            if self.peek() != ")":
                raise ParseError("Missing closing parenthesis")
            self.consume()
            return result
        if char == "-":
            self.consume()
            return -self.parse_factor()
        if char == "+":
            self.consume()
            return self.parse_factor()
        if char in NUMBER_CHARS:
            return self.parse_number()
        if char in NAME_CHARS:
            return self.parse_function()
        raise ParseError("Expected number, function, or parenthesized expression")

    def parse_number(self) -> float:
        start = self.pos
        while self.peek() in NUMBER_CHARS:
            self.pos += 1
        exponent = EXPONENT_PATTERN.match(self.text, self.pos)
        if exponent:
            self.pos = exponent.end()
        literal = self.text[start:self.pos]
        try:
            return float(literal)
        except ValueError:
            raise ParseError(f"Invalid number: {literal}") from None

    def parse_function(self) -> float:
        start = self.pos
        while self.peek() in NAME_CHARS:
            self.pos += 1
        name = self.text[start:self.pos]
        if self.peek() != "(":
            raise ParseError("Expected ( after function name")
        self.consume()
        argument = self.parse_expression()
        if self.peek() != ")":
            raise ParseError("Expected )")
        self.consume()

        func = self.functions.get(name.lower())
        if func is None:
            raise ParseError(f"Unknown function: {name}")
        return func(argument)


def preprocess(expression: str) -> str:
    """Drop whitespace and thousands separators and turn ``30degrees`` into
    radians."""
    text = WHITESPACE_PATTERN.sub("", expression)
    return DEGREES_PATTERN.sub(
        lambda match: f"({match.group(1)}*{math.pi / 180!r})", text
    )


def evaluate_expression(
    expression: str,
    functions: Optional[Mapping[str, Callable[[float], float]]] = None,
) -> float:
    """Evaluate an arithmetic expression.

    Raises ParseError for malformed input and EvalError for division by zero
    or a non-finite result. The result is rounded to 12 decimal places.

    >>> evaluate_expression("2 + 3 * 4")
    14.0
    """
    text = preprocess(expression)
    parser = ExpressionParser(text, FUNCTIONS if functions is None else functions)
    try:
        result = parser.parse()
    except RecursionError:
        raise ParseError("Expression is nested too deeply") from None

    if not math.isfinite(result):
        raise EvalError("Result is not finite")
    scaled = result * RESULT_SCALE
    if not math.isfinite(scaled):
        return result
    logger.debug(f"Evaluated '{expression}' -> {result}")
    return round_half_up(scaled) / RESULT_SCALE
