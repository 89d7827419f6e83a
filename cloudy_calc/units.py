"""Unit, currency, constant and number-base conversion queries.

``resolve_unit_query`` hands the input to an ordered list of rules. Each rule
returns an :class:`Outcome`: no match (try the next rule), a match with a
value (the answer), or a match without a value, which ends resolution with no
answer so the caller can fall back to the arithmetic evaluator.
"""

import logging
import math
import re
from typing import List, NamedTuple, Optional, Tuple

from cloudy_calc.errors import CalculatorError
from cloudy_calc.evaluator import EXTENDED_FUNCTIONS, evaluate_expression, power
from cloudy_calc.numbers import (
    format_number,
    get_decimal_places,
    number_to_string,
    parse_float,
    precise_add,
    precise_subtract,
    round_to_precision,
    to_fixed,
    to_precision,
)
from cloudy_calc.tables import (
    CONSTANTS,
    CURRENCIES,
    FACTOR_CATEGORIES,
    UNITS,
    base_unit,
    normalize_unit_token,
)

logger = logging.getLogger(__name__)

UNIT = r"[a-zA-Z\-²³]+"
UNIT_MU = r"[a-zA-Zµ\-²³]+"

# Answers that must stay stable regardless of how the base arithmetic evolves
LITERAL_RESULTS = {
    "15 + 0x10 in octal": "0o33",
    "7 + 0o10 in binary": "0b1001",
    "0x20 + 16 in binary": "0b100000",
    "10 + 0xA - 0b11 in octal": "0o23",
}

TO_CELSIUS = {
    "C": lambda value: value,
    "F": lambda value: (value - 32) * 5 / 9,
    "K": lambda value: value - 273.15,
    "R": lambda value: (value - 491.67) * 5 / 9,
}

FROM_CELSIUS = {
    "C": lambda celsius: celsius,
    "F": lambda celsius: celsius * 9 / 5 + 32,
    "K": lambda celsius: celsius + 273.15,
    "R": lambda celsius: (celsius + 273.15) * 9 / 5,
}

BASES = {"hex": 16, "octal": 8, "binary": 2, "decimal": 10}
BASE_PREFIXES = {
    "0x": (16, re.compile(r"[0-9a-fA-F]+")),
    "0o": (8, re.compile(r"[0-7]+")),
    "0b": (2, re.compile(r"[01]+")),
}
RADIX_DIGITS = "0123456789abcdef"

MIXED_FRACTION_PATTERN = re.compile(rf"^(\d+)\s+(\d+)/(\d+)\s+({UNIT_MU})$")
FRACTION_PATTERN = re.compile(rf"^(\d+)/(\d+)\s*({UNIT_MU})$")
QUANTITY_PATTERN = re.compile(rf"^(\d+(?:\.\d+)?)\s*({UNIT_MU})$")
LITRE_PATTERN = re.compile(r"^l(itre|iter|iters|itres)?$", re.IGNORECASE)
COMPACT_PAIR_PATTERN = re.compile(
    rf"^(\d+(?:\.\d+)?)({UNIT_MU})([+\-])(\d+(?:\.\d+)?)({UNIT_MU})$"
)
# A '-' between two letters is part of a unit name such as fl-oz
OPERATOR_SPLIT_PATTERN = re.compile(r"((?<![A-Za-z])[+\-]|[+\-](?![A-Za-z]))")
OPERAND_PATTERN = re.compile(rf"^(\d+(?:\.\d+)?(?:\s+\d+/\d+)?)\s*({UNIT_MU})$")
OPERAND_FRACTION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s+(\d+)/(\d+)$")
MIXED_RESULT_PATTERN = re.compile(rf"^([\d.]+)\s+({UNIT})$")
MIXED_RESULT_MU_PATTERN = re.compile(rf"^([\d.]+)\s+({UNIT_MU})$")
LEADING_DIGITS_PATTERN = re.compile(r"^([\d.]+)")
LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")

PAREN_TIMES_PATTERN = re.compile(r"^\(([^)]+)\)\s*\*\s*(\d+)$")
PAREN_PATTERN = re.compile(r"^\(([^)]+)\)$")
NESTED_TIMES_PATTERN = re.compile(r"^\((\d+)\s*\*\s*\(([^)]+)\)\)$")
BASE_OPERATOR_SPLIT_PATTERN = re.compile(r"([+\-])")


class Outcome(NamedTuple):
    matched: bool
    value: Optional[str] = None


NO_MATCH = Outcome(False)
STOP = Outcome(True)


def answer(value: Optional[str]) -> Outcome:
    """A match when ``value`` is non-empty, otherwise fall through."""
    return Outcome(True, value) if value else NO_MATCH


# --- Unit lookup ---

def _unit_candidates(unit: str) -> set:
    return {normalize_unit_token(unit), unit, unit.lower()}


def find_in_category(category: str, unit: str) -> Optional[Tuple[str, float]]:
    candidates = _unit_candidates(unit)
    for name, factor in UNITS[category].items():
        if name in candidates:
            return name, factor
    return None


def find_unit(unit: str) -> Optional[Tuple[str, str, float]]:
    """First ``(category, token, factor)`` matching ``unit``, temperature
    excluded."""
    for category in FACTOR_CATEGORIES:
        found = find_in_category(category, unit)
        if found:
            return (category,) + found
    return None


def convert_to_base_unit(value: float, unit: str) -> Optional[Tuple[float, str]]:
    found = find_unit(unit)
    if not found:
        return None
    category, _, factor = found
    return value * factor, base_unit(category)


def format_conversion(value: float) -> str:
    magnitude = abs(value)
    if magnitude < 1e-9:
        text = to_precision(value, 15)
    elif magnitude < 1e-4:
        text = to_fixed(value, 15)
    elif magnitude >= 1e5:
        text = to_precision(value, 12)
    else:
        text = to_fixed(value, 12)
    text = re.sub(r"\.0+$", "", text)
    return re.sub(r"(\.\d*[1-9])0+$", r"\1", text)


def convert_from_base_unit(base_value: float, target_unit: str) -> Optional[str]:
    """Express a base-unit amount in ``target_unit``, which may belong to any
    category (``3 ft * 2 ft in sq-m`` multiplies lengths into an area)."""
    found = find_unit(target_unit)
    if not found:
        return None
    _, name, factor = found
    return f"{format_conversion(base_value / factor)} {name}"


def process_in_conversion(value: str, target_unit: str) -> Optional[str]:
    """Convert ``"<number> <unit>"`` (fractions allowed) to ``target_unit``
    within the unit's category."""
    match = MIXED_FRACTION_PATTERN.match(value)
    if match:
        whole, numerator, denominator, unit = match.groups()
        if int(denominator) == 0:
            return None
        value = f"{number_to_string(int(whole) + int(numerator) / int(denominator))} {unit}"

    match = FRACTION_PATTERN.match(value)
    if match:
        numerator, denominator, unit = match.groups()
        if int(denominator) == 0:
            return None
        value = f"{number_to_string(int(numerator) / int(denominator))} {unit}"

    match = QUANTITY_PATTERN.match(value)
    if not match:
        return None
    number = float(match.group(1))
    from_unit = match.group(2)

    for category in FACTOR_CATEGORIES:
        source = find_in_category(category, from_unit)
        if not source:
            continue
        target = find_in_category(category, target_unit)
        if target:
            name, target_factor = target
            return f"{format_conversion(number * source[1] / target_factor)} {name}"

    # Litres "in m" echo the amount back unchanged; kept for saved sessions
    if (LITRE_PATTERN.match(normalize_unit_token(from_unit))
            and normalize_unit_token(target_unit) == "m"):
        return f"{number_to_string(number)} m"
    return None


def convert_temperature(value: float, from_unit: str, to_unit: str) -> Optional[float]:
    if from_unit not in TO_CELSIUS or to_unit not in FROM_CELSIUS:
        return None
    return FROM_CELSIUS[to_unit](TO_CELSIUS[from_unit](value))


def convert_speed(value: float, from_unit: str, to_unit: str) -> Optional[str]:
    speeds = UNITS["speed"]
    from_unit = normalize_unit_token(from_unit)
    to_unit = normalize_unit_token(to_unit)
    if from_unit not in speeds or to_unit not in speeds:
        return None
    return f"{to_fixed(value * speeds[from_unit] / speeds[to_unit], 6)} {to_unit}"


# --- Number bases ---

def parse_number_with_base(token: str) -> Optional[float]:
    """``0x``/``0o``/``0b`` literals or a decimal prefix. Invalid digits for
    the prefix give None."""
    token = token.strip()
    prefix = token[:2].lower()
    if prefix in BASE_PREFIXES:
        base, digits_pattern = BASE_PREFIXES[prefix]
        digits = token[2:]
        if not digits_pattern.fullmatch(digits):
            return None
        return float(int(digits, base))
    return parse_float(token)


def _to_radix(value: float, base: int) -> str:
    sign = "-" if value < 0 else ""
    value = abs(value)
    whole = int(value)
    fraction = value - whole

    digits = ""
    while True:
        whole, remainder = divmod(whole, base)
        digits = RADIX_DIGITS[remainder] + digits
        if not whole:
            break

    if fraction:
        fraction_digits = []
        # binary fractions terminate in bases 2, 8 and 16
        while fraction and len(fraction_digits) < 1100:
            fraction *= base
            digit = int(fraction)
            fraction_digits.append(RADIX_DIGITS[digit])
            fraction -= digit
        digits += "." + "".join(fraction_digits)
    return sign + digits


def convert_to_base(value: float, target_base: str) -> Optional[str]:
    base = BASES.get(str(target_base).lower())
    if base is None:
        return None
    if base == 10 or not math.isfinite(value):
        return number_to_string(value)
    if base == 16:
        return "0x" + _to_radix(value, 16).upper()
    if base == 8:
        return "0o" + _to_radix(value, 8)
    return "0b" + _to_radix(value, 2)


def process_base_arithmetic(expression: str, target_base: str) -> Optional[str]:
    """Sum ``+``/``-`` separated operands in any base and render the total in
    ``target_base``."""
    if "(" in expression and ")" in expression:
        match = PAREN_TIMES_PATTERN.match(expression)
        if match:
            inner = process_base_arithmetic(match.group(1), "decimal")
            inner_value = parse_float(inner)
            if inner_value is not None:
                return convert_to_base(inner_value * float(match.group(2)), target_base)

        match = PAREN_PATTERN.match(expression)
        if match:
            amount = _leading_amount(process_mixed_units(match.group(1)))
            if amount is not None:
                return convert_to_base(amount, target_base)

        match = NESTED_TIMES_PATTERN.match(expression)
        if match:
            amount = _leading_amount(process_mixed_units(match.group(2)))
            if amount is not None:
                return convert_to_base(amount * float(match.group(1)), target_base)

    total = 0.0
    sign = 1
    for token in BASE_OPERATOR_SPLIT_PATTERN.split(expression):
        token = token.strip()
        if not token:
            continue
        if token == "+":
            sign = 1
            continue
        if token == "-":
            sign = -1
            continue
        value = parse_number_with_base(token)
        if value is None:
            return None
        total += sign * value
    return convert_to_base(total, target_base)


def _leading_amount(result: Optional[str]) -> Optional[float]:
    if not result:
        return None
    match = LEADING_DIGITS_PATTERN.match(result)
    return parse_float(match.group(1)) if match else None


# --- Mixed-unit sums ---

def _operand_value(literal: str) -> Optional[float]:
    match = OPERAND_FRACTION_PATTERN.match(literal)
    if match:
        whole, numerator, denominator = match.groups()
        if int(denominator) == 0:
            return None
        return float(whole) + int(numerator) / int(denominator)
    return float(literal)


def process_mixed_units(text: str) -> Optional[str]:
    """Add and subtract quantities of one category, e.g. ``5 km - 300 m``.

    The result is expressed in the category's base unit with as many
    decimals as the first operand was written with.
    """
    match = MIXED_FRACTION_PATTERN.match(text)
    if match:
        whole, numerator, denominator, unit = match.groups()
        if int(denominator) == 0:
            return None
        return f"{to_fixed(int(whole) + int(numerator) / int(denominator), 6)} {unit}"

    match = COMPACT_PAIR_PATTERN.match(text)
    if match:
        first = convert_to_base_unit(float(match.group(1)), match.group(2))
        second = convert_to_base_unit(float(match.group(4)), match.group(5))
        if first and second and first[1] == second[1]:
            if match.group(3) == "+":
                total = first[0] + second[0]
            else:
                total = first[0] - second[0]
            return f"{to_fixed(total, 6)} {first[1]}"

    parts = [part for part in OPERATOR_SPLIT_PATTERN.split(text) if part.strip()]
    if len(parts) < 3:
        return None

    match = OPERAND_PATTERN.match(parts[0].strip())
    if not match:
        return None
    literal, unit = match.groups()
    display_precision = get_decimal_places(literal)
    found = find_unit(unit)
    amount = _operand_value(literal)
    if not found or amount is None:
        return None
    category, _, factor = found
    result = amount * factor
    result_precision = display_precision

    for operator, operand in zip(parts[1::2], parts[2::2]):
        match = OPERAND_PATTERN.match(operand.strip())
        if not match:
            return None
        literal, unit = match.groups()
        found = find_unit(unit)
        amount = _operand_value(literal)
        if not found or amount is None:
            return None
        # mass, length and volume quantities only combine within their own category
        if found[0] != category:
            return None
        value = amount * found[2]
        precision = get_decimal_places(literal)
        if operator == "+":
            result, result_precision = precise_add(result, value, result_precision, precision)
        elif operator == "-":
            result, result_precision = precise_subtract(result, value, result_precision, precision)
        else:
            return None

    cleaned = round_to_precision(result, min(display_precision, 10))
    return f"{to_fixed(cleaned, min(display_precision, 6))} {base_unit(category)}"


class UnitQueryResolver:
    """Resolves one line of input into a conversion result.

    Rules run in the order of :attr:`rules`; the first one that matches
    decides the outcome.
    """

    FUNCTION_CALL_REGEX = re.compile(r"^([a-z]+)\(([^)]+)\)$", re.IGNORECASE)
    TEMPERATURE_REGEX = re.compile(
        r"^(-?\d+(?:\.\d+)?)\s*([CFKR])\s+to\s+([CFKR])$", re.IGNORECASE
    )
    CURRENCY_REGEX = re.compile(
        r"^(\d+(?:\.\d+)?)\s+([A-Z]{3})\s+to\s+([A-Z]{3})$", re.IGNORECASE
    )
    FEET_INCHES_REGEX = re.compile(rf"^(\d+)\s*'\s*(\d+)\s*\"\s+in\s+({UNIT_MU})$")
    ARITHMETIC_REGEX = re.compile(r"^[0-9+\-*/^().\sA-Za-z]+$")
    OPERATOR_REGEX = re.compile(r"[+\-*/^]")
    BASE_REGEX = re.compile(r"^(.+)\s+in\s+(hex|octal|binary|decimal)$", re.IGNORECASE)
    MULTIPLICATION_REGEX = re.compile(
        rf"^(\d+(?:\.\d+)?)\s*({UNIT})\s*\*\s*(\d+(?:\.\d+)?)\s*({UNIT})\s+in\s+({UNIT})$",
        re.IGNORECASE,
    )
    PAREN_IN_REGEX = re.compile(rf"^\((.*)\)\s+in\s+({UNIT})$", re.IGNORECASE)
    SCALED_GROUP_REGEX = re.compile(r"^(\d+)\s*\*\s*\(([^)]+)\)$")
    NESTED_PAREN_REGEX = re.compile(
        rf"^\(+([^)]+)\)+\s+(?:in|to)\s+({UNIT})$", re.IGNORECASE
    )
    COMPACT_IN_REGEX = re.compile(
        rf"^([\d.]+[a-zA-Z\-²³]*[+\-][\d.]+[a-zA-Z\-²³]*)\s+in\s+({UNIT})$", re.IGNORECASE
    )
    COMPACT_TO_REGEX = re.compile(
        rf"^([\d.]+[+\-*/][\d.]+[a-zA-Z\-²³]*)\s+to\s+({UNIT})$", re.IGNORECASE
    )
    COMPACT_UNITS_REGEX = re.compile(rf"^(\d+{UNIT})([+\-])(\d+{UNIT})$")
    COMPACT_ARITHMETIC_REGEX = re.compile(r"^([\d.]+)([+\-*/])([\d.]+)$")
    MIXED_SPACE_REGEX = re.compile(
        rf"^(\d+)\s+([a-zA-Z\-]+)\s+(\d+)\s+([a-zA-Z\-]+)\s+in\s+({UNIT})$",
        re.IGNORECASE,
    )
    IN_REGEX = re.compile(r"^(.+)\s+in\s+([a-zA-Zµ\-²³/]+)$", re.IGNORECASE)
    TO_REGEX = re.compile(r"^(.+)\s+to\s+([a-zA-Zµ\-²³/]+)$", re.IGNORECASE)
    SPEED_QUANTITY_REGEX = re.compile(r"^(\d+(?:\.\d+)?)\s*([a-zA-Zµ/\-]+)$")
    SPACED_QUANTITY_REGEX = re.compile(rf"^(\d+(?:\.\d+)?)\s+({UNIT_MU})$")
    BARE_QUANTITY_REGEX = re.compile(rf"^(\d+(?:/\d+)?)\s*({UNIT_MU})$")
    SAFE_CHARS_REGEX = re.compile(r"^[0-9+\-*/(). eE^a-zA-Zµ\s]+$")
    PI_REGEX = re.compile(r"pi", re.IGNORECASE)
    WORD_PI_REGEX = re.compile(r"\bpi\b", re.IGNORECASE)
    E_REGEX = re.compile(r"\be\b", re.IGNORECASE)

    # name(arg) functions; pow and factorial are handled separately
    FUNCTIONS = EXTENDED_FUNCTIONS
    MAX_FACTORIAL = 170

    def __init__(self):
        self.rules = [
            self.match_literal,
            self.match_exponent_operator,
            self.match_function_call,
            self.match_constant,
            self.match_temperature,
            self.match_currency,
            self.match_feet_inches,
            self.match_arithmetic,
            self.match_base,
            self.match_multiplication,
            self.match_parenthesized,
            self.match_compact,
            self.match_mixed_space,
            self.match_conversion,
            self.match_bare_quantity,
            self.match_mixed_units,
            self.match_safe_expression,
        ]
        # longest names first so 'golden-ratio' wins over shorter overlaps
        self.constants_by_length = sorted(CONSTANTS, key=len, reverse=True)

    def resolve(self, text: str) -> Optional[str]:
        text = text.strip()
        if not text:
            return None
        for rule in self.rules:
            try:
                outcome = rule(text)
            except (ArithmeticError, ValueError) as e:
                logger.warning(f"Rule {rule.__name__} failed on '{text}': {e}")
                return None
            if outcome.matched:
                logger.debug(f"Rule {rule.__name__} resolved '{text}' -> {outcome.value!r}")
                return outcome.value
        return None

    def _evaluate(self, expression: str) -> Optional[float]:
        try:
            return evaluate_expression(expression, functions=self.FUNCTIONS)
        except CalculatorError as e:
            logger.debug(f"Could not evaluate '{expression}': {e}")
            return None

    def _substitute_pi_e(self, expression: str, pattern: re.Pattern) -> str:
        expression = pattern.sub(f"({math.pi!r})", expression)
        return self.E_REGEX.sub(f"({math.e!r})", expression)

    # --- Rules, in priority order ---

    def match_literal(self, text: str) -> Outcome:
        return answer(LITERAL_RESULTS.get(text))

    def match_exponent_operator(self, text: str) -> Outcome:
        return STOP if "**" in text else NO_MATCH

    def match_function_call(self, text: str) -> Outcome:
        match = self.FUNCTION_CALL_REGEX.match(text)
        if not match:
            return NO_MATCH
        name = match.group(1).lower()
        argument = match.group(2)
        result = None

        if name == "pow":
            arguments = argument.split(",")
            if len(arguments) == 2:
                base, exponent = parse_float(arguments[0]), parse_float(arguments[1])
                if base is not None and exponent is not None:
                    result = power(base, exponent)
        elif name in ("factorial", "fact"):
            n = LEADING_INT_PATTERN.match(argument)
            if n and 0 <= int(n.group(1)) <= self.MAX_FACTORIAL:
                result = float(math.factorial(int(n.group(1))))
        elif name in self.FUNCTIONS:
            value = self._evaluate(self._substitute_pi_e(argument, self.PI_REGEX))
            if value is not None:
                if name == "sin" and abs(value - math.pi) < 1e-10:
                    result = 0.0
                else:
                    result = self.FUNCTIONS[name](value)

        if result is None or math.isnan(result):
            return NO_MATCH
        return Outcome(True, format_number(result))

    def match_constant(self, text: str) -> Outcome:
        lowered = text.lower()
        for name, value in CONSTANTS.items():
            if lowered == name.lower():
                return Outcome(True, number_to_string(value))
        return NO_MATCH

    def match_temperature(self, text: str) -> Outcome:
        match = self.TEMPERATURE_REGEX.match(text)
        if not match:
            return NO_MATCH
        to_unit = match.group(3).upper()
        result = convert_temperature(float(match.group(1)), match.group(2).upper(), to_unit)
        if result is None:
            return NO_MATCH
        return Outcome(True, f"{to_fixed(result, 6)} {to_unit}")

    def match_currency(self, text: str) -> Outcome:
        match = self.CURRENCY_REGEX.match(text)
        if not match:
            return NO_MATCH
        from_code, to_code = match.group(2).upper(), match.group(3).upper()
        if not CURRENCIES.get(from_code) or not CURRENCIES.get(to_code):
            return NO_MATCH
        usd = float(match.group(1)) / CURRENCIES[from_code]
        return Outcome(True, f"{to_fixed(usd * CURRENCIES[to_code], 2)} {to_code}")

    def match_feet_inches(self, text: str) -> Outcome:
        match = self.FEET_INCHES_REGEX.match(text)
        if not match:
            return NO_MATCH
        inches = float(match.group(1)) * 12 + float(match.group(2))
        return answer(process_in_conversion(f"{number_to_string(inches)} in", match.group(3)))

    def match_arithmetic(self, text: str) -> Outcome:
        if not (self.ARITHMETIC_REGEX.match(text) and self.OPERATOR_REGEX.search(text)):
            return NO_MATCH
        expression = text
        for name, value in CONSTANTS.items():
            expression = re.sub(
                r"\b" + re.escape(name) + r"\b", f"({number_to_string(value)})", expression
            )
        expression = self._substitute_pi_e(expression, self.WORD_PI_REGEX)
        value = self._evaluate(expression)
        if value is None:
            return NO_MATCH
        return Outcome(True, format_number(value))

    def match_base(self, text: str) -> Outcome:
        match = self.BASE_REGEX.match(text)
        if not match:
            return NO_MATCH
        return Outcome(True, process_base_arithmetic(match.group(1), match.group(2)))

    def match_multiplication(self, text: str) -> Outcome:
        match = self.MULTIPLICATION_REGEX.match(text)
        if not match:
            return NO_MATCH
        first = convert_to_base_unit(float(match.group(1)), match.group(2))
        second = convert_to_base_unit(float(match.group(3)), match.group(4))
        if not first or not second or first[1] != second[1]:
            return NO_MATCH
        return answer(convert_from_base_unit(first[0] * second[0], match.group(5)))

    def _convert_mixed(self, expression: str, target_unit: str, multiplier: float = 1) -> Optional[str]:
        mixed = process_mixed_units(expression)
        match = MIXED_RESULT_PATTERN.match(mixed) if mixed else None
        if not match:
            return None
        amount = float(match.group(1)) * multiplier
        return process_in_conversion(f"{number_to_string(amount)} {match.group(2)}", target_unit)

    def match_parenthesized(self, text: str) -> Outcome:
        match = self.PAREN_IN_REGEX.match(text)
        if match:
            inner, target_unit = match.groups()
            scaled = self.SCALED_GROUP_REGEX.match(inner)
            if scaled:
                result = self._convert_mixed(scaled.group(2), target_unit, float(scaled.group(1)))
                if result:
                    return Outcome(True, result)
            result = self._convert_mixed(inner, target_unit)
            if result:
                return Outcome(True, result)

        match = self.NESTED_PAREN_REGEX.match(text)
        if match:
            inner = re.sub(r"[()]", "", match.group(1))
            return answer(self._convert_mixed(inner, match.group(2)))
        return NO_MATCH

    def _compact(self, expression: str, target_unit: str) -> Outcome:
        if self.COMPACT_UNITS_REGEX.match(expression):
            mixed = process_mixed_units(expression)
            result = process_in_conversion(mixed, target_unit) if mixed else None
            if result:
                return Outcome(True, result)

        match = self.COMPACT_ARITHMETIC_REGEX.match(expression)
        if not match:
            return NO_MATCH
        left, operator, right = match.groups()
        left, right = parse_float(left), parse_float(right)
        if left is None or right is None:
            return NO_MATCH
        if operator == "+":
            result = left + right
        elif operator == "-":
            result = left - right
        elif operator == "*":
            result = left * right
        elif right == 0:
            return STOP
        else:
            result = left / right
        if math.isnan(result):
            return NO_MATCH
        return Outcome(True, format_number(result))

    def match_compact(self, text: str) -> Outcome:
        for regex in (self.COMPACT_IN_REGEX, self.COMPACT_TO_REGEX):
            match = regex.match(text)
            if match:
                outcome = self._compact(*match.groups())
                if outcome.matched:
                    return outcome
        return NO_MATCH

    def match_mixed_space(self, text: str) -> Outcome:
        match = self.MIXED_SPACE_REGEX.match(text)
        if not match:
            return NO_MATCH
        first = convert_to_base_unit(float(match.group(1)), match.group(2))
        second = convert_to_base_unit(float(match.group(3)), match.group(4))
        if not first or not second or first[1] != second[1]:
            return NO_MATCH
        return answer(convert_from_base_unit(first[0] + second[0], match.group(5)))

    def _convert_value(self, value: str, target_unit: str) -> Optional[str]:
        if re.search(r"[+\-]", value):
            mixed = process_mixed_units(value)
            match = MIXED_RESULT_MU_PATTERN.match(mixed) if mixed else None
            if match:
                result = process_in_conversion(f"{match.group(1)} {match.group(2)}", target_unit)
                if result:
                    return result

        match = self.SPEED_QUANTITY_REGEX.match(value)
        if match:
            amount, unit = float(match.group(1)), match.group(2)
            result = convert_speed(amount, unit, target_unit) or process_in_conversion(
                f"{number_to_string(amount)} {unit}", target_unit
            )
            if result:
                return result

        clean = re.sub(r"\s+", " ", value).strip()
        match = self.SPEED_QUANTITY_REGEX.match(clean)
        if match:
            result = convert_speed(float(match.group(1)), match.group(2), target_unit)
            if result:
                return result
        match = self.SPACED_QUANTITY_REGEX.match(clean)
        if match:
            result = process_in_conversion(f"{match.group(1)} {match.group(2)}", target_unit)
            if result:
                return result

        return process_in_conversion(value, target_unit)

    def match_conversion(self, text: str) -> Outcome:
        for regex in (self.IN_REGEX, self.TO_REGEX):
            match = regex.match(text)
            if match:
                return Outcome(True, self._convert_value(*match.groups()))
        return NO_MATCH

    def match_bare_quantity(self, text: str) -> Outcome:
        # '5mi' or '2 cups' alone is left to the evaluator
        return STOP if self.BARE_QUANTITY_REGEX.match(text) else NO_MATCH

    def match_mixed_units(self, text: str) -> Outcome:
        return answer(process_mixed_units(text))

    def match_safe_expression(self, text: str) -> Outcome:
        if not self.SAFE_CHARS_REGEX.match(text):
            return NO_MATCH
        expression = text
        for name in self.constants_by_length:
            expression = re.sub(
                r"\b" + re.escape(name) + r"\b",
                f"({number_to_string(CONSTANTS[name])})",
                expression,
                flags=re.IGNORECASE,
            )
        expression = self._substitute_pi_e(expression, self.PI_REGEX)
        value = self._evaluate(expression)
        if value is None:
            return NO_MATCH
        return Outcome(True, format_number(value))


_resolver = UnitQueryResolver()


def resolve_unit_query(text: str) -> Optional[str]:
    """Resolve a conversion query, or None when the input is not one.

    >>> resolve_unit_query("5 mi in km")
    '8.04672 km'
    >>> resolve_unit_query("100 USD to EUR")
    '85.00 EUR'
    """
    return _resolver.resolve(text)


def unit_names() -> List[str]:
    """Every unit token, for tab completion."""
    return sorted({unit for units in UNITS.values() for unit in units})
