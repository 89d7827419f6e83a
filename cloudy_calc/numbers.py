"""Number parsing and formatting helpers.

Results are displayed the way the browser calculator always displayed them,
so the fixed/precision/string conversions here follow JavaScript's Number
formatting: rounding is half away from zero on the exact binary value, and
exponent notation is used outside the 1e-7 .. 1e21 range.
"""

import math
import re
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Optional, Tuple

# Enough digits to hold the exact expansion of any double
EXACT_PRECISION = 1100

FLOAT_PREFIX_PATTERN = re.compile(
    r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))"
)
ARTIFACT_PATTERN = re.compile(r"0{5,}[12]$")
ZERO_FRACTION_PATTERN = re.compile(r"\.0+$")
TRAILING_ZEROS_PATTERN = re.compile(r"(\.\d*[1-9])0+$")


def parse_float(text) -> Optional[float]:
    """Parse the leading number of ``text`` like JavaScript's ``parseFloat``.

    ``"8.04672 km"`` gives 8.04672 and ``"km"`` gives None. Numbers are
    returned as floats unchanged.
    """
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return float(text)
    match = FLOAT_PREFIX_PATTERN.match(str(text))
    if not match:
        return None
    return float(match.group(1).replace("Infinity", "inf"))


def round_half_up(value: float) -> float:
    """``Math.round``: halves round towards positive infinity."""
    if not math.isfinite(value):
        return value
    return float(math.floor(value + 0.5))


def _shortest_digits(value: float) -> Tuple[str, int]:
    # value == 0.<digits> * 10 ** point, digits being the shortest round-trip form
    _, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    return digits, exponent + len(digit_tuple)


def _exponential(sign: str, digits: str, exponent: int) -> str:
    mantissa = digits[0]
    if len(digits) > 1:
        mantissa += "." + digits[1:]
    return f"{sign}{mantissa}e{'+' if exponent >= 0 else '-'}{abs(exponent)}"


def number_to_string(value: float) -> str:
    """Shortest text for ``value``, the way ``String(number)`` renders it."""
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    digits, point = _shortest_digits(abs(value))
    length = len(digits)
    if length <= point <= 21:
        return sign + digits + "0" * (point - length)
    if 0 < point <= 21:
        return sign + digits[:point] + "." + digits[point:]
    if -6 < point <= 0:
        return sign + "0." + "0" * -point + digits
    return _exponential(sign, digits, point - 1)


def to_fixed(value: float, digits: int) -> str:
    """``Number.prototype.toFixed``."""
    value = float(value)
    if not math.isfinite(value) or abs(value) >= 1e21:
        return number_to_string(value)
    if value == 0:
        value = 0.0
    with localcontext() as ctx:
        ctx.prec = EXACT_PRECISION
        quantized = Decimal(value).quantize(
            Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP
        )
    return format(quantized, "f")


def to_precision(value: float, precision: int) -> str:
    """``Number.prototype.toPrecision``."""
    value = float(value)
    if not math.isfinite(value):
        return number_to_string(value)
    if value == 0:
        return "0" if precision == 1 else "0." + "0" * (precision - 1)

    sign = "-" if value < 0 else ""
    with localcontext() as ctx:
        ctx.prec = EXACT_PRECISION
        exact = Decimal(abs(value))
        exponent = exact.adjusted()
        scaled = exact.scaleb(precision - 1 - exponent).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
        if scaled >= 10 ** precision:
            exponent += 1
            scaled = exact.scaleb(precision - 1 - exponent).quantize(
                Decimal(1), rounding=ROUND_HALF_UP
            )
    digits = str(int(scaled))

    if exponent < -6 or exponent >= precision:
        return _exponential(sign, digits, exponent)
    if exponent >= 0:
        whole, fraction = digits[: exponent + 1], digits[exponent + 1:]
        return sign + whole + ("." + fraction if fraction else "")
    return sign + "0." + "0" * (-exponent - 1) + digits


def get_decimal_places(text) -> int:
    """Number of characters after the first '.' of ``text`` (0 if none)."""
    text = str(text).strip()
    if "." not in text:
        return 0
    return len(text.split(".")[1])


def round_to_precision(value: float, precision: int) -> float:
    if precision == 0:
        return round_half_up(value)
    multiplier = 10 ** precision
    return round_half_up(value * multiplier) / multiplier


def format_number(value: float) -> str:
    """Render a computed number without floating-point noise.

    Tries 0 to 6 decimals and keeps the roundings that stay within 1e-9 of
    ``value``. Candidates ending in two or more zeros, or in a run of zeros
    followed by a stray 1 or 2, are rejected as artifacts. Among the rest,
    fewer trailing zeros win, then the lower precision. When nothing
    qualifies the value is shown with up to six decimals.

    >>> format_number(0.1 + 0.2)
    '0.3'
    >>> format_number(14.0)
    '14'
    """
    if not math.isfinite(value):
        return number_to_string(value)

    candidates = []
    for decimals in range(7):
        multiplier = 10 ** decimals
        rounded = round_half_up(value * multiplier) / multiplier
        if abs(value - rounded) >= 1e-9:
            continue
        text = to_fixed(rounded, decimals)
        fraction = text.split(".")[1] if "." in text else ""
        trailing_zeros = len(fraction) - len(fraction.rstrip("0"))
        if trailing_zeros >= 2 or ARTIFACT_PATTERN.search(text):
            continue
        candidates.append((decimals, rounded, trailing_zeros))

    if not candidates:
        # Six decimals without the padding zeros: log(2) shows as 0.30103
        text = to_fixed(round_to_precision(value, 6), 6)
        return ZERO_FRACTION_PATTERN.sub("", TRAILING_ZEROS_PATTERN.sub(r"\1", text))

    best = candidates[0]
    for candidate in candidates[1:]:
        precision, _, zeros = candidate
        best_precision, _, best_zeros = best
        if zeros == 0 and best_zeros != 0:
            best = candidate
        elif zeros == 0 and best_zeros == 0 and precision < best_precision:
            best = candidate
        elif zeros == 1 and best_zeros > 1:
            best = candidate
        elif best_zeros > 1 and precision > best_precision:
            best = candidate
    precision, rounded, _ = best

    return ZERO_FRACTION_PATTERN.sub("", to_fixed(rounded, precision))


def _split_decimal(value: float) -> Tuple[int, str, str]:
    text = format(Decimal(number_to_string(value)), "f")
    sign = 1
    if text.startswith("-"):
        sign, text = -1, text[1:]
    whole, _, fraction = text.partition(".")
    return sign, whole or "0", fraction


def precise_add(
    a: float,
    b: float,
    precision_a: Optional[int] = None,
    precision_b: Optional[int] = None,
) -> Tuple[float, int]:
    """Add two numbers digit-wise on their decimal text.

    The fractional parts are padded to a common width and the signed sum is
    carried out on integers, so ``0.1 + 0.2`` gives exactly 0.3. Returns the
    sum and the larger of the two precisions.
    """
    sign_a, whole_a, fraction_a = _split_decimal(a)
    sign_b, whole_b, fraction_b = _split_decimal(b)
    if precision_a is None:
        precision_a = len(fraction_a)
    if precision_b is None:
        precision_b = len(fraction_b)
    precision = max(precision_a, precision_b)
    width = max(precision, len(fraction_a), len(fraction_b))

    total = sign_a * int(whole_a + fraction_a.ljust(width, "0")) + sign_b * int(
        whole_b + fraction_b.ljust(width, "0")
    )
    sign = "-" if total < 0 else ""
    digits = str(abs(total)).rjust(width + 1, "0")
    if width:
        text = f"{sign}{digits[:-width]}.{digits[-width:]}"
    else:
        text = sign + digits
    return float(text), precision


def precise_subtract(
    a: float,
    b: float,
    precision_a: Optional[int] = None,
    precision_b: Optional[int] = None,
) -> Tuple[float, int]:
    return precise_add(a, -b, precision_a, precision_b)
