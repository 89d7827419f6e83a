"""Static conversion tables: units, physical constants and currency rates.

All tables are read-only mappings shared by every session.
"""

import math
from types import MappingProxyType

_DRAM = 0.028349523125 / 16

# Factors are relative to each category's base unit (the first entry with a
# factor of exactly 1). Temperature is converted with formulas, not factors.
UNITS = MappingProxyType({
    "length": MappingProxyType({
        "m": 1, "meter": 1, "metre": 1, "meters": 1, "metres": 1,
        "km": 1000, "kilometer": 1000, "kilometre": 1000,
        "kilometers": 1000, "kilometres": 1000,
        "cm": 0.01, "centimeter": 0.01, "centimetre": 0.01,
        "centimeters": 0.01, "centimetres": 0.01,
        "mm": 0.001, "millimeter": 0.001, "millimetre": 0.001,
        "millimeters": 0.001, "millimetres": 0.001,
        "mi": 1609.344, "mile": 1609.344, "miles": 1609.344,
        "yd": 0.9144, "yard": 0.9144, "yards": 0.9144,
        "ft": 0.3048, "foot": 0.3048, "feet": 0.3048,
        "in": 0.0254, "inch": 0.0254, "inches": 0.0254,
        "nm": 1e-9, "nanometer": 1e-9, "nanometre": 1e-9,
        "nanometers": 1e-9, "nanometres": 1e-9,
        "um": 1e-6, "micrometer": 1e-6, "micrometre": 1e-6,
        "micrometers": 1e-6, "micrometres": 1e-6,
        "light-year": 9.461e15, "ly": 9.461e15, "lightyear": 9.461e15,
        "astronomical-unit": 1.496e11, "au": 1.496e11,
        "parsec": 3.086e16, "pc": 3.086e16,
        # historical value, kept so saved results keep converting the same way
        "angstrom": 1e-13,
        "Å": 1e-10, "ang": 1e-10,
    }),
    "mass": MappingProxyType({
        "kg": 1, "kilogram": 1, "kilograms": 1, "kilo": 1,
        "g": 0.001, "gram": 0.001, "grams": 0.001,
        "mg": 1e-6, "milligram": 1e-6, "milligrams": 1e-6,
        "lb": 0.45359237, "pound": 0.45359237, "pounds": 0.45359237,
        "lbs": 0.45359237,
        "oz": 0.028349523125, "ounce": 0.028349523125,
        "ounces": 0.028349523125,
        "ton": 907.18474, "short-ton": 907.18474,
        "metric-ton": 1000, "tonne": 1000,
        "slug": 14.59390,
        "stone": 6.35029318, "st": 6.35029318,
        "carat": 0.0002, "ct": 0.0002,
        "µg": 1e-9, "ug": 1e-9, "microgram": 1e-9, "micrograms": 1e-9,
        "ng": 1e-12, "nanogram": 1e-12, "nanograms": 1e-12,
        "pg": 1e-15, "picogram": 1e-15, "picograms": 1e-15,
        "dr": _DRAM, "dram": _DRAM, "drams": _DRAM,
        "gr": 0.00006479891, "grain": 0.00006479891, "grains": 0.00006479891,
    }),
    "volume": MappingProxyType({
        "l": 1, "liter": 1, "litre": 1, "liters": 1, "litres": 1,
        "ml": 0.001, "milliliter": 0.001, "millilitre": 0.001,
        "milliliters": 0.001, "millilitres": 0.001,
        "gal": 3.785411784, "gallon": 3.785411784, "gallons": 3.785411784,
        "qt": 0.946352946, "quart": 0.946352946, "quarts": 0.946352946,
        "pt": 0.473176473, "pint": 0.473176473, "pints": 0.473176473,
        "cup": 0.236588236, "cups": 0.236588236,
        "tablespoon": 0.01478676478125, "tablespoons": 0.01478676478125,
        "teaspoon": 0.00492892159375, "teaspoons": 0.00492892159375,
        "fl-oz": 0.0295735295625, "fluid-ounce": 0.0295735295625,
        "fluid-ounces": 0.0295735295625,
        "cubic-m": 1000, "cubic-cm": 0.001,
        "m³": 1000, "cm³": 0.001, "cc": 0.001,
        "tbsp": 0.01478676478125, "tbs": 0.01478676478125,
        "tsp": 0.00492892159375,
    }),
    "temperature": MappingProxyType({
        "C": "C", "F": "F", "K": "K", "R": "R",
    }),
    "area": MappingProxyType({
        "sq-m": 1, "m²": 1,
        "sq-km": 1e6, "km²": 1e6,
        "sq-cm": 1e-4, "cm²": 1e-4,
        "sq-mi": 2589988.110336, "mi²": 2589988.110336,
        "sq-yd": 0.83612736, "yd²": 0.83612736,
        "sq-ft": 0.09290304, "ft²": 0.09290304,
        "sq-in": 0.00064516, "in²": 0.00064516,
        "acre": 4046.8564224, "acres": 4046.8564224,
        "hectare": 10000, "hectares": 10000, "ha": 10000,
        "mm²": 1e-6,
    }),
    "speed": MappingProxyType({
        "m/s": 1, "meters/second": 1, "metres/second": 1,
        "km/h": 0.277778, "kmh": 0.277778,
        "kilometers/hour": 0.277778, "kilometres/hour": 0.277778,
        "mi/h": 0.44704, "mph": 0.44704, "miles/hour": 0.44704,
        "ft/s": 0.3048, "fps": 0.3048, "feet/second": 0.3048,
        "knot": 0.514444, "knots": 0.514444,
        "mach": 340.29,
        "c": 299792458, "lightspeed": 299792458,
    }),
    "time": MappingProxyType({
        "s": 1, "sec": 1, "second": 1, "seconds": 1,
        "ms": 0.001, "millisecond": 0.001, "milliseconds": 0.001,
        "us": 0.000001, "µs": 0.000001,
        "microsecond": 0.000001, "microseconds": 0.000001,
        "ns": 1e-9, "nanosecond": 1e-9, "nanoseconds": 1e-9,
        "ps": 1e-12, "picosecond": 1e-12, "picoseconds": 1e-12,
        "fs": 1e-15, "femtosecond": 1e-15, "femtoseconds": 1e-15,
        "as": 1e-18, "attosecond": 1e-18, "attoseconds": 1e-18,
        "min": 60, "minute": 60, "minutes": 60,
        "h": 3600, "hour": 3600, "hours": 3600, "hr": 3600,
        "day": 86400, "days": 86400,
        "week": 604800, "weeks": 604800,
        "month": 2592000, "months": 2592000,
        "year": 31536000, "years": 31536000,
        "decade": 315360000,
        "century": 3153600000,
        "millennium": 31536000000,
    }),
})

# Categories whose units convert by factor
FACTOR_CATEGORIES = tuple(name for name in UNITS if name != "temperature")

KNOWN_UNITS = frozenset(unit for units in UNITS.values() for unit in units)

UNIT_ALIASES = MappingProxyType({
    "liters": "liter", "litres": "litre",
    "lbs": "lb", "pounds": "lb",
    "ounces": "oz",
    "feet": "ft", "inches": "in",
    "hours": "h", "minutes": "min", "seconds": "s",
    "days": "day", "weeks": "week", "months": "month", "years": "year",
    "cups": "cup", "pints": "pt", "quarts": "qt", "gallons": "gal",
    "grams": "g", "kilograms": "kg", "kilos": "kg",
    "miles": "mi", "yards": "yd",
    "centimeters": "centimeter", "centimetres": "centimetre",
    "millimeters": "millimeter", "millimetres": "millimetre",
    "nanometers": "nanometer", "nanometres": "nanometre",
    "micrometers": "micrometer", "micrometres": "micrometre",
    "metres": "metre", "meters": "meter",
    "kilometres": "kilometre", "kilometers": "kilometer",
    "millilitres": "millilitre", "milliliters": "milliliter",
})

CONSTANTS = MappingProxyType({
    "pi": math.pi,
    "e": math.e,
    "h": 6.62607015e-34,  # Planck
    "c": 299792458,  # speed of light
    "G": 6.67430e-11,
    "hbar": 1.054571817e-34,
    "k": 1.380649e-23,  # Boltzmann
    "me": 9.1093837015e-31,
    "mp": 1.67262192369e-27,
    "mn": 1.67492749804e-27,
    "qe": 1.602176634e-19,
    "mu0": 1.25663706212e-6,
    "eps0": 8.8541878128e-12,
    "alpha": 0.0072973525693,
    "R": 8.314462618,
    "NA": 6.02214076e23,
    "F": 96485.33212,
    "kB": 1.380649e-23,
    "sigma": 5.670374419e-8,
    "Rydberg": 10973731.568160,
    "golden-ratio": 1.618033988749895,
    "phi": 1.618033988749895,
    "silver-ratio": 2.414213562373095,
    "euler-mascheroni": 0.5772156649015329,
    "gamma": 0.5772156649015329,
    "conway-constant": 1.303577269034296,
    "khinchin-constant": 2.685452001065306,
    "glaisher-kinkelin": 1.2824271291006226,
})

# Static rates relative to USD
CURRENCIES = MappingProxyType({
    "USD": 1,
    "EUR": 0.85,
    "GBP": 0.73,
    "JPY": 110.0,
    "CAD": 1.25,
    "AUD": 1.35,
    "CHF": 0.92,
    "CNY": 6.45,
})


def normalize_unit_token(unit: str) -> str:
    """Lower-case a unit token and map plurals and aliases to a table token.

    >>> normalize_unit_token("Feet")
    'ft'
    >>> normalize_unit_token("cups")
    'cup'
    """
    if not unit:
        return unit
    unit = str(unit).strip().lower()
    if unit in UNIT_ALIASES:
        return UNIT_ALIASES[unit]
    if unit not in KNOWN_UNITS and len(unit) > 1 and unit.endswith("s") and unit != "ms":
        if unit[:-1] in KNOWN_UNITS:
            return unit[:-1]
    if unit not in KNOWN_UNITS and len(unit) > 2 and unit.endswith("es"):
        if unit[:-2] in KNOWN_UNITS:
            return unit[:-2]
    return unit


def base_unit(category: str) -> str:
    """First token of ``category`` whose factor is exactly 1."""
    for unit, factor in UNITS[category].items():
        if factor == 1:
            return unit
    raise KeyError(f"Category {category!r} has no base unit")
