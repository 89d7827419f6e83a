"""Tests for unit, currency, constant and number-base queries."""

import pytest

from cloudy_calc.tables import base_unit, normalize_unit_token
from cloudy_calc.units import (
    NO_MATCH,
    Outcome,
    UnitQueryResolver,
    convert_temperature,
    convert_to_base,
    process_base_arithmetic,
    process_in_conversion,
    process_mixed_units,
    resolve_unit_query,
)


@pytest.mark.parametrize(
    "query, expected",
    [
        ("5 mi in km", "8.04672 km"),
        ("5 Miles in km", "8.04672 km"),
        ("2 km in m", "2000 m"),
        ("1/2 km in m", "500 m"),
        ("1 1/2 km in m", "1500 m"),
        ("1 tbsp in tsp", "3 tsp"),
        ("6' 2\" in cm", "187.96 cm"),
        ("60 mph to m/s", "26.822400 m/s"),
        ("3 ft * 2 ft in sq-m", "0.55741824 sq-m"),
        ("5 km - 300 m in km", "4.7 km"),
        ("(5km - 300m) in km", "4.7 km"),
        ("(2 * (3.00 ft + 6.00 in)) in cm", "214 cm"),
    ],
)
def test_unit_conversions(query, expected):
    assert resolve_unit_query(query) == expected


def test_feet_and_inches_in_cm():
    value, unit = resolve_unit_query("5 feet 3 inches in cm").split()
    assert unit == "cm"
    assert float(value) == pytest.approx((5 * 0.3048 + 3 * 0.0254) / 0.01, abs=1e-6)


@pytest.mark.parametrize(
    "query, expected",
    [
        ("32 F to C", "0.000000 C"),
        ("-40 C to F", "-40.000000 F"),
        ("0 c to k", "273.150000 K"),
        ("100 USD to EUR", "85.00 EUR"),
        ("100 usd to jpy", "11000.00 JPY"),
    ],
)
def test_temperature_and_currency(query, expected):
    assert resolve_unit_query(query) == expected


def test_unknown_currency_is_not_converted():
    assert resolve_unit_query("100 XYZ to EUR") is None


def test_rankine_pivots_through_celsius():
    assert convert_temperature(0, "C", "R") == pytest.approx(491.67)
    assert convert_temperature(0, "C", "X") is None


@pytest.mark.parametrize(
    "query, expected",
    [
        ("15 + 0x10 in octal", "0o33"),
        ("4 + 0xAF in hex", "0xB3"),
        ("255 in hex", "0xFF"),
        ("10 in binary", "0b1010"),
        ("0b101 + 1 in decimal", "6"),
        ("(2+3)*4 in hex", "0x14"),
    ],
)
def test_number_bases(query, expected):
    assert resolve_unit_query(query) == expected


def test_invalid_base_digits_are_no_match():
    assert resolve_unit_query("0xZZ + 1 in hex") is None
    assert process_base_arithmetic("0o19", "decimal") is None


def test_convert_to_base_negative_and_fractional():
    assert convert_to_base(-31, "octal") == "0o-37"
    assert convert_to_base(2.5, "binary") == "0b10.1"
    assert convert_to_base(5, "roman") is None


@pytest.mark.parametrize(
    "query, expected",
    [
        ("sqrt(16)", "4"),
        ("sin(pi)", "0"),
        ("sin(pi/2)", "1"),
        ("factorial(5)", "120"),
        ("fact(0)", "1"),
        ("pow(2, 10)", "1024"),
        ("exp(0)", "1"),
        ("pi", "3.141592653589793"),
        ("golden-ratio", "1.618033988749895"),
        ("NA", "6.02214076e+23"),
        ("2 + pi", "5.141593"),
        ("c - 1", "299792457"),
    ],
)
def test_functions_and_constants(query, expected):
    assert resolve_unit_query(query) == expected


def test_factorial_out_of_range_is_no_match():
    assert resolve_unit_query("fact(171)") is None


def test_mixed_unit_sums():
    assert resolve_unit_query("5 km - 300 m") == "4700 m"
    assert resolve_unit_query("1.5 kg + 500 g") == "2.0 kg"
    assert process_mixed_units("2.000 fl-oz + 1.000 fl-oz") == "0.089 l"
    assert process_mixed_units("1 1/2 cup") == "1.500000 cup"
    assert process_mixed_units("5km+300m") == "5300.000000 m"


def test_mixed_units_of_different_kinds_are_rejected():
    assert process_mixed_units("5 kg + 3 m") is None
    assert resolve_unit_query("5 kg + 3 m") is None


def test_compact_arithmetic():
    assert resolve_unit_query("6/3 to m") == "2"
    assert resolve_unit_query("6/0 to m") is None


def test_queries_left_to_the_evaluator():
    assert resolve_unit_query("5 km") is None
    assert resolve_unit_query("2 ** 3") is None
    assert resolve_unit_query("   ") is None


def test_litres_in_metres_echo_the_amount():
    assert resolve_unit_query("5 l in m") == "5 m"
    assert process_in_conversion("5 kg", "m") is None


def test_normalize_unit_token():
    assert normalize_unit_token("Feet") == "ft"
    assert normalize_unit_token("cups") == "cup"
    assert normalize_unit_token("ms") == "ms"
    assert normalize_unit_token("inches") == "in"
    assert normalize_unit_token("hectares") == "hectares"


def test_base_units():
    assert [base_unit(c) for c in ("length", "mass", "volume", "area", "speed", "time")] == [
        "m", "kg", "l", "sq-m", "m/s", "s",
    ]


def test_rules_report_explicit_outcomes():
    resolver = UnitQueryResolver()
    assert resolver.match_exponent_operator("2 ** 3") == Outcome(True, None)
    assert resolver.match_currency("2 + 3") is NO_MATCH
    assert resolver.match_literal("7 + 0o10 in binary") == Outcome(True, "0b1001")


def test_constants_in_any_case_fall_through_to_the_safe_expression_rule():
    resolver = UnitQueryResolver()
    assert resolver.match_arithmetic("2*PHI") is NO_MATCH
    assert resolver.match_safe_expression("2*PHI") == Outcome(True, "3.236068")
    assert resolve_unit_query("2*PHI") == "3.236068"
