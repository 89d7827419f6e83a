"""Tests for the arithmetic expression evaluator."""

import pytest

from cloudy_calc.errors import CalculatorError, EvalError, ParseError
from cloudy_calc.evaluator import EXTENDED_FUNCTIONS, evaluate_expression, preprocess
from cloudy_calc.numbers import format_number


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("2+3*4", 14),
        ("(2+3)*4", 20),
        ("2 ^ 3 ^ 2", 64),
        ("2**3", 8),
        ("-2^2", 4),
        ("10/4", 2.5),
        ("1,000 + 1", 1001),
        ("1e3+1", 1001),
        ("--3", 3),
        ("+4", 4),
        (".5*2", 1),
        ("0.1+0.2", 0.3),
        ("sqrt(16)", 4),
        ("SQRT(16)", 4),
        ("abs(-3)", 3),
        ("log(1000)", 3),
        ("ln(1)", 0),
        ("round(2.5)", 3),
        ("floor(2.7) + ceil(2.1)", 5),
        ("sin(30degrees)", 0.5),
        ("cos(0)", 1),
    ],
)
def test_evaluate_expression(expression, expected):
    assert evaluate_expression(expression) == expected


def test_result_is_rounded_to_twelve_places():
    assert evaluate_expression("1/3") == 0.333333333333


def test_degrees_are_rewritten_to_radians():
    assert preprocess("sin(90 degrees)") == "sin((90*0.017453292519943295))"


@pytest.mark.parametrize(
    "expression, message",
    [
        ("(1+2", "Missing closing parenthesis"),
        ("foo(2)", "Unknown function: foo"),
        ("1.2.3", "Invalid number: 1.2.3"),
        ("2+", "Expected number, function, or parenthesized expression"),
        ("x+1", "Expected ( after function name"),
        ("sqrt(4", "Expected )"),
        ("2e", "Unexpected character: e"),
        ("3)", "Unexpected character: )"),
    ],
)
def test_parse_errors(expression, message):
    with pytest.raises(ParseError) as excinfo:
        evaluate_expression(expression)
    assert excinfo.value.message == message
    assert excinfo.value.code == "PARSE_ERROR"


def test_division_by_zero():
    with pytest.raises(EvalError, match="Division by zero"):
        evaluate_expression("10/0")


@pytest.mark.parametrize("expression", ["sqrt(-1)", "10^400", "ln(0)"])
def test_non_finite_results(expression):
    with pytest.raises(EvalError, match="Result is not finite"):
        evaluate_expression(expression)


def test_errors_share_a_base_class():
    with pytest.raises(CalculatorError):
        evaluate_expression("")


def test_extended_functions_are_opt_in():
    with pytest.raises(ParseError, match="Unknown function: exp"):
        evaluate_expression("exp(0)")
    assert evaluate_expression("exp(0)", functions=EXTENDED_FUNCTIONS) == 1
    assert evaluate_expression("cbrt(-27)", functions=EXTENDED_FUNCTIONS) == -3


@pytest.mark.parametrize(
    "expression",
    ["2+3*4", "10/4", "sqrt(2)", "100/7", "-17/3", "ln(10)", "1e6/3", "2^0.5*1000", "sin(30degrees)"],
)
def test_formatted_results_evaluate_to_the_same_number(expression):
    value = evaluate_expression(expression)
    assert evaluate_expression(format_number(value)) == pytest.approx(value, rel=1e-6)
