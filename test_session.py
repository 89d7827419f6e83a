"""Tests for the calculator session interpreter."""

import math

import pytest

from cloudy_calc.session import (
    Interpreter,
    ResultEntry,
    looks_like_unit_query,
    result_value,
    substitute_variables,
)


@pytest.fixture
def interpreter():
    return Interpreter()


def test_last_result_continues_calculations(interpreter):
    assert interpreter.process_input("2+3").output == "5"
    assert interpreter.process_input("*2").output == "10"
    assert interpreter.process_input("-3").output == "7"
    assert interpreter.process_input("@ + 1").output == "8"
    assert interpreter.variables["@"] == 8


def test_errors_keep_the_last_result(interpreter):
    interpreter.process_input("10")
    entry = interpreter.process_input("10/0")
    assert entry.output == "Error: Division by zero"
    assert entry.kind == "error"
    assert entry.error == "Division by zero"
    assert interpreter.variables["@"] == 10


def test_unknown_names_are_errors(interpreter):
    assert interpreter.process_input("y + 1").output.startswith("Error:")


def test_variable_assignment(interpreter):
    entry = interpreter.process_input("x = 5")
    assert entry.output == "x = 5"
    assert entry.kind == "variable"
    assert interpreter.process_input("x * 2").output == "10"
    assert interpreter.variables["x"] == 5


def test_failed_assignment_leaves_variables_alone(interpreter):
    entry = interpreter.process_input("x = 1/0")
    assert entry.kind == "error"
    assert "x" not in interpreter.variables


def test_assignment_from_a_conversion(interpreter):
    entry = interpreter.process_input("d = 5 mi in km")
    assert entry.output == "d = 8.04672 km"
    assert entry.kind == "units"
    assert interpreter.variables["d"] == 8.04672
    assert interpreter.variables["@"] == 8.04672


def test_conversions_set_the_last_result(interpreter):
    entry = interpreter.process_input("15 + 0x10 in octal")
    assert entry.output == "0o33"
    assert entry.kind == "units"
    assert interpreter.variables["@"] == 27


def test_blank_input_is_ignored(interpreter):
    assert interpreter.process_input("   ") is None
    assert interpreter.history == []


def test_clear_resets_everything(interpreter):
    interpreter.process_input("x = 5")
    assert interpreter.process_input("clear") is None
    assert interpreter.variables == {"@": 0.0}
    assert interpreter.history == []
    assert interpreter.results == []


def test_navigate_history(interpreter):
    for line in ("1", "2", "3"):
        interpreter.process_input(line)
    steps = [interpreter.navigate_history(d) for d in (-1, -1, -1, -1, 1, 1, 1)]
    assert steps == ["3", "2", "1", "1", "2", "3", ""]


def test_history_and_results_are_capped():
    interpreter = Interpreter(max_history=2, max_results=2)
    for line in ("1", "2", "3"):
        interpreter.process_input(line)
    assert interpreter.history == ["2", "3"]
    assert interpreter.history_index == 2
    assert [entry.input for entry in interpreter.results] == ["2", "3"]


def test_variable_limit_drops_alphabetically_first():
    interpreter = Interpreter(max_variables=2)
    for line in ("b = 1", "c = 2", "a = 3"):
        interpreter.process_input(line)
    assert sorted(interpreter.variables) == ["@", "b", "c"]


def test_substitute_variables_prefers_longer_names():
    variables = {"@": 0.0, "x": 1.0, "xy": 2.0}
    assert substitute_variables("xy + x", variables) == "2 + 1"
    assert substitute_variables("@ * 2", {"@": 4.5}) == "4.5 * 2"
    assert substitute_variables("2*pi", {}) == "2*" + repr(math.pi)


def test_result_value():
    assert result_value("8.04672 km") == 8.04672
    assert result_value("0x1F") == 31
    assert result_value("0b-101") == -5
    assert result_value("hello") is None


def test_looks_like_unit_query():
    assert looks_like_unit_query("5 mi in km")
    assert looks_like_unit_query("32 F to C")
    assert looks_like_unit_query("pi")
    assert not looks_like_unit_query("2 + 3")


def test_cleanup_on_restore():
    interpreter = Interpreter.from_dict(
        {"variables": {"@": "abc", "x": "12px", "y": "nope", "z": math.inf}}
    )
    assert interpreter.variables == {"@": 0.0, "x": 12.0}


def test_state_survives_a_round_trip(interpreter):
    interpreter.process_input("x = 5")
    interpreter.process_input("x + 1")
    interpreter.navigate_history(-1)
    state = interpreter.to_dict()
    assert state["resultsLog"][0] == {
        "input": "x = 5", "output": "x = 5", "kind": "variable", "error": None,
    }

    restored = Interpreter.from_dict(state)
    assert restored.variables == {"@": 6.0, "x": 5.0}
    assert restored.history == ["x = 5", "x + 1"]
    assert restored.history_index == 1
    assert restored.results == interpreter.results
    assert restored.input_value == "x + 1"


def test_restore_tolerates_garbage():
    restored = Interpreter.from_dict({"history": "nope", "resultsLog": [1, {"input": "2"}]})
    assert restored.history == []
    assert restored.results == [ResultEntry("2", "")]
    assert Interpreter.from_dict(None).variables == {"@": 0.0}


def test_restore_applies_the_same_caps_as_appending():
    state = {"history": ["1", "2", "3"], "resultsLog": [{"input": "1"}, {"input": "2"}]}
    assert Interpreter.from_dict(state, max_history=0, max_results=0).history == []
    assert Interpreter.from_dict(state, max_history=0, max_results=0).results == []
    restored = Interpreter.from_dict(state, max_history=2, max_results=1)
    assert restored.history == ["2", "3"]
    assert [entry.input for entry in restored.results] == ["2"]

    appended = Interpreter(max_history=0)
    appended.add_to_history("1")
    assert appended.history == []
