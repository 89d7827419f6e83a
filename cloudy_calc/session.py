"""Calculator session: variables, input history and the result log.

An :class:`Interpreter` turns one line of input into a result entry. Lines
are tried as an assignment, then as a conversion query, then as arithmetic
after variable substitution. ``@`` always holds the last numeric result.
"""

import logging
import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from cloudy_calc import config
from cloudy_calc.errors import CalculatorError
from cloudy_calc.evaluator import evaluate_expression
from cloudy_calc.numbers import number_to_string, parse_float
from cloudy_calc.units import resolve_unit_query

logger = logging.getLogger(__name__)

LAST_RESULT = "@"

ASSIGNMENT_PATTERN = re.compile(r"^(@?\w+)\s*=\s*(.+)$", re.ASCII)
LEADING_OPERATOR_PATTERN = re.compile(r"^[+\-*/^]")
VARIABLE_NAME_PATTERN = re.compile(r"[A-Za-z_]\w*", re.ASCII)
PI_PATTERN = re.compile(r"\bpi\b")
E_PATTERN = re.compile(r"\be\b")
BASE_RESULT_PATTERN = re.compile(r"^0([xob])(-?)([0-9a-f]+)$", re.IGNORECASE)
BASE_RADIX = {"x": 16, "o": 8, "b": 2}

UNIT_QUERY_PATTERNS = [
    re.compile(r"\d+\s*[a-zA-Z\-]+\s*[+\-]\s*\d+\s*[a-zA-Z\-]+\s+in\s+[a-zA-Z\-]+"),
    re.compile(r"\d+\s*[a-zA-Z\-]+\s*[+\-]\s*\d+\s*[a-zA-Z\-]+"),
    re.compile(r"\d+(?:/\d+)?\s*[a-zA-Z\-]+\s+in\s+[a-zA-Z\-]+"),
    re.compile(r"\d+(?:\.\d+)?\s*[CFKR]\s+to\s+[CFKR]", re.IGNORECASE),
    re.compile(r"\d+(?:\.\d+)?\s+[A-Z]{3}\s+to\s+[A-Z]{3}", re.IGNORECASE),
    re.compile(r".+\s+in\s+(hex|octal|binary|decimal)", re.IGNORECASE),
    re.compile(r"^[a-z]+\([^)]+\)$", re.IGNORECASE),
    re.compile(r"^[a-z\-]+$", re.IGNORECASE),
    re.compile(r"^\d+(?:/\d+)?\s*[a-zA-Z\-]+$"),
    re.compile(r"^\d+\s+[a-zA-Z\-]+$"),
]
LETTER_PATTERN = re.compile(r"[a-zA-Z]")


@dataclass
class ResultEntry:
    """One line of the result log."""

    input: str
    output: str
    kind: str = "normal"  # normal, units, variable or error
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResultEntry":
        return cls(
            input=str(data.get("input", "")),
            output=str(data.get("output", "")),
            kind=str(data.get("kind", "normal")),
            error=data.get("error"),
        )


def looks_like_unit_query(text: str) -> bool:
    """Whether ``text`` should be offered to the conversion resolver first."""
    if " in " in text and LETTER_PATTERN.search(text):
        return True
    return any(pattern.search(text) for pattern in UNIT_QUERY_PATTERNS)


def _finite(value: Optional[float]) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def result_value(text: str) -> Optional[float]:
    """Leading number of a resolver result.

    ``"8.04672 km"`` gives 8.04672 and ``"0x1F"`` gives 31.
    """
    text = text.strip()
    match = BASE_RESULT_PATTERN.match(text)
    if match:
        radix, sign, digits = match.groups()
        try:
            value = int(digits, BASE_RADIX[radix.lower()])
        except ValueError:
            return None
        return float(-value if sign else value)
    return parse_float(text)


def substitute_variables(expression: str, variables: Dict[str, Any]) -> str:
    """Replace ``@``, variable names and ``pi``/``e`` with their values.

    ``@`` is replaced anywhere in the text; other names only as whole words.
    """
    last = parse_float(variables.get(LAST_RESULT))
    last_text = number_to_string(last) if _finite(last) else "0"
    expression = expression.replace(LAST_RESULT, last_text)

    # Longest names first so 'xy' is not half-replaced by 'x'
    names = {name for name in VARIABLE_NAME_PATTERN.findall(expression) if name in variables}
    for name in sorted(names, key=len, reverse=True):
        value_text = number_to_string(variables[name])
        expression = re.sub(
            r"\b" + re.escape(name) + r"\b", lambda _: value_text, expression
        )

    expression = PI_PATTERN.sub(repr(math.pi), expression)
    expression = E_PATTERN.sub(repr(math.e), expression)
    logger.debug(f"Expression after substitution: {expression}")
    return expression


class Interpreter:
    """State and input handling for one calculator session."""

    def __init__(
        self,
        max_history: Optional[int] = None,
        max_variables: Optional[int] = None,
        max_results: Optional[int] = None,
    ):
        self.max_history = config.MAX_HISTORY if max_history is None else max_history
        self.max_variables = config.MAX_VARIABLES if max_variables is None else max_variables
        self.max_results = config.MAX_RESULTS if max_results is None else max_results

        self.history: List[str] = []
        self.history_index = 0
        self.variables: Dict[str, float] = {LAST_RESULT: 0.0}
        self.results: List[ResultEntry] = []
        self.input_value = ""
        self.cursor_start = 0
        self.cursor_end = 0

    # --- Input ---

    def process_input(self, raw: str) -> Optional[ResultEntry]:
        """Handle one submitted line. Returns the new result entry, or None
        for blank input and ``clear``."""
        text = raw.strip()
        if not text:
            return None

        self.add_to_history(text)
        self.input_value = ""

        if text == "clear":
            self.clear_all()
            return None

        entry = self.handle_variable_assignment(text)
        if entry is not None:
            self.limit_variables()
            return entry

        if looks_like_unit_query(text):
            units_result = resolve_unit_query(text)
            if units_result:
                value = result_value(units_result)
                self.variables[LAST_RESULT] = value if _finite(value) else 0.0
                return self.add_result(text, units_result, "units")

        expression = text
        if LEADING_OPERATOR_PATTERN.match(text):
            expression = LAST_RESULT + text

        try:
            value = self.evaluate(expression)
        except CalculatorError as e:
            if not _finite(self.variables.get(LAST_RESULT)):
                self.reset_last_result()
            logger.debug(f"Could not evaluate '{text}': {e.message}")
            return self.add_result(text, f"Error: {e.message}", "error", e.message)

        self.variables[LAST_RESULT] = value
        return self.add_result(text, number_to_string(value))

    def handle_variable_assignment(self, text: str) -> Optional[ResultEntry]:
        """Evaluate ``name = expression``. Returns None if ``text`` is not an
        assignment."""
        match = ASSIGNMENT_PATTERN.match(text)
        if not match:
            return None
        name, expression = match.group(1), match.group(2).strip()

        if looks_like_unit_query(expression):
            units_result = resolve_unit_query(expression)
            if units_result:
                value = result_value(units_result)
                if _finite(value):
                    self.variables[name] = value
                    self.variables[LAST_RESULT] = value
                else:
                    self.variables[LAST_RESULT] = 0.0
                return self.add_result(text, f"{name} = {units_result}", "units")

        try:
            value = self.evaluate(expression)
        except CalculatorError as e:
            return self.add_result(text, f"Error: {e.message}", "error", e.message)

        self.variables[name] = value
        self.variables[LAST_RESULT] = value
        logger.debug(f"Assigned {name} = {value}")
        return self.add_result(text, f"{name} = {number_to_string(value)}", "variable")

    def substitute_variables(self, expression: str) -> str:
        return substitute_variables(expression, self.variables)

    def evaluate(self, expression: str) -> float:
        return evaluate_expression(self.substitute_variables(expression))

    # --- History ---

    def add_to_history(self, text: str) -> None:
        self.history.append(text)
        if len(self.history) > self.max_history:
            del self.history[: len(self.history) - self.max_history]
        self.history_index = len(self.history)

    def navigate_history(self, direction: int) -> str:
        """Move the recall cursor by ``direction`` (-1 older, 1 newer) and
        return the recalled text; stepping past the newest entry gives ""."""
        if not self.history:
            return self.input_value
        self.history_index += direction
        if self.history_index < 0:
            self.history_index = 0
        elif self.history_index >= len(self.history):
            self.history_index = len(self.history)
            self.input_value = ""
            return ""
        self.input_value = self.history[self.history_index]
        return self.input_value

    # --- Results and variables ---

    def add_result(
        self, text: str, output: str, kind: str = "normal", error: Optional[str] = None
    ) -> ResultEntry:
        entry = ResultEntry(text, output, kind, error)
        self.results.append(entry)
        if len(self.results) > self.max_results:
            del self.results[: len(self.results) - self.max_results]
        return entry

    def limit_variables(self) -> None:
        """Drop the alphabetically first names beyond ``max_variables``."""
        names = sorted(name for name in self.variables if name != LAST_RESULT)
        excess = len(names) - self.max_variables
        if excess <= 0:
            return
        for name in names[:excess]:
            del self.variables[name]
        logger.info(f"Variable limit reached, removed {excess}: {', '.join(names[:excess])}")

    def cleanup_variables(self) -> None:
        """Coerce every variable to a finite float, dropping those that
        cannot be."""
        for name in list(self.variables):
            if name == LAST_RESULT:
                continue
            value = parse_float(self.variables[name])
            if _finite(value):
                self.variables[name] = value
            else:
                logger.warning(f"Dropping variable '{name}' with invalid value {self.variables[name]!r}")
                del self.variables[name]
        last = parse_float(self.variables.get(LAST_RESULT))
        if _finite(last):
            self.variables[LAST_RESULT] = last
        else:
            self.reset_last_result()

    def reset_last_result(self) -> None:
        self.variables[LAST_RESULT] = 0.0

    def clear_all(self) -> None:
        self.history = []
        self.history_index = 0
        self.variables = {LAST_RESULT: 0.0}
        self.results = []
        self.input_value = ""
        self.cursor_start = 0
        self.cursor_end = 0

    # --- Persistence ---

    def to_dict(self) -> Dict[str, Any]:
        return {
            "history": list(self.history),
            "historyIndex": self.history_index,
            "variables": dict(self.variables),
            "resultsLog": [entry.to_dict() for entry in self.results],
            "inputValue": self.input_value,
            "cursorStart": self.cursor_start,
            "cursorEnd": self.cursor_end,
        }

    @classmethod
    def from_dict(cls, state: Optional[Dict[str, Any]], **limits) -> "Interpreter":
        """Restore a session saved with :meth:`to_dict`, tolerating missing
        or malformed fields."""
        interpreter = cls(**limits)
        state = state if isinstance(state, dict) else {}

        history = state.get("history")
        if isinstance(history, list):
            history = [str(line) for line in history]
            interpreter.history = history[max(len(history) - interpreter.max_history, 0):]
        index = state.get("historyIndex")
        if isinstance(index, int) and 0 <= index <= len(interpreter.history):
            interpreter.history_index = index
        else:
            interpreter.history_index = len(interpreter.history)

        variables = state.get("variables")
        if isinstance(variables, dict):
            interpreter.variables = {str(name): value for name, value in variables.items()}
        interpreter.cleanup_variables()

        results = state.get("resultsLog")
        if isinstance(results, list):
            entries = [ResultEntry.from_dict(entry) for entry in results if isinstance(entry, dict)]
            interpreter.results = entries[max(len(entries) - interpreter.max_results, 0):]

        interpreter.input_value = str(state.get("inputValue") or "")
        for field, attribute in (("cursorStart", "cursor_start"), ("cursorEnd", "cursor_end")):
            value = state.get(field)
            if isinstance(value, int):
                setattr(interpreter, attribute, value)
        return interpreter
