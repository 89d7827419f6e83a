"""Error types raised by the expression evaluator."""


class CalculatorError(Exception):
    """Base class for errors shown to the user as ``Error: <message>``."""

    def __init__(self, message: str, code: str = "CALCULATOR_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ParseError(CalculatorError):
    """Raised for malformed input: bad numbers, unbalanced parentheses,
    unknown functions or trailing characters."""

    def __init__(self, message: str, code: str = "PARSE_ERROR"):
        super().__init__(message, code)


class EvalError(CalculatorError):
    """Raised when a well-formed expression cannot produce a finite number."""

    def __init__(self, message: str, code: str = "EVAL_ERROR"):
        super().__init__(message, code)
