"""Error types for formula parsing and evaluation."""

from __future__ import annotations


class FormulaError(Exception):
    """Base class for all formula-related errors.

    Attributes:
        formula: The (trimmed) formula text at the depth where the error
            was detected.
        error_code: Stable machine-readable code used in event logs.
    """

    error_code = "formula_error"

    def __init__(self, message: str, formula: str = "") -> None:
        self.formula = formula
        super().__init__(message)


class FormulaFormatError(FormulaError):
    """Text is neither a number nor a ``NAME(args)`` call."""

    error_code = "formula_format_error"

    def __init__(self, formula: str) -> None:
        super().__init__(
            f"Invalid formula format or unhandled expression: {formula!r}",
            formula,
        )


class FormulaFunctionError(FormulaError):
    """Problem with a function call.

    Attributes:
        func_name: The function that caused the error.
    """

    error_code = "formula_function_error"

    def __init__(self, func_name: str, message: str, formula: str = "") -> None:
        self.func_name = func_name
        super().__init__(message, formula)


class FormulaUnknownFunctionError(FormulaFunctionError):
    """Function name is not one of the recognized operations."""

    error_code = "formula_unknown_function"

    def __init__(self, func_name: str, formula: str) -> None:
        super().__init__(
            func_name,
            f"Unknown function: {func_name!r} in formula: {formula!r}",
            formula,
        )


class FormulaArityError(FormulaFunctionError):
    """Wrong number of arguments for a fixed-arity function.

    Attributes:
        count: Number of arguments actually received.
    """

    error_code = "formula_arity_error"

    def __init__(self, func_name: str, count: int, formula: str, expected: int = 2) -> None:
        self.count = count
        self.expected = expected
        super().__init__(
            func_name,
            f"{func_name} requires exactly {expected} arguments, "
            f"but received {count} in: {formula!r}",
            formula,
        )


class FormulaDivisionByZeroError(FormulaError, ZeroDivisionError):
    """``DIV`` called with a divisor equal to zero."""

    error_code = "formula_division_by_zero"

    def __init__(self, formula: str) -> None:
        super().__init__(f"Division by zero encountered in: {formula!r}", formula)
