"""Recursive evaluator for prefix-call formulas.

``evaluate_formula`` maps the grammar one-to-one onto recursion: a number
is returned as is, a call evaluates every argument (left to right) and then
dispatches on the function name.  Errors are raised where they are detected
and propagate unchanged to the caller.
"""

from __future__ import annotations

from typing import Callable

from prefixcalc.formulas.errors import (
    FormulaArityError,
    FormulaDivisionByZeroError,
    FormulaUnknownFunctionError,
)
from prefixcalc.formulas.parser import parse_call, parse_number, split_args


def evaluate_formula(formula: str) -> float:
    """Evaluate a formula string.

    Args:
        formula: e.g. ``"DIV(1,MUL(4,SUM(3,DIF(8,6))))"``.

    Returns:
        The computed value as a float.

    Raises:
        FormulaFormatError: Text is neither a number nor a ``NAME(args)`` call.
        FormulaArityError: ``DIF``/``DIV`` without exactly two arguments.
        FormulaDivisionByZeroError: ``DIV`` with a zero divisor.
        FormulaUnknownFunctionError: Function name not recognized.
    """
    formula = formula.strip()

    value = parse_number(formula)
    if value is not None:
        return value

    call = parse_call(formula)
    args = [evaluate_formula(arg) for arg in split_args(call.args_text)]

    fn = _FUNC_TABLE.get(call.name)
    if fn is None:
        raise FormulaUnknownFunctionError(call.name, formula)
    return fn(args, formula)


# ---------- Function dispatch ----------


def _fn_sum(args: list[float], formula: str) -> float:
    return sum(args, 0.0)


def _fn_dif(args: list[float], formula: str) -> float:
    if len(args) != 2:
        raise FormulaArityError("DIF", len(args), formula)
    return args[0] - args[1]


def _fn_mul(args: list[float], formula: str) -> float:
    result = 1.0
    for a in args:
        result *= a
    return result


def _fn_div(args: list[float], formula: str) -> float:
    if len(args) != 2:
        raise FormulaArityError("DIV", len(args), formula)
    if args[1] == 0:
        raise FormulaDivisionByZeroError(formula)
    return args[0] / args[1]


_FUNC_TABLE: dict[str, Callable[[list[float], str], float]] = {
    "SUM": _fn_sum,
    "DIF": _fn_dif,
    "MUL": _fn_mul,
    "DIV": _fn_div,
}

FUNCTION_NAMES: frozenset[str] = frozenset(_FUNC_TABLE)
