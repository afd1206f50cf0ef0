"""Prefix-call formula parsing and evaluation.

Public API::

    from prefixcalc.formulas import evaluate_formula, parse_call, split_args
"""

from prefixcalc.formulas.errors import (
    FormulaArityError,
    FormulaDivisionByZeroError,
    FormulaError,
    FormulaFormatError,
    FormulaFunctionError,
    FormulaUnknownFunctionError,
)
from prefixcalc.formulas.evaluator import FUNCTION_NAMES, evaluate_formula
from prefixcalc.formulas.parser import (
    FormulaCall,
    parse_call,
    parse_number,
    split_args,
)

__all__ = [
    "FUNCTION_NAMES",
    "FormulaArityError",
    "FormulaCall",
    "FormulaDivisionByZeroError",
    "FormulaError",
    "FormulaFormatError",
    "FormulaFunctionError",
    "FormulaUnknownFunctionError",
    "evaluate_formula",
    "parse_call",
    "parse_number",
    "split_args",
]
