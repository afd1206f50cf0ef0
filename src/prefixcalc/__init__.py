"""prefixcalc -- evaluator for prefix-call arithmetic formulas."""

__version__ = "0.1.0"

from prefixcalc.formulas import FormulaError, evaluate_formula  # noqa: E402

__all__ = ["FormulaError", "__version__", "evaluate_formula"]
