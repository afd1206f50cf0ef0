"""Recognizers for the prefix-call formula notation.

Grammar::

    formula  := number | NAME "(" args ")"
    NAME     := [A-Z]+
    args     := formula ("," formula)*

Supports:
- Numeric literals via Python's float parser (sign, decimal point,
  exponent, ``inf``/``nan``)
- Uppercase function names followed immediately by ``(``
- Comma splitting that ignores commas inside nested calls
"""

from __future__ import annotations

import re
from typing import NamedTuple

from prefixcalc.formulas.errors import FormulaFormatError

# Greedy: the argument span runs from the first "(" to the final ")".
# "." does not match line breaks.
_CALL_RE = re.compile(r"([A-Z]+)\((.*)\)")


class FormulaCall(NamedTuple):
    """A recognized ``NAME(args)`` call with its arguments still unsplit."""

    name: str
    args_text: str


def parse_number(text: str) -> float | None:
    """Parse *text* as a numeric literal.

    Returns:
        The float value, or ``None`` if *text* is not a number.
    """
    text = text.strip()
    # float() also takes Python literal separators; "1_000" is not a number here
    if not text or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_call(text: str) -> FormulaCall:
    """Split a call expression into its function name and argument text.

    Args:
        text: Formula text, e.g. ``"SUM(3,DIF(8,6))"``.

    Returns:
        ``FormulaCall("SUM", "3,DIF(8,6)")``.

    Raises:
        FormulaFormatError: If *text* is not shaped like ``NAME(...)``.
    """
    text = text.strip()
    match = _CALL_RE.fullmatch(text)
    if match is None:
        raise FormulaFormatError(text)
    return FormulaCall(match.group(1), match.group(2))


def split_args(args_text: str) -> list[str]:
    """Split an argument string on commas at nesting depth 0.

    Each argument is stripped of surrounding whitespace.  The trailing
    segment is always appended, so ``""`` yields ``[""]``.

    Examples:
        ``"1,MUL(4,5)"`` → ``["1", "MUL(4,5)"]``
    """
    args: list[str] = []
    depth = 0
    current: list[str] = []

    for ch in args_text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1

        if ch == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
        else:
            current.append(ch)

    args.append("".join(current).strip())
    return args
