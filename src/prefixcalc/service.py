"""Evaluate-and-record layer shared by the CLI front ends.

The formula core raises on bad input; this module is where those errors
are caught, turned into plain result records and written to the event
log.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from prefixcalc.formulas import FormulaError, evaluate_formula
from prefixcalc.logging.events import NESTING_TOO_DEEP, emit, make_eval_event

log = logging.getLogger(__name__)

EXAMPLE_FORMULAS = (
    "DIV(1,MUL(4,SUM(3,DIF(8,6))))",
    "SUM(10,20,5)",
    "DIV(10,DIF(5,5))",
)


def evaluate_record(formula: str) -> dict[str, Any]:
    """Evaluate *formula* and return a result record instead of raising.

    Returns:
        Dict with ``formula``, ``status`` (``"ok"`` or ``"error"``),
        ``value``, ``error`` and ``error_code``.
    """
    record: dict[str, Any] = {
        "formula": formula,
        "status": "ok",
        "value": None,
        "error": None,
        "error_code": None,
    }
    try:
        record["value"] = evaluate_formula(formula)
    except FormulaError as exc:
        record.update(status="error", error=str(exc), error_code=exc.error_code)
    except RecursionError:
        record.update(
            status="error",
            error="Formula is nested too deeply to evaluate",
            error_code=NESTING_TOO_DEEP,
        )
    log.debug("evaluated %r -> %s", formula, record["status"])
    return record


def evaluate_and_emit(
    formula: str,
    *,
    batch_id: str | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """Like ``evaluate_record`` but also emits an evaluation event."""
    record = evaluate_record(formula)
    emit(make_eval_event(record, batch_id=batch_id, index=index), batch_id=batch_id)
    return record


def format_value(value: float, precision: int | None = None) -> str:
    """Render a result for display.

    Integral finite values drop the fractional part (``35.0`` → ``"35"``);
    everything else uses the shortest round-tripping repr.
    """
    if precision is not None and math.isfinite(value):
        value = round(value, precision)
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)


def to_json(obj: Any) -> str:
    """Serialize a record or summary as strict JSON.

    ``inf``/``nan`` results are written as the strings ``"inf"``,
    ``"-inf"`` and ``"nan"``.
    """
    return json.dumps(_json_safe(obj), indent=2, allow_nan=False)


def _json_safe(obj: Any) -> Any:
    if isinstance(obj, float) and not math.isfinite(obj):
        return repr(obj)
    if isinstance(obj, dict):
        return {k: _json_safe(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_json_safe(v) for v in obj]
    return obj
