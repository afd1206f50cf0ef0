"""Batch evaluation of formula files.

A formula file holds one formula per line.  Blank lines and lines
starting with ``#`` are skipped.
"""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Any
from uuid import uuid4

from prefixcalc.logging.events import EventType, emit, emit_info, emit_warning, make_eval_event
from prefixcalc.service import evaluate_record


def load_formulas(path: Path) -> list[str]:
    """Load formulas from a text file.

    Args:
        path: Path to the formula file.

    Returns:
        Formulas in file order, stripped of surrounding whitespace.
    """
    formulas: list[str] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            text = line.strip()
            if not text or text.startswith("#"):
                continue
            formulas.append(text)
    return formulas


def run_batch(
    formulas: list[str],
    max_workers: int = 1,
    stop_on_error: bool = False,
) -> dict[str, Any]:
    """Evaluate a list of formulas.

    Args:
        formulas: Formula strings, evaluated independently.
        max_workers: Number of parallel worker processes (1 = sequential).
        stop_on_error: Stop at the first failing formula.  Results after
            it are dropped.

    Returns:
        Summary dict with batch_id, results list, and counts.
    """
    batch_id = uuid4().hex

    emit_info(
        EventType.batch_started,
        f"Batch started ({len(formulas)} formulas)",
        {"batch_id": batch_id, "total": len(formulas), "max_workers": max_workers},
        batch_id=batch_id,
    )

    if max_workers <= 1:
        records = _run_sequential(formulas, stop_on_error)
    else:
        records = _run_parallel(formulas, max_workers)

    results: list[dict[str, Any]] = []
    for index, record in enumerate(records):
        record = {"index": index, **record}
        results.append(record)
        emit(make_eval_event(record, batch_id=batch_id, index=index), batch_id=batch_id)
        if stop_on_error and record["status"] == "error":
            break

    ok_count = sum(1 for r in results if r["status"] == "ok")
    fail_count = len(results) - ok_count

    ctx = {"batch_id": batch_id, "total": len(results), "ok": ok_count, "failed": fail_count}
    message = f"Batch completed: {ok_count} ok, {fail_count} failed"
    if fail_count:
        emit_warning(EventType.batch_completed, message, ctx, batch_id=batch_id)
    else:
        emit_info(EventType.batch_completed, message, ctx, batch_id=batch_id)

    return {
        "batch_id": batch_id,
        "results": results,
        "total": len(results),
        "ok": ok_count,
        "failed": fail_count,
    }


def _run_sequential(formulas: list[str], stop_on_error: bool) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for formula in formulas:
        record = evaluate_record(formula)
        records.append(record)
        if stop_on_error and record["status"] == "error":
            break
    return records


def _run_parallel(formulas: list[str], max_workers: int) -> list[dict[str, Any]]:
    with ProcessPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(evaluate_record, formulas))
