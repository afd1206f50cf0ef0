"""Unified event schema and module-level emit helpers.

All timestamps use UTC ISO-8601 with ``Z`` suffix.  The ``emit()``
family of functions is safe to call from any context -- failures are
swallowed and printed to stderr.
"""

from __future__ import annotations

import math
import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Single evaluations
    eval_completed = "eval_completed"
    eval_failed = "eval_failed"

    # Batch lifecycle
    batch_started = "batch_started"
    batch_completed = "batch_completed"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

# Formula failures carry their own code (``FormulaError.error_code``).
NESTING_TOO_DEEP = "formula_nesting_too_deep"


# ---------------------------------------------------------------------------
# Context sanitizing
# ---------------------------------------------------------------------------

_MAX_VALUE_LEN = 256


def sanitize_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* that is safe to write as strict JSON.

    Formulas can be arbitrarily long; the log keeps the first 256
    characters of any string value.  Non-finite floats (``inf``, ``nan``)
    are stored as their repr strings.
    """
    out: dict[str, Any] = {}
    for k, v in context.items():
        if isinstance(v, dict):
            out[k] = sanitize_context(v)
        elif isinstance(v, list):
            out[k] = [_clean_value(item) for item in v]
        else:
            out[k] = _clean_value(v)
    return out


def _clean_value(v: Any) -> Any:
    if isinstance(v, float) and not math.isfinite(v):
        return repr(v)
    if isinstance(v, str) and len(v) > _MAX_VALUE_LEN:
        return v[:_MAX_VALUE_LEN] + "...[truncated]"
    return v


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Return current UTC timestamp in ISO-8601 with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class CalcEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


def make_eval_event(
    record: dict[str, Any],
    *,
    batch_id: str | None = None,
    index: int | None = None,
) -> CalcEvent:
    """Build an ``eval_completed``/``eval_failed`` event from an evaluation record."""
    ctx: dict[str, Any] = {"formula": record["formula"]}
    if batch_id is not None:
        ctx["batch_id"] = batch_id
    if index is not None:
        ctx["index"] = index

    if record["status"] == "ok":
        ctx["value"] = record["value"]
        return CalcEvent(
            level=EventLevel.info,
            event_type=EventType.eval_completed,
            message="Formula evaluated",
            context=ctx,
        )
    return CalcEvent(
        level=EventLevel.error,
        event_type=EventType.eval_failed,
        message=record["error"] or "",
        context=ctx,
        error_code=record["error_code"],
    )


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Lazily initialised when ``set_project_dir`` is called.
_sink: Any = None  # EventSink | None
_project_dir: Any = None


def set_project_dir(project_dir: Any) -> None:
    """Configure the module-level event sink for a project directory.

    This should be called early in a CLI command.  If it is never called,
    or the project sets ``logging_enabled: false``, ``emit()`` silently
    discards events.

    Reads ``logging_fsync`` and ``logging_tail_bytes`` from the project
    config (``prefixcalc.yaml``) to configure the sink.
    """
    global _sink, _project_dir
    from pathlib import Path

    from prefixcalc.logging.sink import EventSink
    from prefixcalc.project import load_project_config

    _project_dir = project_dir
    cfg = load_project_config(Path(project_dir))
    if not cfg.get("logging_enabled", True):
        _sink = None
        return

    tb = cfg.get("logging_tail_bytes")
    _sink = EventSink(
        Path(project_dir),
        fsync=bool(cfg.get("logging_fsync", False)),
        tail_bytes=int(tb) if tb is not None else None,
    )


def reset_project_dir() -> None:
    """Detach the module-level sink; subsequent events are discarded."""
    global _sink, _project_dir
    _sink = None
    _project_dir = None


def _get_sink() -> Any:
    """Return the module-level sink, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float = 0.0
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print a warning to stderr, rate-limited to one per 60 seconds."""
    global _last_stderr_ts
    now = time.monotonic()
    if now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    print(f"[prefixcalc] {msg}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Safe emit helpers
# ---------------------------------------------------------------------------


def emit(event: CalcEvent, *, batch_id: str | None = None) -> None:
    """Write an event to the global log and optionally to a per-batch log.

    **Never raises.**  On failure, prints a rate-limited warning to stderr.
    """
    try:
        sink = _get_sink()
        if sink is None:
            return
        event = event.model_copy(update={"context": sanitize_context(event.context)})
        sink.write(event, batch_id=batch_id)
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def emit_info(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    batch_id: str | None = None,
) -> None:
    """Convenience: emit an info-level event."""
    emit(
        CalcEvent(
            level=EventLevel.info,
            event_type=event_type,
            message=message,
            context=context or {},
        ),
        batch_id=batch_id,
    )


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
    batch_id: str | None = None,
) -> None:
    """Convenience: emit a warning-level event."""
    emit(
        CalcEvent(
            level=EventLevel.warning,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        ),
        batch_id=batch_id,
    )



def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
    batch_id: str | None = None,
) -> None:
    """Convenience: emit an error-level event."""
    emit(
        CalcEvent(
            level=EventLevel.error,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        ),
        batch_id=batch_id,
    )
