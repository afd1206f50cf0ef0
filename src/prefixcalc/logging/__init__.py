"""Structured event logging for prefixcalc.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from prefixcalc.logging.events import (
    CalcEvent,
    EventLevel,
    EventType,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    make_eval_event,
    reset_project_dir,
    sanitize_context,
    set_project_dir,
)
from prefixcalc.logging.sink import EventSink

__all__ = [
    "CalcEvent",
    "EventLevel",
    "EventSink",
    "EventType",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "make_eval_event",
    "reset_project_dir",
    "sanitize_context",
    "set_project_dir",
]
