"""Tests for the prefixcalc structured event logging system."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path

import pytest

from prefixcalc.logging.events import (
    CalcEvent,
    EventLevel,
    EventType,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    make_eval_event,
    sanitize_context,
    set_project_dir,
)
from prefixcalc.logging.sink import EventSink


@pytest.fixture
def sink(project_dir: Path) -> EventSink:
    return EventSink(project_dir)


# ---------------------------------------------------------------------------
# A) Event schema
# ---------------------------------------------------------------------------


class TestCalcEvent:
    def test_event_defaults(self):
        evt = CalcEvent(
            level=EventLevel.info,
            event_type=EventType.eval_completed,
            message="hello",
        )
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "eval_completed"
        assert evt.context == {}
        assert evt.error_code is None

    def test_event_serialization(self):
        evt = CalcEvent(
            level=EventLevel.warning,
            event_type=EventType.batch_completed,
            message="1 failed",
        )
        d = evt.model_dump(mode="json")
        assert d["level"] == "warning"
        assert d["event_type"] == "batch_completed"

    def test_all_event_types_exist(self):
        assert {e.value for e in EventType} == {
            "eval_completed",
            "eval_failed",
            "batch_started",
            "batch_completed",
        }

    def test_make_eval_event_ok(self):
        evt = make_eval_event(
            {"formula": "SUM(1,2)", "status": "ok", "value": 3.0, "error": None, "error_code": None},
            batch_id="b1",
            index=4,
        )
        assert evt.event_type == EventType.eval_completed
        assert evt.level == EventLevel.info
        assert evt.context == {"formula": "SUM(1,2)", "batch_id": "b1", "index": 4, "value": 3.0}

    def test_make_eval_event_error(self):
        evt = make_eval_event(
            {
                "formula": "abc",
                "status": "error",
                "value": None,
                "error": "Invalid formula format or unhandled expression: 'abc'",
                "error_code": "formula_format_error",
            }
        )
        assert evt.event_type == EventType.eval_failed
        assert evt.level == EventLevel.error
        assert evt.error_code == "formula_format_error"
        assert "abc" in evt.message
        assert "value" not in evt.context


class TestSanitize:
    def test_long_strings_truncated(self):
        ctx = sanitize_context({"formula": "x" * 300, "n": 1})
        assert ctx["formula"].endswith("...[truncated]")
        assert len(ctx["formula"]) == 256 + len("...[truncated]")
        assert ctx["n"] == 1

    def test_nested(self):
        ctx = sanitize_context({"inner": {"s": "y" * 500}, "items": ["z" * 400, 2]})
        assert ctx["inner"]["s"].endswith("...[truncated]")
        assert ctx["items"][0].endswith("...[truncated]")
        assert ctx["items"][1] == 2

    def test_non_finite_floats_become_strings(self):
        ctx = sanitize_context({"value": float("inf"), "low": float("-inf"), "nan": float("nan"), "ok": 1.5})
        assert ctx == {"value": "inf", "low": "-inf", "nan": "nan", "ok": 1.5}


# ---------------------------------------------------------------------------
# B) Sink
# ---------------------------------------------------------------------------


class TestEventSink:
    def test_creates_dirs(self, tmp_path: Path):
        EventSink(tmp_path)
        assert (tmp_path / "logs" / "batches").is_dir()

    def test_write_and_read_global(self, sink: EventSink, project_dir: Path):
        sink.write(CalcEvent(level=EventLevel.info, event_type=EventType.eval_completed, message="a"))
        sink.write(CalcEvent(level=EventLevel.error, event_type=EventType.eval_failed, message="b"))

        lines = (project_dir / "logs" / "events.ndjson").read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["message"] == "a"

        events = sink.read_global()
        assert [e["message"] for e in events] == ["b", "a"]

    def test_filters(self, sink: EventSink):
        sink.write(CalcEvent(level=EventLevel.info, event_type=EventType.eval_completed, context={"batch_id": "b1"}))
        sink.write(CalcEvent(level=EventLevel.error, event_type=EventType.eval_failed, context={"batch_id": "b2"}))
        sink.write(CalcEvent(level=EventLevel.info, event_type=EventType.batch_started))

        assert len(sink.read_global(level="error")) == 1
        assert len(sink.read_global(event_type="batch_started")) == 1
        assert len(sink.read_global(batch_id="b1")) == 1
        assert len(sink.read_global(limit=2)) == 2

    def test_batch_log(self, sink: EventSink, project_dir: Path):
        evt = CalcEvent(level=EventLevel.info, event_type=EventType.batch_started)
        sink.write(evt, batch_id="abc123")
        assert (project_dir / "logs" / "batches" / "abc123.ndjson").exists()
        assert len(sink.read_batch_log("abc123")) == 1

    def test_unsafe_batch_id_ignored(self, sink: EventSink, project_dir: Path):
        evt = CalcEvent(level=EventLevel.info, event_type=EventType.batch_started)
        sink.write(evt, batch_id="../escape")
        assert not (project_dir / "logs" / "escape.ndjson").exists()
        assert sink.read_batch_log("../escape") == []
        assert len(sink.read_global()) == 1

    def test_tail_bounded_read(self, project_dir: Path):
        small = EventSink(project_dir, tail_bytes=400)
        for i in range(20):
            small.write(CalcEvent(level=EventLevel.info, event_type=EventType.eval_completed, message=f"m{i}"))
        events = small.read_global()
        assert 0 < len(events) < 20
        assert events[0]["message"] == "m19"

    def test_corrupt_lines_skipped(self, sink: EventSink, project_dir: Path):
        sink.write(CalcEvent(level=EventLevel.info, event_type=EventType.eval_completed))
        with open(project_dir / "logs" / "events.ndjson", "a") as f:
            f.write("{not json\n")
        assert len(sink.read_global()) == 1

    def test_purge_old_logs(self, sink: EventSink, project_dir: Path):
        old = CalcEvent(
            level=EventLevel.info,
            event_type=EventType.eval_completed,
            ts="2000-01-01T00:00:00.000000Z",
            message="old",
        )
        sink.write(old, batch_id="oldbatch")
        sink.write(CalcEvent(level=EventLevel.info, event_type=EventType.eval_completed, message="new"))

        old_file = project_dir / "logs" / "batches" / "oldbatch.ndjson"
        stale = time.time() - 10 * 86400
        os.utime(old_file, (stale, stale))

        deleted = sink.purge_old_logs(max_days=5)
        assert deleted == 1
        assert not old_file.exists()
        assert [e["message"] for e in sink.read_global()] == ["new"]


# ---------------------------------------------------------------------------
# C) Module-level emit
# ---------------------------------------------------------------------------


class TestEmit:
    def test_emit_without_sink_is_noop(self, project_dir: Path):
        emit_info(EventType.eval_completed, "dropped")
        assert not (project_dir / "logs" / "events.ndjson").exists()

    def test_emit_helpers(self, project_dir: Path):
        set_project_dir(project_dir)
        emit_info(EventType.batch_started, "start", {"batch_id": "b9"}, batch_id="b9")
        emit_warning(EventType.batch_completed, "done", {"batch_id": "b9"}, error_code="x", batch_id="b9")

        events = EventSink(project_dir).read_batch_log("b9")
        assert [e["level"] for e in events] == ["info", "warning"]
        assert events[1]["error_code"] == "x"

    def test_emit_error(self, project_dir: Path):
        set_project_dir(project_dir)
        emit_error(EventType.eval_failed, "bad formula", {"formula": "abc"}, error_code="formula_format_error", batch_id="b7")

        events = EventSink(project_dir).read_batch_log("b7")
        assert len(events) == 1
        assert events[0]["level"] == "error"
        assert events[0]["event_type"] == "eval_failed"
        assert events[0]["error_code"] == "formula_format_error"
        assert events[0]["context"] == {"formula": "abc"}

    def test_infinite_result_logged_as_valid_json(self, project_dir: Path):
        set_project_dir(project_dir)
        emit_info(EventType.eval_completed, "big", {"value": float("inf")})
        line = (project_dir / "logs" / "events.ndjson").read_text().strip()
        assert "Infinity" not in line
        assert json.loads(line)["context"]["value"] == "inf"

    def test_emit_truncates_context(self, project_dir: Path):
        set_project_dir(project_dir)
        emit(CalcEvent(level=EventLevel.info, event_type=EventType.eval_completed, context={"formula": "S" * 1000}))
        evt = EventSink(project_dir).read_global()[0]
        assert evt["context"]["formula"].endswith("...[truncated]")

    def test_emit_never_raises(self, project_dir: Path):
        set_project_dir(project_dir)
        logs_dir = project_dir / "logs"
        (logs_dir / "events.ndjson").mkdir()  # a directory where the file should be
        emit_info(EventType.eval_completed, "will fail")

    def test_logging_disabled(self, project_dir: Path):
        (project_dir / "prefixcalc.yaml").write_text("logging_enabled: false\n")
        set_project_dir(project_dir)
        emit_info(EventType.eval_completed, "dropped")
        assert not (project_dir / "logs" / "events.ndjson").exists()
