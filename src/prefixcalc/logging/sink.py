"""Filesystem NDJSON event sink with concurrency-safe appends.

Events are appended as one JSON line per event.  Two log destinations:

- ``logs/events.ndjson``  -- global event log
- ``logs/batches/<batch_id>.ndjson``  -- per-batch log

Writes use ``json.dumps(sort_keys=True)`` for deterministic output.

Concurrency safety:

- Each append acquires an exclusive ``fcntl.flock`` on the target file.
- Reads acquire a shared lock.
- Locking relies on ``fcntl`` and therefore on a POSIX platform.
"""

from __future__ import annotations

import fcntl
import json
import os
import re
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Iterator

from prefixcalc.logging.events import CalcEvent

# Path-component validation: reject anything that could escape the logs dir
_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")

# Default tail-read size (2 MB)
_DEFAULT_TAIL_BYTES = 2 * 1024 * 1024


class EventSink:
    """Append-only NDJSON log writer with file locking."""

    def __init__(self, project_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.logs_dir = project_dir / "logs"
        self._fsync = fsync
        self._tail_bytes = tail_bytes if tail_bytes is not None else _DEFAULT_TAIL_BYTES

        self.logs_dir.mkdir(parents=True, exist_ok=True)
        (self.logs_dir / "batches").mkdir(exist_ok=True)

    def write(self, event: CalcEvent, *, batch_id: str | None = None) -> None:
        """Append *event* to the global log and optionally a per-batch log."""
        line = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str) + "\n"

        self._append(self.logs_dir / "events.ndjson", line)

        if batch_id and _SAFE_ID_RE.match(batch_id):
            self._append(self.logs_dir / "batches" / f"{batch_id}.ndjson", line)

    # ------------------------------------------------------------------
    # Query helpers (used by the CLI)
    # ------------------------------------------------------------------

    def read_global(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        batch_id: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Read events from the global log, most-recent-first, with filters."""
        limit = min(limit, 2000)

        events = self._read_ndjson(self.logs_dir / "events.ndjson")

        if level:
            events = [e for e in events if e.get("level") == level]
        if event_type:
            events = [e for e in events if e.get("event_type") == event_type]
        if batch_id:
            events = [
                e for e in events
                if e.get("context", {}).get("batch_id") == batch_id
            ]

        events.reverse()
        return events[:limit]

    def read_batch_log(self, batch_id: str) -> list[dict[str, Any]]:
        """Read all events for a specific batch, oldest first."""
        if not _SAFE_ID_RE.match(batch_id):
            return []
        return self._read_ndjson(self.logs_dir / "batches" / f"{batch_id}.ndjson")

    def purge_old_logs(self, max_days: int) -> int:
        """Delete per-batch logs and global log lines older than *max_days*.

        Returns the number of batch log files deleted.
        """
        deleted = 0
        cutoff = time.time() - (max_days * 86400)

        batches_dir = self.logs_dir / "batches"
        if batches_dir.exists():
            for f in batches_dir.iterdir():
                if not f.is_file() or f.suffix != ".ndjson":
                    continue
                if f.stat().st_mtime < cutoff:
                    f.unlink()
                    deleted += 1

        self._purge_global_log(cutoff)
        return deleted

    def _purge_global_log(self, cutoff: float) -> None:
        """Rewrite events.ndjson keeping only lines newer than *cutoff*.

        The kept lines go to a temp file that replaces the log under an
        exclusive lock.
        """
        global_path = self.logs_dir / "events.ndjson"
        if not global_path.exists():
            return

        lines = [l for l in global_path.read_text(encoding="utf-8").splitlines() if l.strip()]
        kept = [l for l in lines if _line_ts(l, default=cutoff) >= cutoff]
        if len(kept) == len(lines):
            return

        tmp = global_path.with_suffix(".ndjson.tmp")
        tmp.write_text("".join(l + "\n" for l in kept), encoding="utf-8")
        with open(global_path, "a", encoding="utf-8") as f, _locked(f, fcntl.LOCK_EX):
            os.replace(tmp, global_path)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _append(self, path: Path, line: str) -> None:
        """Append a single line to *path* under exclusive file lock."""
        with open(path, "a", encoding="utf-8") as f, _locked(f, fcntl.LOCK_EX):
            f.write(line)
            f.flush()
            if self._fsync:
                os.fsync(f.fileno())

    def _read_ndjson(self, path: Path) -> list[dict[str, Any]]:
        """Parse the tail of an NDJSON file, skipping corrupt lines."""
        if not path.exists():
            return []

        events: list[dict[str, Any]] = []
        for line in self._read_tail(path).splitlines():
            if not line.strip():
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return events

    def _read_tail(self, path: Path) -> str:
        """Return at most the last ``self._tail_bytes`` of *path*, whole lines only."""
        with open(path, "rb") as f, _locked(f, fcntl.LOCK_SH):
            size = os.fstat(f.fileno()).st_size
            truncated = size > self._tail_bytes
            if truncated:
                f.seek(size - self._tail_bytes)
            data = f.read()
        if truncated:
            # first line is likely partial
            data = data[data.find(b"\n") + 1:]
        return data.decode("utf-8", errors="replace")


@contextmanager
def _locked(f: IO, operation: int) -> Iterator[None]:
    fcntl.flock(f.fileno(), operation)
    try:
        yield
    finally:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def _line_ts(line: str, default: float) -> float:
    """Epoch timestamp of an event line; unparseable lines get *default*."""
    try:
        ts = json.loads(line).get("ts", "")
        return datetime.fromisoformat(ts.replace("Z", "+00:00")).timestamp()
    except (json.JSONDecodeError, ValueError, AttributeError):
        return default
