"""
Structured JSON event log — append-only, one object per line (.jsonl).

Usage:
    from modules.observability.logger import StructuredLogger

    events = StructuredLogger(logs_dir="logs")
    with events.request_scope("plan_3f2a") as emit:
        emit("plan_start", {"pandals": 5, "mode": "car"})
        emit("plan_complete", {"total_distance_km": 9.0})
    # plan_3f2a.jsonl is closed here, even if planning raised

Each request id gets its own file:  <logs_dir>/<request_id>.jsonl
A handle stays open only while its request is in flight; logging to a closed
request id later reopens the file in append mode.
"""

from __future__ import annotations

import functools
import json
import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Callable, Iterator

import config

EventEmitter = Callable[[str, dict], None]


class StructuredLogger:
    """Thread-safe JSONL event sink; one file per request id."""

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        self._logs_dir = Path(logs_dir) if logs_dir else Path(config.LOGS_DIR)
        self._lock = threading.Lock()
        self._handles: dict[str, IO[str]] = {}

    @property
    def logs_dir(self) -> Path:
        return self._logs_dir

    @property
    def open_requests(self) -> list[str]:
        """Request ids that currently hold an open file handle."""
        with self._lock:
            return list(self._handles)

    def path_for(self, request_id: str) -> Path:
        return self._logs_dir / f"{request_id}.jsonl"

    # ── public API ────────────────────────────────────────────────────────

    @contextmanager
    def request_scope(self, request_id: str) -> Iterator[EventEmitter]:
        """Yield ``emit(event_type, payload)`` bound to *request_id*; close its file on exit."""
        try:
            yield functools.partial(self.log, request_id)
        finally:
            self.close(request_id)

    def log(self, request_id: str, event_type: str, payload: dict) -> None:
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": request_id,
            "event_type": event_type,
            "payload": payload,
        }
        line = json.dumps(record, default=str, ensure_ascii=False) + "\n"

        with self._lock:
            fh = self._handles.get(request_id) or self._open(request_id)
            fh.write(line)
            fh.flush()

    def close(self, request_id: str | None = None) -> None:
        """Close the handle for *request_id*, or every handle when omitted."""
        with self._lock:
            if request_id is not None:
                handles = [self._handles.pop(request_id, None)]
            else:
                handles = list(self._handles.values())
                self._handles.clear()
        for fh in handles:
            if fh is not None:
                fh.close()

    # ── internals ─────────────────────────────────────────────────────────

    def _open(self, request_id: str) -> IO[str]:
        os.makedirs(self._logs_dir, exist_ok=True)
        fh = open(self.path_for(request_id), "a", encoding="utf-8")  # noqa: SIM115
        self._handles[request_id] = fh
        return fh
