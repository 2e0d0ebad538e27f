from __future__ import annotations

import json
import sys
from dataclasses import asdict
from datetime import UTC, date, datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stepwise.kernel.report import StepRecord


class JsonlReportSink:
    # Appends one StepRecord per line and flushes after each record.
    def __init__(self, *, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self._path.open("a", encoding="utf-8")

    def emit(self, record: "StepRecord") -> None:
        self._handle.write(_dumps(record) + "\n")
        self._handle.flush()

    def flush(self) -> None:
        if not self._handle.closed:
            self._handle.flush()

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()


class StdoutReportSink:
    # Prints one JSON record per line for local debugging.
    def emit(self, record: "StepRecord") -> None:
        sys.stdout.write(_dumps(record) + "\n")

    def flush(self) -> None:
        sys.stdout.flush()

    def close(self) -> None:
        self.flush()


def record_to_dict(record: "StepRecord") -> dict[str, object]:
    # Keep key order stable so report diffs stay deterministic.
    return {
        "test": record.test_name,
        "iteration": record.iteration,
        "step_index": record.step_index,
        "step_name": record.step_name,
        "t_enter": _format_dt(record.t_enter),
        "t_exit": _format_dt(record.t_exit),
        "duration_ms": record.duration_ms,
        "status": record.status,
        "actions": list(record.actions),
        "error": asdict(record.error) if record.error is not None else None,
    }


def _dumps(record: "StepRecord") -> str:
    return json.dumps(record_to_dict(record), separators=(",", ":"), ensure_ascii=False, default=_json_default)


def _format_dt(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _json_default(obj: object) -> str:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)
