from __future__ import annotations

import json
from pathlib import Path

from stepwise.observability.logging import LOG_LEVELS, LogMessage, log_to_dict


class StdoutLogSink:
    # Prints one compact JSON object per log message, dropping anything below min_level.
    def __init__(self, *, min_level: str = "info") -> None:
        self._min_rank = _rank(min_level)

    def emit(self, message: LogMessage) -> None:
        if _rank(message.level) < self._min_rank:
            return
        print(json.dumps(log_to_dict(message), separators=(",", ":"), ensure_ascii=False, default=str))


class JsonlLogSink:
    # File-backed structured log sink; keeps every level.
    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self._path.open("a", encoding="utf-8")

    def emit(self, message: LogMessage) -> None:
        payload = json.dumps(log_to_dict(message), separators=(",", ":"), ensure_ascii=False, default=str)
        self._file.write(payload + "\n")
        self._file.flush()

    def close(self) -> None:
        self._file.close()


class FanoutLogSink:
    # Forwards each message to every wrapped sink in order.
    def __init__(self, sinks: list[object]) -> None:
        self._sinks = list(sinks)

    def emit(self, message: LogMessage) -> None:
        for sink in self._sinks:
            sink.emit(message)


def _rank(level: str) -> int:
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level!r}")
    return LOG_LEVELS.index(level)
