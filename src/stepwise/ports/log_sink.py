from __future__ import annotations

from typing import Protocol

from stepwise.observability.logging import LogMessage


class LogSink(Protocol):
    def emit(self, message: LogMessage) -> None:
        raise NotImplementedError("LogSink.emit must be implemented")
