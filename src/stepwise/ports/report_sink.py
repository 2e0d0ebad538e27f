from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from stepwise.kernel.report import StepRecord


class ReportSink(Protocol):
    # Report sinks receive one StepRecord per executed step; formatting is up to the sink.
    def emit(self, record: "StepRecord") -> None:
        raise NotImplementedError("ReportSink.emit must be implemented")

    def flush(self) -> None:
        raise NotImplementedError("ReportSink.flush must be implemented")

    def close(self) -> None:
        raise NotImplementedError("ReportSink.close must be implemented")
