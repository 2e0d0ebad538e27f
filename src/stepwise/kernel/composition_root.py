from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from stepwise.adapters.log_sinks import FanoutLogSink, JsonlLogSink, StdoutLogSink
from stepwise.adapters.report_sinks import JsonlReportSink
from stepwise.kernel.script import Script
from stepwise.kernel.sequencer import StepSequencer
from stepwise.observers.failure import ScreenshotOnFailureObserver
from stepwise.observers.logging import LoggingObserver
from stepwise.observers.observer import RunObserver
from stepwise.observers.report import StepReportObserver
from stepwise.ports.driver import DriverRuntime


@dataclass(frozen=True, slots=True)
class AppRuntime:
    # Small bundle for the sequencer plus the sink resources it owns.
    sequencer: StepSequencer
    script: Script
    closers: tuple[Callable[[], None], ...] = field(default_factory=tuple)

    def close(self) -> None:
        for close in self.closers:
            close()


def build_runtime(
    *,
    script: Script,
    driver: DriverRuntime,
    report_path: Path | None = None,
    log_path: Path | None = None,
    log_level: str = "info",
    extra_observers: Sequence[RunObserver] = (),
) -> AppRuntime:
    # Observer order is fixed here: logging, reporting, failure capture, then caller-supplied observers.
    closers: list[Callable[[], None]] = []
    log_sinks: list[object] = [StdoutLogSink(min_level=log_level)]
    if log_path is not None:
        jsonl_log = JsonlLogSink(log_path)
        log_sinks.append(jsonl_log)
        closers.append(jsonl_log.close)
    log_sink = FanoutLogSink(log_sinks)

    observers: list[RunObserver] = [LoggingObserver(log_sink)]
    if report_path is not None:
        report_sink = JsonlReportSink(path=report_path)
        observers.append(StepReportObserver(report_sink))
        closers.append(report_sink.close)
    observers.append(ScreenshotOnFailureObserver())
    observers.extend(extra_observers)

    sequencer = StepSequencer(
        client=driver.client,
        script=script,
        browser_factory=driver.browser_factory,
        interceptor_factory=driver.interceptor_factory,
        observers=observers,
        log_sink=log_sink,
    )
    return AppRuntime(sequencer=sequencer, script=script, closers=tuple(closers))
