from __future__ import annotations

from typing import TYPE_CHECKING

from stepwise.observability.logging import LogMessage
from stepwise.observers.observer import RunObserver

if TYPE_CHECKING:
    from stepwise.kernel.errors import StructuredError
    from stepwise.kernel.sequencer import StepSequencer
    from stepwise.kernel.step import Step
    from stepwise.ports.log_sink import LogSink


class LoggingObserver(RunObserver):
    # Emits one structured log line per lifecycle hook; sub-actions log at debug level.
    def __init__(self, sink: LogSink) -> None:
        self._sink = sink

    async def before(self, *, run: StepSequencer) -> None:
        self._emit("info", "test started", run)

    async def before_step(self, *, run: StepSequencer, step: Step) -> None:
        self._emit("info", "step started", run, step=step.name)

    async def before_step_action(self, *, run: StepSequencer, step: Step | None, action: str) -> None:
        self._emit("debug", "action started", run, step=_name(step), action=action)

    async def after_step_action(self, *, run: StepSequencer, step: Step | None, action: str) -> None:
        self._emit("debug", "action finished", run, step=_name(step), action=action)

    async def on_step_passed(self, *, run: StepSequencer, step: Step) -> None:
        self._emit("info", "step passed", run, step=step.name)

    async def on_step_error(self, *, run: StepSequencer, step: Step, error: StructuredError) -> None:
        self._emit("error", "step failed", run, step=step.name, kind=error.kind.value, error=error.message)

    async def after_step(self, *, run: StepSequencer, step: Step) -> None:
        self._emit("debug", "step finished", run, step=step.name)

    async def after(self, *, run: StepSequencer) -> None:
        self._emit("info", "test finished", run, failed=run.failed)

    def _emit(self, level: str, message: str, run: StepSequencer, **fields: object) -> None:
        self._sink.emit(
            LogMessage(
                level=level,
                message=message,
                fields={"test": run.settings.name, "iteration": run.iteration, **fields},
            )
        )


def _name(step: Step | None) -> str | None:
    return None if step is None else step.name
