from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from stepwise.kernel.errors import ErrorInfo
from stepwise.kernel.report import StepRecord
from stepwise.observers.observer import RunObserver

if TYPE_CHECKING:
    from stepwise.kernel.errors import StructuredError
    from stepwise.kernel.sequencer import StepSequencer
    from stepwise.kernel.step import Step
    from stepwise.ports.report_sink import ReportSink


@dataclass(slots=True)
class _OpenStep:
    step_index: int
    t_enter: datetime
    actions: list[str] = field(default_factory=list)
    error: ErrorInfo | None = None


class StepReportObserver(RunObserver):
    # Records one StepRecord per executed step and hands it to the report sink.
    def __init__(self, sink: ReportSink) -> None:
        self._sink = sink
        self._open: dict[str, _OpenStep] = {}

    async def before_step(self, *, run: StepSequencer, step: Step) -> None:
        self._open[step.name] = _OpenStep(
            step_index=run.step_names.index(step.name),
            t_enter=datetime.now(tz=UTC),
        )

    async def before_step_action(self, *, run: StepSequencer, step: Step | None, action: str) -> None:
        if step is None or step.name not in self._open:
            return
        self._open[step.name].actions.append(action)

    async def on_step_error(self, *, run: StepSequencer, step: Step, error: StructuredError) -> None:
        state = self._open.get(step.name)
        if state is not None:
            state.error = error.to_info(where=step.name)

    async def after_step(self, *, run: StepSequencer, step: Step) -> None:
        state = self._open.pop(step.name, None)
        if state is None:
            return
        t_exit = datetime.now(tz=UTC)
        self._sink.emit(
            StepRecord(
                test_name=run.settings.name,
                iteration=run.iteration,
                step_index=state.step_index,
                step_name=step.name,
                t_enter=state.t_enter,
                t_exit=t_exit,
                duration_ms=(t_exit - state.t_enter).total_seconds() * 1000.0,
                status="failed" if state.error is not None else "passed",
                actions=tuple(state.actions),
                error=state.error,
            )
        )

    async def after(self, *, run: StepSequencer) -> None:
        self._open.clear()
        self._sink.flush()
