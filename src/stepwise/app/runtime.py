from __future__ import annotations

from dataclasses import dataclass

from stepwise.kernel.errors import DataExhaustedError, RunFailedError
from stepwise.kernel.run_state import RunPhase
from stepwise.kernel.sequencer import StepSequencer


@dataclass(frozen=True, slots=True)
class IterationSummary:
    completed: int
    failed: int
    stopped_early: bool
    cancelled: bool = False

    @property
    def passed(self) -> int:
        return self.completed - self.failed

    @property
    def ok(self) -> bool:
        return self.failed == 0 and not self.cancelled


async def run_iterations(sequencer: StepSequencer, iterations: int | None) -> IterationSummary:
    # Iterations are numbered from 1; None keeps going until data runs out or the test is cancelled.
    await sequencer.before_run()
    completed = 0
    failed = 0
    iteration = 0
    while iterations is None or iteration < iterations:
        iteration += 1
        try:
            await sequencer.run(iteration)
        except RunFailedError:
            completed += 1
            failed += 1
            continue
        except DataExhaustedError:
            completed += 1
            failed += 1
            return IterationSummary(completed=completed, failed=failed, stopped_early=True)
        if sequencer.outcome is RunPhase.CANCELLED:
            return IterationSummary(completed=completed, failed=failed, stopped_early=True, cancelled=True)
        completed += 1
    return IterationSummary(completed=completed, failed=failed, stopped_early=False)
