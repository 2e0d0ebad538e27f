from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stepwise.kernel.errors import StructuredError
    from stepwise.kernel.sequencer import StepSequencer
    from stepwise.kernel.step import Step


class RunObserver:
    # Lifecycle hooks for one run. Subclasses override what they need; the rest are no-ops.
    # Per step: before_step -> [before/after_step_action ...] -> on_step_passed | on_step_error -> after_step.
    async def before(self, *, run: StepSequencer) -> None:
        return None

    async def before_step(self, *, run: StepSequencer, step: Step) -> None:
        return None

    async def before_step_action(self, *, run: StepSequencer, step: Step | None, action: str) -> None:
        return None

    async def after_step_action(self, *, run: StepSequencer, step: Step | None, action: str) -> None:
        return None

    async def on_step_passed(self, *, run: StepSequencer, step: Step) -> None:
        return None

    async def on_step_error(self, *, run: StepSequencer, step: Step, error: StructuredError) -> None:
        return None

    async def after_step(self, *, run: StepSequencer, step: Step) -> None:
        return None

    async def after(self, *, run: StepSequencer) -> None:
        return None


class NullRunObserver(RunObserver):
    # Explicit no-op observer for wiring that requires an instance.
    pass
