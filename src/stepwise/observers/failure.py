from __future__ import annotations

from typing import TYPE_CHECKING

from stepwise.observers.observer import RunObserver

if TYPE_CHECKING:
    from stepwise.kernel.errors import StructuredError
    from stepwise.kernel.sequencer import StepSequencer
    from stepwise.kernel.step import Step


class ScreenshotOnFailureObserver(RunObserver):
    # Captures the page when a step fails, if the run settings ask for it.
    async def on_step_error(self, *, run: StepSequencer, step: Step, error: StructuredError) -> None:
        if run.settings.screenshot_on_failure:
            await run.take_screenshot()
