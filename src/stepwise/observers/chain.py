from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from stepwise.observers.observer import RunObserver

if TYPE_CHECKING:
    from stepwise.kernel.errors import StructuredError
    from stepwise.kernel.sequencer import StepSequencer
    from stepwise.kernel.step import Step


class ObserverChain(RunObserver):
    # Fans every hook out to the registered observers in registration order, one at a time.
    # The observer tuple is fixed at construction so the order cannot change mid-run.
    def __init__(self, observers: Iterable[RunObserver] = ()) -> None:
        self._observers = tuple(observers)

    @property
    def observers(self) -> tuple[RunObserver, ...]:
        return self._observers

    def __len__(self) -> int:
        return len(self._observers)

    async def before(self, *, run: StepSequencer) -> None:
        for observer in self._observers:
            await observer.before(run=run)

    async def before_step(self, *, run: StepSequencer, step: Step) -> None:
        for observer in self._observers:
            await observer.before_step(run=run, step=step)

    async def before_step_action(self, *, run: StepSequencer, step: Step | None, action: str) -> None:
        for observer in self._observers:
            await observer.before_step_action(run=run, step=step, action=action)

    async def after_step_action(self, *, run: StepSequencer, step: Step | None, action: str) -> None:
        for observer in self._observers:
            await observer.after_step_action(run=run, step=step, action=action)

    async def on_step_passed(self, *, run: StepSequencer, step: Step) -> None:
        for observer in self._observers:
            await observer.on_step_passed(run=run, step=step)

    async def on_step_error(self, *, run: StepSequencer, step: Step, error: StructuredError) -> None:
        for observer in self._observers:
            await observer.on_step_error(run=run, step=step, error=error)

    async def after_step(self, *, run: StepSequencer, step: Step) -> None:
        for observer in self._observers:
            await observer.after_step(run=run, step=step)

    async def after(self, *, run: StepSequencer) -> None:
        for observer in self._observers:
            await observer.after(run=run)
