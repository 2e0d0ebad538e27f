from __future__ import annotations

from dataclasses import dataclass, field

from stepwise.kernel.step import StepFn


# Unknown keys fail fast so a typo in a script file never silently drops a step.
class UnknownStepError(KeyError):
    pass


@dataclass
class StepRegistry:
    # Maps the keys used in script files to async step functions.
    _steps: dict[str, StepFn] = field(default_factory=dict)

    def register(self, name: str, fn: StepFn) -> None:
        # Later registrations override earlier ones.
        self._steps[name] = fn

    def step(self, name: str):
        # Decorator form of register().
        def _decorate(fn: StepFn) -> StepFn:
            self.register(name, fn)
            return fn

        return _decorate

    def get(self, name: str) -> StepFn:
        if name not in self._steps:
            raise UnknownStepError(name)
        return self._steps[name]

    def names(self) -> list[str]:
        return sorted(self._steps)
