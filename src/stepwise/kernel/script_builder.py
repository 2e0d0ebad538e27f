from __future__ import annotations

from dataclasses import dataclass

from stepwise.adapters.data_sources import InMemoryDataSource
from stepwise.config.models import ScriptConfig
from stepwise.kernel.script import NullDataSource, Script
from stepwise.kernel.settings import InvalidSettingsError, merge_settings, settings_from_mapping
from stepwise.kernel.step import Step, StepType
from stepwise.kernel.step_registry import StepRegistry, UnknownStepError


class InvalidScriptConfigError(ValueError):
    pass


class StepBuildError(RuntimeError):
    def __init__(self, step_name: str, cause: Exception) -> None:
        super().__init__(f"Failed to build step '{step_name}': {cause}")
        self.step_name = step_name
        self.cause = cause


@dataclass(frozen=True, slots=True)
class ScriptBuilder:
    # Assembles a Script from a validated config and the step registry.
    registry: StepRegistry

    def build(self, config: ScriptConfig) -> Script:
        if not config.steps:
            raise InvalidScriptConfigError("Script steps list is empty")

        try:
            settings = settings_from_mapping(config.settings)
        except InvalidSettingsError as exc:
            raise InvalidScriptConfigError(f"settings: {exc}") from exc

        steps: list[Step] = []
        for decl in config.steps:
            key = decl.use or decl.name
            try:
                fn = self.registry.get(key)
            except UnknownStepError as exc:
                raise UnknownStepError(key) from exc

            try:
                # Validate overrides up front; a bad option should fail the build, not the run.
                merge_settings(settings, decl.options)
            except InvalidSettingsError as exc:
                raise StepBuildError(decl.name, exc) from exc

            steps.append(
                Step(
                    name=decl.name,
                    fn=fn,
                    type=StepType.ONCE if decl.once else StepType.NORMAL,
                    options=decl.options,
                )
            )

        data = NullDataSource()
        if config.data is not None:
            data = InMemoryDataSource(config.data.records, circular=config.data.circular)
        return Script(settings=settings, steps=steps, data=data)
