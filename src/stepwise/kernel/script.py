from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from stepwise.kernel.settings import RunSettings
from stepwise.kernel.step import Step

if TYPE_CHECKING:
    from stepwise.ports.data_source import DataSource


class NullDataSource:
    # Default feed for scripts without data: every iteration gets an empty record.
    async def feed(self) -> object | None:
        return {}


@dataclass(frozen=True, slots=True)
class Script:
    # A compiled test script: base settings, the ordered steps and their data feed.
    settings: RunSettings
    steps: Sequence[Step]
    data: DataSource = field(default_factory=NullDataSource)
    before_test_run: Callable[[], Awaitable[None]] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]
