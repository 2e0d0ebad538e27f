from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stepwise.ports.driver import BrowserSession


class StepType(str, Enum):
    NORMAL = "normal"
    # ONCE steps run on the first iteration only (iteration <= 1).
    ONCE = "once"


# Step bodies receive the browser session and the record fed for the current iteration.
StepFn = Callable[["BrowserSession", Any], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Step:
    name: str
    fn: StepFn
    type: StepType = StepType.NORMAL
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Step name must be a non-empty string")
        # Freeze the overrides so a step stays immutable for the life of the run.
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    def runs_on(self, iteration: int) -> bool:
        return self.type is not StepType.ONCE or iteration <= 1
