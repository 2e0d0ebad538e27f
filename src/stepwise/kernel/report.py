from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from stepwise.kernel.errors import ErrorInfo


@dataclass(frozen=True, slots=True)
class StepRecord:
    # One executed step: timing, outcome and the driver actions it performed.
    test_name: str
    iteration: int
    step_index: int
    step_name: str
    t_enter: datetime
    t_exit: datetime
    duration_ms: float
    status: Literal["passed", "failed"]
    actions: tuple[str, ...] = ()
    error: ErrorInfo | None = None
