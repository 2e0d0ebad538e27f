from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RunPhase(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DONE = "done"


class InvalidRunTransition(RuntimeError):
    def __init__(self, current: RunPhase, target: RunPhase) -> None:
        super().__init__(f"Invalid run transition: {current.value} -> {target.value}")
        self.current = current
        self.target = target


_TERMINAL = frozenset({RunPhase.PASSED, RunPhase.FAILED, RunPhase.CANCELLED})

_TRANSITIONS: dict[RunPhase, frozenset[RunPhase]] = {
    RunPhase.NOT_STARTED: frozenset({RunPhase.RUNNING}),
    RunPhase.RUNNING: _TERMINAL,
    RunPhase.PASSED: frozenset({RunPhase.DONE}),
    RunPhase.FAILED: frozenset({RunPhase.DONE}),
    RunPhase.CANCELLED: frozenset({RunPhase.DONE}),
    RunPhase.DONE: frozenset({RunPhase.RUNNING}),
}


@dataclass(slots=True)
class RunState:
    # Owned by the sequencer; observers only ever see it through read-only properties.
    phase: RunPhase = RunPhase.NOT_STARTED
    outcome: RunPhase | None = None
    failed: bool = False

    def begin(self) -> None:
        self._move(RunPhase.RUNNING)
        self.outcome = None
        self.failed = False

    def mark_failed(self) -> None:
        # Monotonic until the next begin().
        self.failed = True

    def settle(self, outcome: RunPhase) -> None:
        if outcome not in _TERMINAL:
            raise InvalidRunTransition(self.phase, outcome)
        self._move(outcome)
        self.outcome = outcome

    def finish(self) -> None:
        self._move(RunPhase.DONE)

    @property
    def running(self) -> bool:
        return self.phase is RunPhase.RUNNING

    def _move(self, target: RunPhase) -> None:
        if target not in _TRANSITIONS[self.phase]:
            raise InvalidRunTransition(self.phase, target)
        self.phase = target
