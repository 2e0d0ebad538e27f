from stepwise.kernel import (
    CancellationToken,
    RunSettings,
    Script,
    Step,
    StepSequencer,
    StepType,
    StructuredError,
    classify_error,
)
from stepwise.observers import ObserverChain, RunObserver

__all__ = [
    "CancellationToken",
    "ObserverChain",
    "RunObserver",
    "RunSettings",
    "Script",
    "Step",
    "StepSequencer",
    "StepType",
    "StructuredError",
    "classify_error",
]
