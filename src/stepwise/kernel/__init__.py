from .cancellation import CancellationToken, race_with_cancellation
from .errors import (
    AlreadyStructuredFailure,
    AssertionFailure,
    DataExhaustedError,
    ErrorInfo,
    ErrorKind,
    RunFailedError,
    StructuredError,
    UnclassifiedFailure,
    classify_error,
)
from .report import StepRecord
from .run_state import InvalidRunTransition, RunPhase, RunState
from .script import NullDataSource, Script
from .settings import (
    InvalidSettingsError,
    RunSettings,
    merge_settings,
    overlay_settings,
    restore_settings,
    setting_field_name,
    settings_from_mapping,
)
from .step import Step, StepType
from .step_registry import StepRegistry, UnknownStepError
from .sequencer import StepSequencer
from .script_builder import InvalidScriptConfigError, ScriptBuilder, StepBuildError

# Kernel exports are the engine's public surface; adapters and the CLI build on these.
__all__ = [
    "AlreadyStructuredFailure",
    "AssertionFailure",
    "CancellationToken",
    "DataExhaustedError",
    "ErrorInfo",
    "ErrorKind",
    "InvalidRunTransition",
    "InvalidScriptConfigError",
    "InvalidSettingsError",
    "NullDataSource",
    "RunFailedError",
    "RunPhase",
    "RunSettings",
    "RunState",
    "Script",
    "ScriptBuilder",
    "Step",
    "StepBuildError",
    "StepRecord",
    "StepRegistry",
    "StepSequencer",
    "StepType",
    "StructuredError",
    "UnclassifiedFailure",
    "UnknownStepError",
    "classify_error",
    "merge_settings",
    "overlay_settings",
    "race_with_cancellation",
    "restore_settings",
    "setting_field_name",
    "settings_from_mapping",
]
