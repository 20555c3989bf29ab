"""Engine primitives for building and running step chains."""

from chainkit.engine.chain import (
    ChainExecutor,
    DefaultStepRecorder,
    NullStepRecorder,
    StepRecorder,
    create_chain_executor,
    utc_now_iso8601,
)
from chainkit.engine.steps import (
    STOP,
    Action,
    ChainStep,
    Continue,
    Stop,
    StepOutcome,
    StepResult,
    callable_source,
    normalize_outcome,
)

__all__ = [
    "Action",
    "ChainExecutor",
    "ChainStep",
    "Continue",
    "DefaultStepRecorder",
    "NullStepRecorder",
    "STOP",
    "Stop",
    "StepOutcome",
    "StepRecorder",
    "StepResult",
    "callable_source",
    "create_chain_executor",
    "normalize_outcome",
    "utc_now_iso8601",
]
