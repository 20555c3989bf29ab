"""Reusable chain kernel (ordered steps, veto semantics, step recording).

This package is intentionally independent of `cart_chain.*`. Document shapes and the
steps that transform them belong to the consuming application.
"""

from chainkit.engine.chain import (
    ChainExecutor,
    DefaultStepRecorder,
    NullStepRecorder,
    StepRecorder,
    create_chain_executor,
    utc_now_iso8601,
)
from chainkit.engine.steps import STOP, Action, ChainStep, Continue, Stop, StepOutcome, StepResult
from chainkit.errors import ChainError, DuplicateStepError, UnknownStepError
from chainkit.step_registry import StepRegistry

__all__ = [
    "Action",
    "ChainError",
    "ChainExecutor",
    "ChainStep",
    "Continue",
    "DefaultStepRecorder",
    "DuplicateStepError",
    "NullStepRecorder",
    "STOP",
    "Stop",
    "StepOutcome",
    "StepRecorder",
    "StepRegistry",
    "StepResult",
    "UnknownStepError",
    "create_chain_executor",
    "utc_now_iso8601",
]
