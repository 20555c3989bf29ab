"""Step and step-outcome types for the chain engine.

This module is intentionally app-agnostic and must not import `cart_chain.*`.
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeAlias, TypeVar, Union

DocT = TypeVar("DocT")


@dataclass(frozen=True)
class Continue(Generic[DocT]):
    """Hand `document` to the next step. `None` is not a document; use `Stop` to veto."""

    document: DocT

    def __post_init__(self) -> None:
        if self.document is None:
            raise ValueError("Continue requires a document; return Stop() to veto the chain")


@dataclass(frozen=True)
class Stop:
    """Veto the rest of the chain. Not an error."""

    reason: str | None = None


STOP = Stop()

StepOutcome: TypeAlias = Union[Continue[Any], Stop]
StepResult: TypeAlias = Union[Continue[Any], Stop, Any, None]
Action: TypeAlias = Callable[[Any], Union[StepResult, Awaitable[StepResult]]]


def normalize_outcome(value: Any) -> StepOutcome:
    """Map whatever a step returned onto `Continue` or `Stop`.

    `None` is the legacy absent marker and means stop; any other non-variant value is
    taken to be the next document.
    """

    if isinstance(value, (Continue, Stop)):
        return value
    if value is None:
        return STOP
    return Continue(value)


def callable_source(fn: Any) -> str | None:
    if not callable(fn):
        return None
    module = getattr(fn, "__module__", None) or "<unknown_module>"
    qualname = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or "<callable>"
    return f"{module}.{qualname}"


@dataclass(frozen=True)
class ChainStep:
    name: str
    action: Action
    doc: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise TypeError(f"Step name must be a string (type={type(self.name).__name__})")
        name = self.name.strip()
        if not name:
            raise ValueError("Step name cannot be empty")
        object.__setattr__(self, "name", name)

        if not callable(self.action):
            raise TypeError(f"Step action must be callable (type={type(self.action).__name__})")

        if self.doc is None:
            doc = getattr(self.action, "__doc__", None)
            if isinstance(doc, str) and doc.strip():
                object.__setattr__(self, "doc", doc.strip().splitlines()[0])
        elif not isinstance(self.doc, str) or not self.doc.strip():
            raise TypeError("Step doc must be a non-empty string or None")

    @property
    def source(self) -> str | None:
        return callable_source(self.action)
