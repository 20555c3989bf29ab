from __future__ import annotations

import difflib
from typing import Any, Iterator

from chainkit.engine.steps import ChainStep
from chainkit.errors import DuplicateStepError, UnknownStepError


class StepRegistry:
    """Insertion-ordered mapping of step name to step.

    Registration order is execution order. Duplicate names are rejected rather than
    overwritten, so the first registration always wins.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, ChainStep] = {}

    def add(self, step: ChainStep) -> None:
        if step.name in self._by_name:
            raise DuplicateStepError(step.name)
        self._by_name[step.name] = step

    def names(self) -> tuple[str, ...]:
        return tuple(self._by_name.keys())

    def snapshot(self) -> tuple[ChainStep, ...]:
        return tuple(self._by_name.values())

    def get(self, name: str) -> ChainStep:
        step = self._by_name.get((name or "").strip())
        if step is None:
            raise UnknownStepError(name, available=self.names(), suggestions=self.suggest(name))
        return step

    def describe(self) -> tuple[dict[str, Any], ...]:
        return tuple(
            {"name": step.name, "doc": step.doc, "source": step.source}
            for step in self._by_name.values()
        )

    def suggest(self, name: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (name or "").strip()
        if not key or not self._by_name:
            return ()
        return tuple(difflib.get_close_matches(key, list(self._by_name.keys()), n=limit))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip() in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def __iter__(self) -> Iterator[ChainStep]:
        return iter(self.snapshot())
