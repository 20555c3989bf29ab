from __future__ import annotations


class ChainError(Exception):
    """Base class for chain kernel errors."""


class DuplicateStepError(ChainError, ValueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Step with name {name} already exists.")


class UnknownStepError(ChainError, ValueError):
    def __init__(self, name: str, *, available: tuple[str, ...] = (), suggestions: tuple[str, ...] = ()):
        self.name = name
        self.available = available
        self.suggestions = suggestions
        message = f"Unknown step: {name} (available: {', '.join(available) or '<none>'})"
        if suggestions:
            message += f"; did you mean: {', '.join(suggestions)}?"
        super().__init__(message)
