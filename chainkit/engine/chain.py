"""Sequential, short-circuiting chain executor.

This module is intentionally app-agnostic and must not import `cart_chain.*`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from datetime import datetime, timezone
from typing import Any, Protocol

from chainkit.engine.steps import (
    Action,
    ChainStep,
    Continue,
    Stop,
    StepOutcome,
    normalize_outcome,
)
from chainkit.step_registry import StepRegistry


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class StepRecorder(Protocol):
    def on_step_start(self, logger: logging.Logger, path: str, **metrics: Any) -> None:
        ...

    def on_step_end(self, logger: logging.Logger, record: dict[str, Any]) -> None:
        ...

    def on_step_error(
        self, logger: logging.Logger, path: str, step_name: str, exc: Exception
    ) -> None:
        ...

    def on_chain_stop(self, logger: logging.Logger, path: str, reason: str | None) -> None:
        ...


class DefaultStepRecorder:
    def on_step_start(self, logger: logging.Logger, path: str, **metrics: Any) -> None:
        tokens: list[str] = []
        index = metrics.get("index")
        total = metrics.get("total")
        if isinstance(index, int) and isinstance(total, int):
            tokens.append(f"index={index}/{total}")

        source = metrics.get("source")
        if isinstance(source, str) and source.strip():
            tokens.append(f"source={source.strip()}")

        if tokens:
            logger.info("Step: %s (%s)", path, ", ".join(tokens))
        else:
            logger.info("Step: %s", path)

    def on_step_end(self, logger: logging.Logger, record: dict[str, Any]) -> None:
        path = record.get("path", "<unknown>")
        outcome = record.get("outcome") or "continue"
        duration_ms = float(record.get("duration_ms", 0.0) or 0.0)
        logger.info("Completed step %s (outcome=%s, duration_ms=%.1f)", path, outcome, duration_ms)

    def on_step_error(
        self, logger: logging.Logger, path: str, step_name: str, exc: Exception
    ) -> None:
        logger.error("Step failed: %s (%s)", path, exc)

    def on_chain_stop(self, logger: logging.Logger, path: str, reason: str | None) -> None:
        if reason:
            logger.info("Chain stopped at %s: %s", path, reason)
        else:
            logger.info("Chain stopped at %s", path)


class NullStepRecorder:
    def on_step_start(self, logger: logging.Logger, path: str, **metrics: Any) -> None:
        return

    def on_step_end(self, logger: logging.Logger, record: dict[str, Any]) -> None:
        return

    def on_step_error(
        self, logger: logging.Logger, path: str, step_name: str, exc: Exception
    ) -> None:
        return

    def on_chain_stop(self, logger: logging.Logger, path: str, reason: str | None) -> None:
        return


async def _invoke(action: Action, document: Any) -> Any:
    result = action(document)
    if inspect.isawaitable(result):
        result = await result
    return result


class ChainExecutor:
    """Runs registered steps in registration order over a single document.

    Any step may veto the rest of the chain by returning `Stop` (or `None`). The
    terminal outcome of each non-empty run is cached and exposed through
    `get_last_result()`.

    Overlapping `run` calls on one executor are not coordinated unless
    `serialize_runs=True`: each run works on its own document, but the cached last
    result is written by whichever run finishes last. Registering steps while a run
    is in flight does not affect that run, which iterates a snapshot taken at start.
    """

    def __init__(
        self,
        *,
        name: str = "chain",
        logger: logging.Logger | None = None,
        recorder: StepRecorder | None = None,
        serialize_runs: bool = False,
    ):
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Chain name must be a non-empty string")
        self.name = name.strip()
        self.logger = logger or logging.getLogger("chainkit")
        self._recorder = recorder or DefaultStepRecorder()
        self._validate_recorder(self._recorder)
        self._registry = StepRegistry()
        self._last_result: Any | None = None
        self._last_run_steps: list[dict[str, Any]] = []
        self._run_lock = asyncio.Lock() if serialize_runs else None

    @property
    def registry(self) -> StepRegistry:
        return self._registry

    @property
    def serialize_runs(self) -> bool:
        return self._run_lock is not None

    def register(self, name: str, action: Action, *, doc: str | None = None) -> None:
        step = ChainStep(name=name, action=action, doc=doc)
        self._registry.add(step)
        self.logger.debug("Registered step %s/%s", self.name, step.name)

    async def run(self, document: Any) -> Any | None:
        """Run the chain; return the final document, or `None` if a step vetoed."""

        outcome = await self.run_outcome(document)
        if isinstance(outcome, Continue):
            return outcome.document
        return None

    async def run_outcome(self, document: Any) -> StepOutcome:
        if document is None:
            raise ValueError("Chain input document cannot be None")
        if self._run_lock is None:
            return await self._run_chain(document)
        async with self._run_lock:
            return await self._run_chain(document)

    async def run_one(self, action: Action, document: Any) -> Any:
        """Apply one action outside the chain. Registry and last result are untouched."""

        return await _invoke(action, document)

    def get_last_result(self) -> Any | None:
        return self._last_result

    def last_run_steps(self) -> list[dict[str, Any]]:
        return list(self._last_run_steps)

    async def _run_chain(self, document: Any) -> StepOutcome:
        steps = self._registry.snapshot()
        if not steps:
            # Empty chains pass through without recording a last result.
            return Continue(document)

        records: list[dict[str, Any]] = []
        current: Any = document
        total = len(steps)
        for index, step in enumerate(steps, start=1):
            outcome = await self._execute_step(step, current, index=index, total=total, records=records)
            if isinstance(outcome, Stop):
                self._last_run_steps = records
                self._last_result = None
                self._recorder.on_chain_stop(self.logger, self._path(step), outcome.reason)
                return outcome
            current = outcome.document

        self._last_run_steps = records
        self._last_result = current
        return Continue(current)

    async def _execute_step(
        self,
        step: ChainStep,
        document: Any,
        *,
        index: int,
        total: int,
        records: list[dict[str, Any]],
    ) -> StepOutcome:
        path = self._path(step)
        try:
            self._recorder.on_step_start(
                self.logger, path, index=index, total=total, source=step.source
            )
            started = time.perf_counter()
            outcome = normalize_outcome(await _invoke(step.action, document))
            duration_ms = (time.perf_counter() - started) * 1000.0

            record: dict[str, Any] = {
                "type": "step",
                "name": step.name,
                "path": path,
                "index": index,
                "outcome": "stop" if isinstance(outcome, Stop) else "continue",
                "created_at": utc_now_iso8601(),
                "duration_ms": round(duration_ms, 3),
            }
            if isinstance(outcome, Stop) and outcome.reason:
                record["reason"] = outcome.reason
            records.append(record)
            self._recorder.on_step_end(self.logger, record)
            return outcome
        except Exception as exc:
            try:
                self._recorder.on_step_error(self.logger, path, step.name, exc)
            except Exception:
                self.logger.exception("Step recorder failed during error handling for %s", path)
            self._attach_chain_error(exc, chain_path=path, chain_step=step.name)
            raise

    def _path(self, step: ChainStep) -> str:
        return f"{self.name}/{step.name}"

    def _validate_recorder(self, recorder: StepRecorder) -> None:
        required = ("on_step_start", "on_step_end", "on_step_error", "on_chain_stop")
        for name in required:
            method = getattr(recorder, name, None)
            if method is None or not callable(method):
                raise TypeError(f"Step recorder missing required method: {name}")

    def _attach_chain_error(self, exc: Exception, *, chain_path: str, chain_step: str) -> None:
        for attr, value in (("chain_path", chain_path), ("chain_step", chain_step)):
            if hasattr(exc, attr):
                continue
            try:
                setattr(exc, attr, value)
            except AttributeError:
                pass


def create_chain_executor(**kwargs: Any) -> ChainExecutor:
    return ChainExecutor(**kwargs)
