"""Common worker plumbing: run context, step input, audit steps and inference helpers."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from src.core.cancellation import CancelToken
from src.core.config.models import AppConfig
from src.core.contracts.content import Timeframe
from src.core.contracts.plan import ExecutionPlan, PlanStep
from src.core.exceptions import RunCancelled
from src.inference.llm import InferenceService
from src.orchestrator.recorder import StepRecorder

I = TypeVar("I")
O = TypeVar("O")
M = TypeVar("M", bound=BaseModel)
R = TypeVar("R", bound=BaseModel)


@dataclass
class WorkerContext:
    """Shared by every worker in one run."""

    api_key: str
    run_id: str
    query: str = ""
    timeframe: Timeframe | None = None
    cancel: CancelToken = field(default_factory=CancelToken)


@dataclass(frozen=True)
class StepInput:
    """What the executor hands a plan worker: its step plus the prior results, last one first-class."""

    step: PlanStep
    plan: ExecutionPlan | None = None
    previous: Any = None
    history: tuple[Any, ...] = ()

    def latest(self, result_type: type[R]) -> R | None:
        if isinstance(self.previous, result_type):
            return self.previous
        for result in reversed(self.history):
            if isinstance(result, result_type):
                return result
        return None


class BaseWorker(Generic[I, O]):
    """Emits a started step, runs ``_run``, then a completed or error step.

    Subclasses raise by default; best-effort workers override ``on_error``
    to return a degraded result instead.
    """

    kind = "worker"

    def __init__(self, inference: InferenceService, recorder: StepRecorder, config: AppConfig):
        self.inference = inference
        self.recorder = recorder
        self.config = config
        self.log = logging.getLogger(f"worker.{self.kind}")

    @property
    def model_id(self) -> str:
        return self.config.models.worker

    async def run(self, payload: I, context: WorkerContext) -> O:
        context.cancel.raise_if_cancelled()
        action, text = self.start_message(payload, context)
        self.record(context, action, text)
        try:
            result = await self._run(payload, context)
        except RunCancelled as e:
            self.record(context, f"{self.kind} cancelled", str(e), "error")
            raise
        except Exception as e:
            self.log.warning("%s failed: %s", self.kind, e)
            self.record(context, f"{self.kind} error", str(e) or type(e).__name__, "error")
            return self.on_error(e, payload, context)
        action, text = self.complete_message(result)
        self.record(context, action, text)
        return result

    async def _run(self, payload: I, context: WorkerContext) -> O:
        raise NotImplementedError

    def start_message(self, payload: I, context: WorkerContext) -> tuple[str, str]:
        return f"{self.kind} started", context.query

    def complete_message(self, result: O) -> tuple[str, str]:
        return f"{self.kind} complete", ""

    def on_error(self, error: Exception, payload: I, context: WorkerContext) -> O:
        raise error

    def record(self, context: WorkerContext, action: str, text: str = "", finish_reason: str | None = "complete") -> None:
        self.recorder.add_step(context.run_id, action, text, finish_reason)

    async def structured(
        self,
        context: WorkerContext,
        schema: type[M],
        prompt: str,
        system: str | None = None,
        model_id: str | None = None,
    ) -> M:
        return await context.cancel.guard(
            self.inference.generate_structured(
                model_id or self.model_id, schema, prompt, system=system, api_key=context.api_key
            )
        )

    async def text(
        self,
        context: WorkerContext,
        prompt: str,
        system: str | None = None,
        model_id: str | None = None,
    ) -> str:
        return await context.cancel.guard(
            self.inference.generate_text(model_id or self.model_id, prompt, system=system, api_key=context.api_key)
        )


def preview(text: str, limit: int = 120) -> str:
    text = str(text)
    return (text[:limit] + "…") if len(text) > limit else text
