"""Run orchestration: plan the query, execute it, record the run's start and end."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from src.core.cancellation import CancelToken
from src.core.contracts.plan import ExecutionPlan
from src.core.contracts.results import AnswerResult
from src.core.exceptions import ConfigError, RunCancelled
from src.orchestrator.executor import Executor
from src.orchestrator.planner import Planner
from src.orchestrator.recorder import StepRecorder
from src.workers.base import WorkerContext

log = logging.getLogger("orchestrator")


@dataclass
class RunOutcome:
    run_id: str
    plan: ExecutionPlan
    results: list[Any] = field(default_factory=list)
    answer: str | None = None
    error: Exception | None = None
    failed_step: int | None = None

    @property
    def status(self) -> str:
        if self.error is None:
            return "completed"
        if isinstance(self.error, RunCancelled):
            return "cancelled"
        return "partial" if self.results else "failed"


class Orchestrator:
    def __init__(self, planner: Planner, executor: Executor, recorder: StepRecorder):
        self.planner = planner
        self.executor = executor
        self.recorder = recorder

    async def run(
        self,
        query: str,
        instructions: str | None = None,
        api_key: str | None = None,
        run_id: str | None = None,
        cancel: CancelToken | None = None,
    ) -> RunOutcome:
        """Plan and execute one run.

        Missing api key or run id and plan generation failures raise; a
        failing step does not, it comes back on ``RunOutcome.error`` with
        the results produced before it.
        """
        if not api_key:
            raise ConfigError("API key is required for classification")
        if not run_id:
            raise ConfigError("Run ID is required for tracking steps")

        context = WorkerContext(api_key=api_key, run_id=run_id, query=query, cancel=cancel or CancelToken())
        log.info("QUERY: %s", (query[:200] + "…") if len(query) > 200 else query)
        self.recorder.add_step(run_id, "Starting classification orchestration", f'Planning the process for query: "{query}"')

        try:
            plan = await self.planner.generate_plan(query, instructions, context)
        except Exception as e:
            log.exception("Plan failed")
            self.recorder.add_step(run_id, "Planning failed", str(e), "error")
            raise

        outcome = await self.executor.execute(plan, context)
        answer = next((r.answer for r in reversed(outcome.results) if isinstance(r, AnswerResult)), None)

        if outcome.error is not None:
            self.recorder.add_step(
                run_id,
                "Classification process failed",
                f"Step {outcome.failed_step}/{len(plan.steps)} failed: {outcome.error}",
                "error",
            )
        else:
            self.recorder.add_step(
                run_id, "Classification process completed", f"Processed {len(plan.steps)} steps successfully"
            )
        return RunOutcome(
            run_id=run_id,
            plan=plan,
            results=outcome.results,
            answer=answer,
            error=outcome.error,
            failed_step=outcome.failed_step,
        )
