"""Execute a plan step by step, threading each result into the next worker."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from src.core.contracts.plan import ExecutionPlan
from src.core.exceptions import UnmappedStepError
from src.orchestrator.recorder import StepRecorder
from src.orchestrator.registry import WorkerRegistry
from src.workers.base import StepInput, WorkerContext

log = logging.getLogger("executor")


@dataclass
class ExecutionOutcome:
    results: list[Any] = field(default_factory=list)
    error: Exception | None = None
    failed_step: int | None = None  # 1-based index into plan.steps

    @property
    def ok(self) -> bool:
        return self.error is None


def _preview(value: Any, limit: int = 150) -> str:
    s = str(value)
    return (s[:limit] + "…") if len(s) > limit else s


class Executor:
    def __init__(self, registry: WorkerRegistry, recorder: StepRecorder):
        self.registry = registry
        self.recorder = recorder

    async def execute(self, plan: ExecutionPlan, context: WorkerContext) -> ExecutionOutcome:
        """Run ``plan.steps`` strictly in order.

        The first exception aborts the remaining steps; results produced so
        far are returned with it.
        """
        results: list[Any] = []
        previous = None
        for index, step in enumerate(plan.steps, 1):
            start = time.perf_counter()
            try:
                context.cancel.raise_if_cancelled()
                worker = self.registry.resolve(step)
                log.info("→ %s: %s", step.type, _preview(step.purpose, 100))
                print(f"  [step {index}] → {step.type}: {_preview(step.purpose, 100)}", flush=True)
                result = await worker.run(
                    StepInput(step=step, plan=plan, previous=previous, history=tuple(results)),
                    context,
                )
            except Exception as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                log.warning("← %s: failed %s (%s ms)", step.type, e, latency_ms)
                print(f"  [step {index}] ← {step.type}: failed {e} ({latency_ms} ms)", flush=True)
                if isinstance(e, UnmappedStepError):
                    self.recorder.add_step(context.run_id, "configuration error", str(e), "error")
                return ExecutionOutcome(results=results, error=e, failed_step=index)
            latency_ms = int((time.perf_counter() - start) * 1000)
            log.info("← %s: %s (%s ms)", step.type, _preview(result), latency_ms)
            print(f"  [step {index}] ← {step.type}: {_preview(result)} ({latency_ms} ms)", flush=True)
            results.append(result)
            previous = result
        return ExecutionOutcome(results=results)
