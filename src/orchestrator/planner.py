"""Generate an ExecutionPlan from the user query using the LLM."""
from __future__ import annotations

import logging

from src.core.config.models import AppConfig
from src.core.contracts.plan import STEP_TYPE_NAMES, ExecutionPlan
from src.inference.llm import InferenceService
from src.orchestrator.recorder import StepRecorder
from src.workers.base import WorkerContext

log = logging.getLogger("planner")

SYSTEM = f"""You are a planner for a search assistant over the user's captured screen text, audio transcripts and UI events.
Given a user query, output an ordered execution plan.
Allowed step types: {STEP_TYPE_NAMES}
Each step has a "type", a "purpose" and a "context" {{ type, query, timeframe }}.
Use only the allowed step types. Steps run strictly in order and each step receives the previous step's result."""

PROMPT = """Create a plan for searching content and producing a final answer:
User's query: "{query}"
{instructions}

Include steps for:
1) Entity resolution (if needed)
2) Timeframe parsing (if needed)
3) Search execution
4) Result analysis
5) Final answer generation"""


class Planner:
    def __init__(self, inference: InferenceService, recorder: StepRecorder, config: AppConfig):
        self.inference = inference
        self.recorder = recorder
        self.config = config

    async def generate_plan(self, query: str, instructions: str | None, context: WorkerContext) -> ExecutionPlan:
        """One structured call; a response that fails validation fails the run (no retry here)."""
        plan = await context.cancel.guard(
            self.inference.generate_structured(
                self.config.models.planner,
                ExecutionPlan,
                PROMPT.format(query=query, instructions=instructions or ""),
                system=SYSTEM,
                api_key=context.api_key,
            )
        )
        if not plan.query.strip():
            plan = plan.model_copy(update={"query": query})
        for i, s in enumerate(plan.steps, 1):
            log.info("PLAN step %s → %s: %s", i, s.type, (s.purpose[:80] + "…") if len(s.purpose) > 80 else s.purpose)
        self.recorder.add_step(
            context.run_id,
            "Generated plan",
            f"Complexity: {plan.estimated_complexity}\nSteps: {plan.describe() or '(none)'}",
        )
        return plan
