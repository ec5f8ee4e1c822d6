from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from src.core.contracts.content import SearchPlan
from src.core.contracts.results import PlanningResult
from src.workers.base import BaseWorker, StepInput, WorkerContext


class PlanningOutput(BaseModel):
    steps: list[str] = Field(default_factory=list)
    rationale: str = ""
    estimated_time_seconds: float = 0
    recommendations: list[str] = Field(default_factory=list)
    search_plan: SearchPlan


SYSTEM = "You are an expert planner specializing in classification and search strategies over screen (ocr), audio and ui captures."

PROMPT = """Create a detailed plan for: {purpose}
Context:
- type: {type}
- query: {query}
- timeframe: {timeframe}
- current time: {now}

1) produce an overall list of steps ("steps")
2) provide a "rationale" for your approach
3) estimate how many seconds ("estimated_time_seconds") it might take
4) give any "recommendations" that might help
5) create a "search_plan" object with:
   - timeframe: {{ type (specific|relative|none), start_time, end_time (ISO8601 or empty), explanation }}
   - content_types: relevant content types (ocr, audio, ui)
   - search_queries: short queries, each with {{ query, explanation, expected_results, confidence }}
   - rationale: why these queries will help"""


class PlanningWorker(BaseWorker[StepInput, PlanningResult]):
    """Turns a planning step into a concrete search plan."""

    kind = "planning"

    def start_message(self, payload: StepInput, context: WorkerContext) -> tuple[str, str]:
        return "planning started", f"Planning how to approach: {payload.step.purpose}"

    async def _run(self, payload: StepInput, context: WorkerContext) -> PlanningResult:
        step_ctx = payload.step.context
        prompt = PROMPT.format(
            purpose=payload.step.purpose,
            type=step_ctx.type,
            query=step_ctx.query or context.query or "N/A",
            timeframe=step_ctx.timeframe or "unspecified",
            now=datetime.now(timezone.utc).isoformat(),
        )
        out = await self.structured(context, PlanningOutput, prompt, system=SYSTEM)
        return PlanningResult(**out.model_dump())

    def complete_message(self, result: PlanningResult) -> tuple[str, str]:
        queries = ", ".join(q.query for q in result.search_plan.search_queries) or "none"
        return "planning complete", (
            f"{len(result.steps)} steps, ~{result.estimated_time_seconds:.0f}s\n"
            f"search queries: {queries}\n"
            f"content types: {', '.join(result.search_plan.content_types) or 'default'}"
        )
