from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from src.core.contracts.content import SearchItem
from src.core.contracts.results import AnalysisResult, SearchResult
from src.core.timeframes import parse_iso
from src.workers.base import BaseWorker, StepInput, WorkerContext, preview

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class AnalysisOutput(BaseModel):
    summary: str
    recommended_items: list[str] = Field(default_factory=list)
    explanation: str = ""


SYSTEM = "You interpret the analysis goal to produce a meta summary and explanation."

PROMPT = """We have sorted conversation items from the user's search.
analysis goal: "{goal}"

conversation snippet:
{snippet}

1) Provide "summary" of the conversation
2) Provide an array "recommended_items" with key points
3) Provide "explanation" about how you derived them"""


def build_snippet(items: list[SearchItem]) -> str:
    """Items oldest first, one ``timestamp:\\ntext`` block each."""
    ordered = sorted(items, key=lambda i: parse_iso(i.content.timestamp) or _EPOCH)
    return "\n\n".join(
        f"{item.content.timestamp or 'unknown time'}:\n{item.content.text.strip() or '[no text]'}"
        for item in ordered
    )


class AnalysisWorker(BaseWorker[StepInput, AnalysisResult]):
    kind = "analysis"

    def start_message(self, payload: StepInput, context: WorkerContext) -> tuple[str, str]:
        return "analysis started", f'Analyzing search results to accomplish: "{payload.step.purpose}"'

    async def _run(self, payload: StepInput, context: WorkerContext) -> AnalysisResult:
        search = payload.latest(SearchResult)
        items = search.items if search is not None else []
        snippet = build_snippet(items)
        if not snippet:
            return AnalysisResult(
                summary="No matching content was found to analyze.",
                explanation="The search returned no relevant items.",
                conversation_snippet="",
            )
        out = await self.structured(
            context,
            AnalysisOutput,
            PROMPT.format(goal=payload.step.purpose, snippet=snippet[: self.config.pipeline.snippet_char_limit]),
            system=SYSTEM,
        )
        # Raw snippet travels with the summary so the answer can quote it
        return AnalysisResult(
            summary=out.summary,
            recommended_items=out.recommended_items,
            explanation=out.explanation,
            conversation_snippet=snippet,
        )

    def complete_message(self, result: AnalysisResult) -> tuple[str, str]:
        return "analysis complete", f"analysis summary: {preview(result.summary, 400)}"
