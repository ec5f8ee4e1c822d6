from __future__ import annotations

from src.core.contracts.results import AnalysisResult, AnswerResult, SearchResult
from src.workers.analysis import build_snippet
from src.workers.base import BaseWorker, StepInput, WorkerContext
from src.workers.guardrails import apply_guardrails

PROMPT = """We have the following conversation snippet from the most recent logs:

{snippet}

A short meta-summary was: "{summary}"

User wants a direct answer for: "{purpose}"
Original question: "{query}"

If the user is asking what a conversation was about or what was said, provide the actual conversation content (excerpts) in a concise manner.

Output no more than {max_lines} lines. Summarize if needed, but preserve actual meaning."""


class AnswerWorker(BaseWorker[StepInput, AnswerResult]):
    """Terminal step: turns the previous result into a short user-facing answer."""

    kind = "answer"

    def start_message(self, payload: StepInput, context: WorkerContext) -> tuple[str, str]:
        return "Generating final answer", f"Summarizing the results into a short answer. Purpose: {payload.step.purpose}"

    @staticmethod
    def _material(previous) -> tuple[str, str]:
        match previous:
            case AnalysisResult(conversation_snippet=snippet, summary=summary):
                return snippet, summary
            case SearchResult(items=items, summary=summary):
                return build_snippet(items), summary
            case AnswerResult(answer=answer):
                return "", answer
            case _:
                return "", ""

    async def _run(self, payload: StepInput, context: WorkerContext) -> AnswerResult:
        snippet, summary = self._material(payload.previous)
        max_lines = self.config.pipeline.answer_max_lines
        prompt = PROMPT.format(
            snippet=snippet[: self.config.pipeline.answer_snippet_char_limit] or "(no content found)",
            summary=summary,
            purpose=payload.step.purpose,
            query=context.query,
            max_lines=max_lines,
        )
        text = await self.text(context, prompt)
        return AnswerResult(answer=apply_guardrails(text.strip(), [f"max {max_lines} lines"]))

    def complete_message(self, result: AnswerResult) -> tuple[str, str]:
        return "Answer generated", result.answer
