"""Relevance filter: asks the model to label retrieved items relevant or not, in fixed-size batches."""
from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from src.core.config.models import AppConfig
from src.core.contracts.content import SearchItem
from src.inference.llm import InferenceService
from src.orchestrator.recorder import StepRecorder
from src.workers.base import WorkerContext

log = logging.getLogger("worker.relevance")

DEFAULT_REASON = "judged relevant to the query"


class RelevanceDecision(BaseModel):
    relevant: bool
    reason: str = ""


class RelevanceDecisions(BaseModel):
    results: list[RelevanceDecision] = Field(default_factory=list)


PROMPT = """The user asked: "{query}"
We have {count} items from OCR/audio/UI data.

For each item, decide if it's truly relevant. Return "results": one {{ "relevant": boolean, "reason": string }}
per item, in the same order as the items.

Items:
{items}"""


def _render(chunk: list[SearchItem]) -> str:
    return "\n".join(
        f"Item {idx}:\nTimestamp: {item.content.timestamp}\nText: \"{item.content.text.replace(chr(10), ' ')[:500]}\""
        for idx, item in enumerate(chunk)
    )


class RelevanceFilter:
    def __init__(self, inference: InferenceService, recorder: StepRecorder, config: AppConfig):
        self.inference = inference
        self.recorder = recorder
        self.config = config

    async def filter(self, items: list[SearchItem], user_query: str, context: WorkerContext) -> list[SearchItem]:
        """Keep only relevant items, each with a relevance_reason. Batch order and in-batch order are preserved."""
        size = self.config.pipeline.relevance_chunk_size
        relevant: list[SearchItem] = []
        for start in range(0, len(items), size):
            chunk = items[start:start + size]
            decisions = await context.cancel.guard(
                self.inference.generate_structured(
                    self.config.models.worker,
                    RelevanceDecisions,
                    PROMPT.format(query=user_query, count=len(chunk), items=_render(chunk)),
                    api_key=context.api_key,
                )
            )
            # Decisions past the chunk length are ignored; missing ones count as irrelevant
            kept = [
                item.model_copy(update={"relevance_reason": decision.reason.strip() or DEFAULT_REASON})
                for item, decision in zip(chunk, decisions.results)
                if decision.relevant
            ]
            relevant.extend(kept)
            log.info("batch %s-%s: %s/%s relevant", start, start + len(chunk) - 1, len(kept), len(chunk))
            self.recorder.add_step(
                context.run_id,
                "filter progress",
                f"filtered {len(chunk)} items, found {len(kept)} relevant",
            )
        return relevant
