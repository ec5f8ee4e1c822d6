"""Instruction requests: summarize what was captured in a time range, store it, and check it for finances."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from src.core.contracts.content import ContentItem, Timeframe
from src.core.contracts.records import SupportDoc
from src.core.contracts.results import FinanceResult
from src.core.exceptions import RetrievalError
from src.core.timeframes import normalize_timeframe
from src.data_access.store import RecordStore
from src.detection.finance import FinanceInput, FinanceWorker
from src.retrieval.client import ContentRetrieval
from src.retrieval.notifications import Notifier
from src.workers.base import BaseWorker, WorkerContext, preview

log = logging.getLogger("instructions")


class InstructionSummary(BaseModel):
    summary: str
    key_points: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    sentiment: Literal["positive", "neutral", "negative"] = "neutral"


class InstructionResult(BaseModel):
    summary: InstructionSummary
    timeframe: Timeframe
    doc: SupportDoc
    finance: FinanceResult | None = None


TIME_RANGE_PROMPT = """Please parse the following instruction and determine a timeframe in ISO format.
Current time: {now}
Instruction: "{instruction}"

For relative times like "last 15 minutes", calculate the actual timestamps.
If no specific time is mentioned, leave start_time and end_time empty.
Put how you read it in "explanation"."""

SUMMARY_PROMPT = """Please analyze and summarize the following conversation context based on the user's instruction.

User's instruction: "{instruction}"
Current time: {now}

Conversation transcript:
{snippet}

Focus on:
1. A clear, concise "summary"
2. The "key_points" discussed
3. The main "topics" covered
4. The overall "sentiment" (positive, neutral or negative)"""


def transcript(items: list[ContentItem]) -> str:
    """Items in capture order, one ``timestamp:\\ntext`` block each."""
    return "\n\n".join(
        f"{i.content.timestamp or 'unknown time'}:\n{i.content.text.strip() or '[no text]'}" for i in items
    )


class InstructionManager(BaseWorker[str, InstructionResult]):
    """Turns an instruction like "summarize the last 15 minutes" into a stored summary.

    The summary is kept as a support doc without recommended actions. The
    instruction text itself then goes through finance detection, which
    stores and announces any activity on its own.
    """

    kind = "instruction"

    def __init__(
        self,
        inference,
        recorder,
        config,
        retrieval: ContentRetrieval,
        store: RecordStore,
        notifier: Notifier,
        finance: FinanceWorker,
    ):
        super().__init__(inference, recorder, config)
        self.retrieval = retrieval
        self.store = store
        self.notifier = notifier
        self.finance = finance

    def start_message(self, payload: str, context: WorkerContext) -> tuple[str, str]:
        return "instruction started", f'Processing instruction: "{payload}"'

    async def extract_time_range(self, instruction: str, context: WorkerContext) -> Timeframe:
        now = datetime.now(timezone.utc)
        parsed = await self.structured(
            context, Timeframe, TIME_RANGE_PROMPT.format(instruction=instruction, now=now.isoformat())
        )
        return normalize_timeframe(parsed, now=now, lookback_minutes=self.config.pipeline.default_lookback_minutes)

    async def _run(self, payload: str, context: WorkerContext) -> InstructionResult:
        await self.notifier.send_desktop_notification("Processing Instruction", "Gathering context and generating summary...")
        timeframe = await self.extract_time_range(payload, context)
        self.record(context, "instruction timeframe", f"{timeframe.start_time} to {timeframe.end_time} ({timeframe.explanation})")

        items = await context.cancel.guard(self.retrieval.query(
            q="",
            content_type="audio+ocr",
            start_time=timeframe.start_time,
            end_time=timeframe.end_time,
            limit=self.config.retrieval.search_limit,
            include_frames=False,
        ))
        if not items:
            raise RetrievalError("No data found for the specified timeframe")

        summary = await self.structured(
            context,
            InstructionSummary,
            SUMMARY_PROMPT.format(
                instruction=payload,
                now=datetime.now(timezone.utc).isoformat(),
                snippet=transcript(items)[: self.config.pipeline.snippet_char_limit],
            ),
        )
        doc = SupportDoc(
            summary=summary.summary,
            key_points=summary.key_points,
            recommended_actions=[],
            timeframe=timeframe,
            raw_data=[i.model_dump(mode="json") for i in items],
        )
        await self.store.insert_support_doc(doc)

        finance = await self.finance.run(FinanceInput(text=payload, source="instruction"), context)

        await self.notifier.send_desktop_notification(
            "Instruction Processed", "Summary generated and saved", actions=[{"id": "view", "label": "View Summary"}]
        )
        return InstructionResult(summary=summary, timeframe=timeframe, doc=doc, finance=finance)

    def complete_message(self, result: InstructionResult) -> tuple[str, str]:
        topics = ", ".join(result.summary.topics) or "none"
        return "instruction processed", f"{preview(result.summary.summary, 300)}\ntopics: {topics} ({result.summary.sentiment})"

    async def handle_request(self, instruction: str, context: WorkerContext) -> InstructionResult:
        return await self.run(instruction, context)
