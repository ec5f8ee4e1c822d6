"""Support documentation from a trigger sentence: time range → captured content → doc."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from src.core.contracts.content import Timeframe
from src.core.contracts.records import SupportDoc
from src.core.exceptions import RetrievalError
from src.core.timeframes import normalize_timeframe
from src.data_access.store import RecordStore
from src.retrieval.client import ContentRetrieval
from src.retrieval.notifications import Notifier
from src.workers.base import BaseWorker, WorkerContext

log = logging.getLogger("support_docs")


class SupportDocOutput(BaseModel):
    summary: str
    key_points: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)


TIME_RANGE_PROMPT = """Please parse the user's sentence and determine a timeframe.
user sentence: "{sentence}"
current time: {now}

Respond with start_time and end_time in ISO format. If no specific time is mentioned, leave them empty.
For relative times like "last 15 minutes", calculate the actual timestamps."""

DOC_PROMPT = """Create a brief support documentation from this data:
{snippet}

Focus on:
1. Clear, concise "summary" of the situation/issue
2. "key_points" that would be useful for support staff
3. Specific "recommended_actions" to take"""


class SupportDocManager(BaseWorker[str, SupportDoc]):
    kind = "support-doc"

    def __init__(self, inference, recorder, config, retrieval: ContentRetrieval, store: RecordStore, notifier: Notifier):
        super().__init__(inference, recorder, config)
        self.retrieval = retrieval
        self.store = store
        self.notifier = notifier

    def start_message(self, payload: str, context: WorkerContext) -> tuple[str, str]:
        return "support doc started", f'Gathering context for: "{payload}"'

    async def extract_time_range(self, sentence: str, context: WorkerContext) -> Timeframe:
        now = datetime.now(timezone.utc)
        parsed = await self.structured(context, Timeframe, TIME_RANGE_PROMPT.format(sentence=sentence, now=now.isoformat()))
        return normalize_timeframe(parsed, now=now, lookback_minutes=self.config.pipeline.default_lookback_minutes)

    async def _run(self, payload: str, context: WorkerContext) -> SupportDoc:
        await self.notifier.send_desktop_notification("Creating support documentation", "We're gathering context now...")
        timeframe = await self.extract_time_range(payload, context)
        self.record(context, "support doc timeframe", f"{timeframe.start_time} to {timeframe.end_time} ({timeframe.explanation})")
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
        raw = [i.model_dump(mode="json") for i in items]
        snippet = "\n\n".join(json.dumps(r) for r in raw)
        out = await self.structured(context, SupportDocOutput, DOC_PROMPT.format(snippet=snippet[: self.config.pipeline.snippet_char_limit]))
        doc = SupportDoc(
            summary=out.summary,
            key_points=out.key_points,
            recommended_actions=out.recommended_actions,
            timeframe=timeframe,
            raw_data=raw,
        )
        await self.store.insert_support_doc(doc)
        await self.notifier.send_desktop_notification(
            "Support doc created", "Click here to view", actions=[{"id": "view", "label": "View doc"}]
        )
        return doc

    def complete_message(self, result: SupportDoc) -> tuple[str, str]:
        return "support doc created", result.summary

    async def handle_request(self, trigger_sentence: str, context: WorkerContext) -> SupportDoc:
        return await self.run(trigger_sentence, context)
