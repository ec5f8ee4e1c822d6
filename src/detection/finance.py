"""Financial activity detection: keyword-gated extraction, persistence and notification."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from src.core.cancellation import CancelToken
from src.core.contracts.records import FinanceExtraction, FinancialActivity
from src.core.contracts.results import FinanceResult
from src.core.exceptions import PersistenceError, RunCancelled
from src.core.timeframes import parse_iso
from src.data_access.store import RecordStore
from src.retrieval.client import ContentRetrieval
from src.retrieval.notifications import Notifier
from src.workers.base import BaseWorker, WorkerContext, preview

log = logging.getLogger("finance")

FINANCIAL_KEYWORDS: dict[str, list[str]] = {
    "invoice": ["invoice", "bill", "charge"],
    "payment": ["payment", "paid", "transferred", "sent"],
    "receipt": ["receipt", "received", "got paid"],
    "subscription": ["subscription", "monthly fee", "recurring"],
}


def match_finance_keyword(text: str) -> str | None:
    """Activity type of the first keyword group found in ``text``, if any."""
    lower = text.lower()
    for activity_type, keywords in FINANCIAL_KEYWORDS.items():
        if any(k in lower for k in keywords):
            return activity_type
    return None


@dataclass(frozen=True)
class FinanceInput:
    text: str
    source: str = "ocr"
    timestamp: str | None = None


PROMPT = """Extract financial activity information from this text:
"{text}"

Source: {source}
Timestamp: {timestamp}
The text appears to be about a {hint}. Extract:
1. Exact type (invoice/payment/receipt/subscription)
2. Amount (a number) and currency (ISO code, e.g. USD)
3. Description
4. Parties involved, each with role sender or receiver
5. A confidence score between 0 and 1

Only report high confidence if this is a real financial activity."""


def to_activity(extraction: FinanceExtraction, payload: FinanceInput) -> FinancialActivity:
    """Build the persisted record; missing or non-numeric amount/confidence blocks the insert."""
    if not isinstance(extraction.amount, (int, float)):
        raise PersistenceError("financial activity has no numeric amount")
    if not isinstance(extraction.confidence, (int, float)):
        raise PersistenceError("financial activity has no numeric confidence")
    activity_type = extraction.type or match_finance_keyword(payload.text)
    if activity_type is None:
        raise PersistenceError("financial activity has no type")
    return FinancialActivity(
        timestamp=parse_iso(payload.timestamp) or datetime.now(timezone.utc),
        type=activity_type,
        amount=float(extraction.amount),
        currency=(extraction.currency or "USD").upper(),
        description=extraction.description or "",
        sender_name=extraction.party("sender"),
        receiver_name=extraction.party("receiver"),
        confidence=float(extraction.confidence),
        source_text=payload.text,
        source_type=payload.source,
    )


class FinanceWorker(BaseWorker[FinanceInput, "FinanceResult | None"]):
    """Best-effort: text without finance keywords never reaches the model, and failures degrade to None."""

    kind = "finance"

    def __init__(self, inference, recorder, config, store: RecordStore, notifier: Notifier):
        super().__init__(inference, recorder, config)
        self.store = store
        self.notifier = notifier

    @property
    def model_id(self) -> str:
        return self.config.models.finance

    def start_message(self, payload: FinanceInput, context: WorkerContext) -> tuple[str, str]:
        return "finance check started", f"Checking {payload.source} text for financial activity: {preview(payload.text)}"

    async def _run(self, payload: FinanceInput, context: WorkerContext) -> FinanceResult | None:
        hint = match_finance_keyword(payload.text)
        if hint is None:
            log.debug("no finance keyword in %r", preview(payload.text, 60))
            return None
        extraction = await self.structured(
            context,
            FinanceExtraction,
            PROMPT.format(
                text=payload.text,
                source=payload.source,
                timestamp=payload.timestamp or datetime.now(timezone.utc).isoformat(),
                hint=hint,
            ),
        )
        threshold = self.config.thresholds.finance_confidence
        if extraction.confidence is None or extraction.confidence <= threshold:
            log.info("confidence too low (%s ≤ %s), not storing", extraction.confidence, threshold)
            return FinanceResult(extraction=extraction, persisted=False)
        try:
            activity = to_activity(extraction, payload)
        except PersistenceError as e:
            self.record(context, "finance insert blocked", str(e), "error")
            return FinanceResult(extraction=extraction, persisted=False)
        await self.store.insert_financial_activity(activity)
        await self.notifier.send_desktop_notification(
            "New Financial Activity Detected",
            f"{activity.type}: {activity.amount:g} {activity.currency}",
        )
        return FinanceResult(extraction=extraction, persisted=True, activity=activity)

    def complete_message(self, result: FinanceResult | None) -> tuple[str, str]:
        if result is None:
            return "finance check complete", "no finance keywords; skipped"
        ex = result.extraction
        status = "stored" if result.persisted else "not stored"
        return "finance check complete", f"{ex.type}: {ex.amount} {ex.currency} (confidence {ex.confidence}) - {status}"

    def on_error(self, error: Exception, payload: FinanceInput, context: WorkerContext) -> FinanceResult | None:
        return None


class FinancialActivityDetector:
    """Feeds the live vision stream through the finance worker until stopped.

    Each event runs under its own run id (``<detector run id>-<n>``) whose steps
    are cleared once the event is handled; persisted activities are the output.
    """

    def __init__(self, worker: FinanceWorker, retrieval: ContentRetrieval):
        self.worker = worker
        self.retrieval = retrieval
        self.processing_count = 0
        self._task: asyncio.Task | None = None
        self._token: CancelToken | None = None
        self.run_id: str | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, api_key: str) -> str:
        if self.is_running:
            log.info("detector already running")
            return self.run_id
        self._token = CancelToken()
        self.run_id = f"finance-{uuid.uuid4()}"
        context = WorkerContext(api_key=api_key, run_id=self.run_id, cancel=self._token)
        self._task = asyncio.create_task(self._consume(context))
        log.info("detector started (%s)", self.run_id)
        return self.run_id

    async def _consume(self, context: WorkerContext) -> None:
        seq = 0
        try:
            async for event in context.cancel.iterate(self.retrieval.stream_vision(False)):
                if not event.text:
                    continue
                seq += 1
                event_context = replace(context, run_id=f"{context.run_id}-{seq}")
                self.processing_count += 1
                try:
                    await self.worker.run(
                        FinanceInput(text=event.text, source="ocr", timestamp=event.timestamp), event_context
                    )
                finally:
                    self.processing_count -= 1
                    self.worker.recorder.clear_steps(event_context.run_id)
        except RunCancelled:
            log.info("detector stopped")
        except Exception:
            log.exception("vision stream failed")

    async def stop(self) -> None:
        if self._token is not None:
            self._token.cancel("detector stopped")
        if self._task is not None:
            await self._task
        self._task = None
        if self.run_id is not None:
            self.worker.recorder.clear_steps(self.run_id)
