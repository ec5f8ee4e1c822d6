"""Instruction requests: time range, captured context summary, storage and finance follow-up."""

from datetime import timedelta

import pytest

from src.core.exceptions import RetrievalError
from src.core.timeframes import parse_iso
from src.detection.finance import FinanceWorker
from src.detection.instructions import InstructionManager, transcript
from tests.fakes import FakeRetrieval, item

SUMMARY = {
    "summary": "Standup covered the release date",
    "key_points": ["release moves to Friday"],
    "topics": ["release", "standup"],
    "sentiment": "positive",
}


def manager(inference, recorder, config, store, notifier, retrieval):
    finance = FinanceWorker(inference, recorder, config, store=store, notifier=notifier)
    return InstructionManager(
        inference, recorder, config, retrieval=retrieval, store=store, notifier=notifier, finance=finance
    )


class TestInstructionManager:
    @pytest.mark.asyncio
    async def test_summary_is_stored_as_doc_and_announced(self, inference, recorder, config, store, notifier, context):
        """
        Given: captured audio and screen text in the last 15 minutes
        When: the user asks for a summary of that window
        Then: the summary is stored as a doc without actions and both notifications go out
        """
        retrieval = FakeRetrieval(results={"audio+ocr": [
            item("release moves to Friday", "2024-03-01T11:50:00Z", type_="audio"),
            item("Release checklist", "2024-03-01T11:55:00Z"),
        ]})
        inference.script("Timeframe", {
            "type": "relative", "start_time": "2024-03-01T11:45:00Z", "end_time": "2024-03-01T12:00:00Z",
        }).script("InstructionSummary", SUMMARY)

        result = await manager(inference, recorder, config, store, notifier, retrieval).handle_request(
            "summarize the standup from the last 15 minutes", context
        )

        assert result.summary.sentiment == "positive"
        assert result.finance is None
        assert retrieval.queries[0]["content_type"] == "audio+ocr"
        assert retrieval.queries[0]["start_time"] == "2024-03-01T11:45:00Z"
        assert retrieval.queries[0]["limit"] == config.retrieval.search_limit
        assert store.support_docs == [result.doc]
        assert result.doc.recommended_actions == []
        assert result.doc.key_points == ["release moves to Friday"]
        assert [n["title"] for n in notifier.sent] == ["Processing Instruction", "Instruction Processed"]
        assert notifier.sent[-1]["actions"] == [{"id": "view", "label": "View Summary"}]
        assert inference.count("FinanceExtraction") == 0

    @pytest.mark.asyncio
    async def test_missing_time_range_uses_last_five_minutes(self, inference, recorder, config, store, notifier, context):
        retrieval = FakeRetrieval(results={"audio+ocr": [item("x", "2024-03-01T11:58:00Z")]})
        inference.script("Timeframe", {"type": "none"}).script("InstructionSummary", SUMMARY)

        result = await manager(inference, recorder, config, store, notifier, retrieval).handle_request(
            "what just happened", context
        )

        window = parse_iso(result.timeframe.end_time) - parse_iso(result.timeframe.start_time)
        assert window == timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_no_captured_data_fails_without_storing(self, inference, recorder, config, store, notifier, context):
        inference.script("Timeframe", {"type": "none"})

        with pytest.raises(RetrievalError, match="No data found"):
            await manager(inference, recorder, config, store, notifier, FakeRetrieval()).handle_request(
                "what just happened", context
            )

        assert store.support_docs == []
        assert [n["title"] for n in notifier.sent] == ["Processing Instruction"]
        assert recorder.get_steps(context.run_id)[-1].finish_reason == "error"

    @pytest.mark.asyncio
    async def test_finance_mention_in_instruction_is_persisted(self, inference, recorder, config, store, notifier, context):
        """
        Given: an instruction that mentions an invoice
        When: the extraction is confident
        Then: the activity is stored alongside the summary doc
        """
        retrieval = FakeRetrieval(results={"audio+ocr": [item("Acme invoice", "2024-03-01T11:58:00Z")]})
        inference.script("Timeframe", {"type": "none"}).script("InstructionSummary", SUMMARY)
        inference.script("FinanceExtraction", {
            "type": "invoice", "amount": 450, "currency": "USD", "description": "Acme invoice", "confidence": 0.9,
        })

        result = await manager(inference, recorder, config, store, notifier, retrieval).handle_request(
            "log the Acme invoice for $450 we discussed", context
        )

        assert result.finance.persisted is True
        assert len(store.financial_activities) == 1
        assert store.financial_activities[0].source_text == "log the Acme invoice for $450 we discussed"
        assert len(store.support_docs) == 1
        assert [n["title"] for n in notifier.sent] == [
            "Processing Instruction", "New Financial Activity Detected", "Instruction Processed",
        ]

    @pytest.mark.asyncio
    async def test_steps_start_and_end_with_instruction_actions(self, inference, recorder, config, store, notifier, context):
        retrieval = FakeRetrieval(results={"audio+ocr": [item("x", "2024-03-01T11:58:00Z")]})
        inference.script("Timeframe", {"type": "none"}).script("InstructionSummary", SUMMARY)

        await manager(inference, recorder, config, store, notifier, retrieval).handle_request("recap", context)

        actions = [s.human_action for s in recorder.get_steps(context.run_id)]
        assert actions[0] == "instruction started"
        assert "instruction timeframe" in actions
        assert actions[-1] == "instruction processed"


def test_transcript_keeps_capture_order_and_marks_empty_text():
    text = transcript([item("first", "2024-03-01T11:00:00Z"), item("  ", "2024-03-01T11:01:00Z")])

    assert text == "2024-03-01T11:00:00Z:\nfirst\n\n2024-03-01T11:01:00Z:\n[no text]"
