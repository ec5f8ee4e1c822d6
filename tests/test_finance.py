"""Financial activity detection: keyword gate, confidence threshold, persistence, notification."""

import asyncio

import pytest
from pydantic import ValidationError

from src.core.contracts.records import FinanceExtraction
from src.core.exceptions import PersistenceError
from src.detection.finance import FinanceInput, FinanceWorker, FinancialActivityDetector, match_finance_keyword, to_activity
from src.retrieval.client import VisionEvent
from tests.fakes import FakeRetrieval

ACME_INVOICE = {
    "type": "invoice",
    "amount": 450,
    "currency": "USD",
    "description": "Invoice #123",
    "parties": [{"name": "Acme Corp", "role": "sender"}],
    "confidence": 0.92,
}


@pytest.fixture
def worker(inference, recorder, config, store, notifier):
    return FinanceWorker(inference, recorder, config, store=store, notifier=notifier)


class TestKeywordGate:
    def test_keywords_map_to_activity_types(self):
        assert match_finance_keyword("Invoice #123 for $450") == "invoice"
        assert match_finance_keyword("we got paid today") == "payment"
        assert match_finance_keyword("lunch at noon") is None

    @pytest.mark.asyncio
    async def test_text_without_keywords_never_reaches_the_model(self, worker, inference, store, context):
        result = await worker.run(FinanceInput(text="meeting notes about hiring"), context)

        assert result is None
        assert inference.calls == []
        assert store.financial_activities == []


class TestFinanceWorker:
    @pytest.mark.asyncio
    async def test_acme_invoice_is_persisted_once_and_notified_once(self, worker, inference, store, notifier, context):
        """
        Given: "Invoice #123 for $450 from Acme Corp"
        When: the extraction comes back with confidence 0.92
        Then: exactly one row is stored and one notification is sent
        """
        inference.script("FinanceExtraction", ACME_INVOICE)

        result = await worker.run(FinanceInput(text="Invoice #123 for $450 from Acme Corp"), context)

        assert result.persisted is True
        assert len(store.financial_activities) == 1
        row = store.financial_activities[0]
        assert row.type == "invoice"
        assert row.amount == 450
        assert row.currency == "USD"
        assert row.sender_name == "Acme Corp"
        assert row.source_text == "Invoice #123 for $450 from Acme Corp"
        assert len(notifier.sent) == 1
        assert notifier.sent[0]["title"] == "New Financial Activity Detected"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("confidence", [0.7, 0.5, 0.0])
    async def test_confidence_at_or_below_threshold_is_not_persisted(self, worker, inference, store, notifier, context, confidence):
        inference.script("FinanceExtraction", {**ACME_INVOICE, "confidence": confidence})

        result = await worker.run(FinanceInput(text="Invoice #123 for $450 from Acme Corp"), context)

        assert result.persisted is False
        assert store.financial_activities == []
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_missing_amount_blocks_the_insert(self, worker, inference, store, recorder, context):
        inference.script("FinanceExtraction", {**ACME_INVOICE, "amount": None})

        result = await worker.run(FinanceInput(text="invoice attached"), context)

        assert result.persisted is False
        assert store.financial_activities == []
        assert any(s.human_action == "finance insert blocked" for s in recorder.get_steps(context.run_id))

    @pytest.mark.asyncio
    async def test_inference_failure_degrades_to_none(self, worker, inference, recorder, context):
        inference.script("FinanceExtraction", RuntimeError("model unavailable"))

        assert await worker.run(FinanceInput(text="payment sent"), context) is None
        assert recorder.get_steps(context.run_id)[-1].finish_reason == "error"


def test_to_activity_requires_numeric_confidence():
    with pytest.raises(PersistenceError):
        to_activity(FinanceExtraction(type="invoice", amount=10.0), FinanceInput(text="invoice"))


class TestFinancialActivityDetector:
    @pytest.mark.asyncio
    async def test_consumes_vision_stream_until_exhausted(self, worker, inference, store):
        inference.script("FinanceExtraction", ACME_INVOICE)
        retrieval = FakeRetrieval(vision=[
            VisionEvent(text="Invoice #123 for $450 from Acme Corp", app_name="Mail"),
            VisionEvent(text="", app_name="Mail"),
            VisionEvent(text="weather is nice", app_name="Browser"),
        ])
        detector = FinancialActivityDetector(worker, retrieval)

        run_id = detector.start("sk-test")
        await asyncio.wait_for(detector._task, timeout=2)

        assert run_id.startswith("finance-")
        assert len(store.financial_activities) == 1
        assert retrieval.closed == ["vision"]
        assert not detector.is_running

    @pytest.mark.asyncio
    async def test_stop_cancels_a_blocked_stream(self, worker):
        class EndlessRetrieval(FakeRetrieval):
            async def stream_vision(self, include_images=False):
                try:
                    await asyncio.sleep(30)
                    yield VisionEvent(text="never")
                finally:
                    self.closed.append("vision")

        retrieval = EndlessRetrieval()
        detector = FinancialActivityDetector(worker, retrieval)
        detector.start("sk-test")
        await asyncio.sleep(0.05)

        await asyncio.wait_for(detector.stop(), timeout=2)

        assert not detector.is_running
        assert retrieval.closed == ["vision"]

    @pytest.mark.asyncio
    async def test_long_stream_leaves_no_steps_in_the_recorder(self, worker, recorder, inference):
        """
        Given: a detector fed 500 vision events
        When: the stream is fully consumed
        Then: no run timeline is left behind in the recorder
        """
        retrieval = FakeRetrieval(vision=[VisionEvent(text=f"weather update {n}", app_name="Browser") for n in range(500)])
        detector = FinancialActivityDetector(worker, retrieval)

        run_id = detector.start("sk-test")
        await asyncio.wait_for(detector._task, timeout=5)

        assert recorder.run_ids() == []
        assert recorder.get_steps(run_id) == []
        assert inference.calls == []

    @pytest.mark.asyncio
    async def test_stop_clears_the_detector_timeline(self, worker, recorder):
        detector = FinancialActivityDetector(worker, FakeRetrieval())
        run_id = detector.start("sk-test")
        recorder.add_step(run_id, "detector note")

        await asyncio.wait_for(detector.stop(), timeout=2)

        assert recorder.get_steps(run_id) == []


class TestConfidenceBounds:
    @pytest.mark.asyncio
    async def test_percentage_confidence_is_rejected_not_persisted(self, worker, inference, store, notifier, recorder, context):
        """
        Given: the model answers with confidence 85 instead of 0.85
        When: the extraction is validated
        Then: nothing is stored or announced and the run ends with an error step
        """
        inference.script("FinanceExtraction", {**ACME_INVOICE, "confidence": 85})

        result = await worker.run(FinanceInput(text="Invoice #123 for $450 from Acme Corp"), context)

        assert result is None
        assert store.financial_activities == []
        assert notifier.sent == []
        assert recorder.get_steps(context.run_id)[-1].finish_reason == "error"

    def test_negative_confidence_fails_validation(self):
        with pytest.raises(ValidationError):
            FinanceExtraction(type="invoice", amount=10.0, confidence=-0.1)
