"""HTTP surface through FastAPI's TestClient with fake services."""

import pytest
from fastapi.testclient import TestClient

from src.core.exceptions import SchemaValidationError
from src.orchestrator.deps import build_services
from src.orchestrator.main import app, get_services
from tests.fakes import FakeInference, FakeNotifier, FakeRetrieval, item


@pytest.fixture
def services(config, store):
    return build_services(
        config,
        inference=FakeInference(),
        retrieval=FakeRetrieval(results={"ocr": [item("acme invoice due", "2024-03-01T10:00:00Z")]}),
        notifier=FakeNotifier(),
        store=store,
    )


@pytest.fixture
def client(services, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def relevant_all(prompt):
    count = int(prompt.split("We have ")[1].split(" items")[0])
    return {"results": [{"relevant": True, "reason": "matches"}] * count}


class TestQueryEndpoint:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_query_runs_plan_and_persists_steps(self, client, services, store):
        services.inference.script("ExecutionPlan", {"query": "acme", "steps": [
            {"type": "search", "purpose": "find acme", "context": {"query": "acme"}},
            {"type": "answer", "purpose": "answer"},
        ]})
        services.inference.script("RelevanceDecisions", relevant_all)
        services.inference.script_text("Acme invoice is due.")

        r = client.post("/query", json={"query": "acme", "api_key": "sk-test", "run_id": "run-api"})

        assert r.status_code == 200
        body = r.json()
        assert body["run_id"] == "run-api"
        assert body["status"] == "completed"
        assert body["answer"] == "Acme invoice is due."
        assert [res["kind"] for res in body["results"]] == ["search", "answer"]
        assert body["plan"]["steps"][0]["type"] == "search"
        assert store.agent_steps["run-api"]

        steps = client.get("/runs/run-api/steps").json()["steps"]
        assert steps[0]["human_action"] == "Starting classification orchestration"

    def test_query_without_api_key_is_rejected(self, client):
        r = client.post("/query", json={"query": "acme"})

        assert r.status_code == 400
        assert "API key" in r.json()["detail"]

    def test_plan_failure_reports_failed_status(self, client, services):
        services.inference.script("ExecutionPlan", SchemaValidationError("bad plan"))

        body = client.post("/query", json={"query": "acme", "api_key": "sk-test"}).json()

        assert body["status"] == "failed"
        assert body["error"] == "bad plan"
        assert body["run_id"]

    def test_clearing_steps_removes_the_run(self, client, services):
        services.recorder.add_step("run-x", "something")

        assert client.delete("/runs/run-x/steps").json()["cleared"] is True
        assert client.get("/runs/run-x/steps").status_code == 404


class TestDetectionEndpoints:
    def test_finance_detect_persists_high_confidence_activity(self, client, services):
        services.inference.script("FinanceExtraction", {
            "type": "invoice", "amount": 450, "currency": "USD",
            "parties": [{"name": "Acme Corp", "role": "sender"}], "confidence": 0.9,
        })

        body = client.post("/finance/detect", json={"text": "Invoice #123 for $450 from Acme Corp", "api_key": "sk-test"}).json()

        assert body["result"]["persisted"] is True
        activities = client.get("/financial-activities").json()["activities"]
        assert activities[0]["sender_name"] == "Acme Corp"

    def test_classified_item_duplicate_is_not_stored_twice(self, client, store):
        payload = {"item": {"text": "raw", "type": "email", "hyper_info": "Acme March invoice"}, "api_key": "sk-test"}

        first = client.post("/classified-items", json=payload).json()
        second = client.post("/classified-items", json=payload).json()

        assert first["stored"] is True
        assert second["duplicate"] is True
        assert len(store.classified_items) == 1

    def test_support_doc_without_data_reports_failure(self, client, services):
        services.inference.script("Timeframe", {"type": "none"})

        body = client.post("/support-docs", json={"trigger_sentence": "help me", "api_key": "sk-test"}).json()

        assert body["status"] == "failed"
        assert "No data found" in body["error"]
        assert client.get("/support-docs").json()["docs"] == []

    def test_instruction_without_data_reports_failure(self, client, services):
        services.inference.script("Timeframe", {"type": "none"})

        body = client.post("/instructions", json={"instruction": "recap the call", "api_key": "sk-test"}).json()

        assert body["status"] == "failed"
        assert "No data found" in body["error"]
        assert client.get("/support-docs").json()["docs"] == []

    def test_instruction_summary_is_returned_and_listed(self, client, services):
        services.retrieval.results["audio+ocr"] = [item("release moves to Friday", "2024-03-01T11:58:00Z", type_="audio")]
        services.inference.script("Timeframe", {"type": "none"})
        services.inference.script("InstructionSummary", {"summary": "Release slips", "topics": ["release"]})

        body = client.post(
            "/instructions", json={"instruction": "recap the call", "api_key": "sk-test", "run_id": "run-ins"}
        ).json()

        assert body["run_id"] == "run-ins"
        assert body["status"] == "completed"
        assert body["result"]["summary"]["summary"] == "Release slips"
        assert body["result"]["finance"] is None
        docs = client.get("/support-docs").json()["docs"]
        assert [d["summary"] for d in docs] == ["Release slips"]


class TestStepPersistence:
    def test_reused_run_id_does_not_store_steps_twice(self, client, services, store):
        """
        Given: two /query requests sharing run_id "same"
        When: both complete
        Then: every recorded step is stored exactly once
        """
        services.inference.script("ExecutionPlan", {"query": "acme", "steps": [
            {"type": "search", "purpose": "find acme", "context": {"query": "acme"}},
            {"type": "answer", "purpose": "answer"},
        ]})
        services.inference.script("RelevanceDecisions", relevant_all)
        services.inference.script_text("Acme invoice is due.")

        for _ in range(2):
            r = client.post("/query", json={"query": "acme", "api_key": "sk-test", "run_id": "same"})
            assert r.json()["status"] == "completed"

        stored = store.agent_steps["same"]
        assert len(stored) == len({s.id for s in stored})
        assert [s.id for s in stored] == [s.id for s in services.recorder.get_steps("same")]

    @pytest.mark.asyncio
    async def test_store_skips_steps_it_already_holds(self, store, recorder):
        first = recorder.add_step("run-s", "one")
        second = recorder.add_step("run-s", "two")

        await store.insert_agent_steps("run-s", [first])
        await store.insert_agent_steps("run-s", [first, second])

        assert [s.human_action for s in store.agent_steps["run-s"]] == ["one", "two"]
