"""Orchestrator FastAPI app: POST /query -> plan, execute, answer; plus detection and inbox routes."""
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

from dotenv import load_dotenv

# Load .env so OPENAI_API_KEY, POSTGRES_APP_URL etc. are set when running standalone
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
for _p in (_PROJECT_ROOT / "config" / "env" / ".env", _PROJECT_ROOT / ".env"):
    if _p.exists():
        load_dotenv(_p, override=False)
        break

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s", datefmt="%H:%M:%S")
log = logging.getLogger("orchestrator")
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from src.core.cancellation import CancelToken
from src.core.config.env import resolve_api_key
from src.core.config.loader import load_app_config
from src.core.contracts.api import (
    ClassifiedItemRequest,
    ClassifiedItemResponse,
    FinanceDetectRequest,
    InstructionRequest,
    QueryRequest,
    QueryResponse,
    SupportDocRequest,
)
from src.core.exceptions import ConfigError
from src.detection.finance import FinanceInput
from src.detection.inbox import relay_events
from src.orchestrator.deps import Services, build_services
from src.workers.base import WorkerContext

app = FastAPI(title="Screen context: Orchestrator")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

PROJECT_ROOT = _PROJECT_ROOT
SERVICES: Services | None = None


def get_services() -> Services:
    global SERVICES
    if SERVICES is None:
        config = load_app_config(project_root=PROJECT_ROOT)
        SERVICES = build_services(config, PROJECT_ROOT)
    return SERVICES


def _context(api_key: str | None, run_id: str | None, query: str = "") -> WorkerContext:
    try:
        key = resolve_api_key(api_key)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return WorkerContext(api_key=key, run_id=run_id or str(uuid.uuid4()), query=query)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/query", response_model=QueryResponse)
async def query(req: QueryRequest, services: Services = Depends(get_services)):
    ctx = _context(req.api_key, req.run_id, req.query)
    already_recorded = len(services.recorder.get_steps(ctx.run_id))
    try:
        outcome = await services.orchestrator.run(
            req.query, req.instructions, api_key=ctx.api_key, run_id=ctx.run_id, cancel=ctx.cancel
        )
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        await _persist_steps(services, ctx.run_id, already_recorded)
        return QueryResponse(run_id=ctx.run_id, status="failed", error=str(e))

    await _persist_steps(services, ctx.run_id, already_recorded)
    log.info("FINAL ANSWER: %s", (outcome.answer[:300] + "…") if outcome.answer and len(outcome.answer) > 300 else (outcome.answer or "(empty)"))
    return QueryResponse(
        run_id=ctx.run_id,
        status=outcome.status,
        answer=outcome.answer,
        error=str(outcome.error) if outcome.error is not None else None,
        plan=outcome.plan.model_dump(mode="json"),
        results=[r.model_dump(mode="json") for r in outcome.results],
    )


async def _persist_steps(services: Services, run_id: str, skip: int = 0) -> None:
    """Save the steps this request added; earlier steps of a reused run id were saved by their own request."""
    try:
        await services.store.insert_agent_steps(run_id, services.recorder.get_steps(run_id)[skip:])
    except Exception:
        log.exception("Saving steps for run %s failed", run_id)


@app.get("/runs")
def list_runs(services: Services = Depends(get_services)):
    return {"run_ids": services.recorder.run_ids()}


@app.get("/runs/{run_id}/steps")
def get_run_steps(run_id: str, services: Services = Depends(get_services)):
    steps = services.recorder.get_steps(run_id)
    if not steps:
        raise HTTPException(status_code=404, detail="Run not found")
    return {"run_id": run_id, "steps": [s.model_dump(mode="json") for s in steps]}


@app.delete("/runs/{run_id}/steps")
def clear_run_steps(run_id: str, services: Services = Depends(get_services)):
    services.recorder.clear_steps(run_id)
    return {"run_id": run_id, "cleared": True}


@app.post("/finance/detect")
async def detect_finance(req: FinanceDetectRequest, services: Services = Depends(get_services)):
    ctx = _context(req.api_key, req.run_id)
    result = await services.finance.run(FinanceInput(text=req.text, source=req.source, timestamp=req.timestamp), ctx)
    return {"run_id": ctx.run_id, "result": result.model_dump(mode="json") if result is not None else None}


@app.get("/finance/detector")
def detector_status(services: Services = Depends(get_services)):
    detector = services.detector
    return {"running": detector.is_running, "run_id": detector.run_id, "processing": detector.processing_count}


@app.post("/finance/detector/start")
async def start_detector(api_key: str | None = None, services: Services = Depends(get_services)):
    try:
        key = resolve_api_key(api_key)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    run_id = services.detector.start(key)
    return {"running": True, "run_id": run_id}


@app.post("/finance/detector/stop")
async def stop_detector(services: Services = Depends(get_services)):
    await services.detector.stop()
    return {"running": False}


@app.get("/financial-activities")
async def financial_activities(limit: int = 50, services: Services = Depends(get_services)):
    rows = await services.store.list_financial_activities(limit)
    return {"activities": [a.model_dump(mode="json") for a in rows]}


@app.post("/support-docs")
async def create_support_doc(req: SupportDocRequest, services: Services = Depends(get_services)):
    ctx = _context(req.api_key, req.run_id, req.trigger_sentence)
    try:
        doc = await services.support_docs.handle_request(req.trigger_sentence, ctx)
    except Exception as e:
        return {"run_id": ctx.run_id, "status": "failed", "error": str(e)}
    return {"run_id": ctx.run_id, "status": "completed", "doc": doc.model_dump(mode="json")}


@app.get("/support-docs")
async def support_docs(limit: int = 20, services: Services = Depends(get_services)):
    docs = await services.store.list_support_docs(limit)
    return {"docs": [d.model_dump(mode="json") for d in docs]}


@app.post("/instructions")
async def process_instruction(req: InstructionRequest, services: Services = Depends(get_services)):
    ctx = _context(req.api_key, req.run_id, req.instruction)
    try:
        result = await services.instructions.handle_request(req.instruction, ctx)
    except Exception as e:
        return {"run_id": ctx.run_id, "status": "failed", "error": str(e)}
    return {"run_id": ctx.run_id, "status": "completed", "result": result.model_dump(mode="json")}


@app.post("/classified-items", response_model=ClassifiedItemResponse)
async def submit_classified_item(req: ClassifiedItemRequest, services: Services = Depends(get_services)):
    ctx = _context(req.api_key, req.run_id)
    return await services.classified_items.submit(req.item, ctx)


@app.get("/inbox")
async def inbox(watch: str = "invoice", services: Services = Depends(get_services)):
    token = CancelToken()
    return StreamingResponse(
        relay_events(services.retrieval, watch, token),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache, no-transform", "Connection": "keep-alive"},
    )


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
