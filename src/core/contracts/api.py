from typing import Any

from pydantic import BaseModel, Field

from src.core.contracts.records import ClassifiedItem


class QueryRequest(BaseModel):
    query: str
    instructions: str | None = None
    api_key: str | None = None
    run_id: str | None = None


class QueryResponse(BaseModel):
    run_id: str
    status: str  # "completed" | "failed" | "partial" | "cancelled"
    answer: str | None = None
    error: str | None = None
    plan: dict[str, Any] | None = None
    results: list[dict[str, Any]] = Field(default_factory=list)


class FinanceDetectRequest(BaseModel):
    text: str
    source: str = "ocr"
    timestamp: str | None = None
    api_key: str | None = None
    run_id: str | None = None


class SupportDocRequest(BaseModel):
    trigger_sentence: str
    api_key: str | None = None
    run_id: str | None = None


class InstructionRequest(BaseModel):
    instruction: str
    api_key: str | None = None
    run_id: str | None = None


class ClassifiedItemRequest(BaseModel):
    item: ClassifiedItem
    api_key: str | None = None
    run_id: str | None = None


class ClassifiedItemResponse(BaseModel):
    stored: bool
    duplicate: bool
    matched_hyper_info: str | None = None
    similarity: float | None = None
