"""Worker outputs. One concrete variant per worker kind, discriminated by ``kind``."""
from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from src.core.contracts.content import SearchItem, SearchPlan, Timeframe
from src.core.contracts.records import FinanceExtraction, FinancialActivity


class PlanningResult(BaseModel):
    kind: Literal["planning"] = "planning"
    steps: list[str] = Field(default_factory=list)
    rationale: str = ""
    estimated_time_seconds: float = 0
    recommendations: list[str] = Field(default_factory=list)
    search_plan: SearchPlan = Field(default_factory=SearchPlan)


class EntityResolutionResult(BaseModel):
    kind: Literal["entity-resolution"] = "entity-resolution"
    resolved_query: str
    synonyms: list[str]
    explanation: str = ""


class TimeframeResult(BaseModel):
    kind: Literal["timeframe"] = "timeframe"
    timeframe: Timeframe


class SearchResult(BaseModel):
    kind: Literal["search"] = "search"
    items: list[SearchItem] = Field(default_factory=list)
    summary: str = ""
    next_step_recommendation: str = ""
    total_found: int = 0


class AnalysisResult(BaseModel):
    kind: Literal["analysis"] = "analysis"
    summary: str
    recommended_items: list[str] = Field(default_factory=list)
    explanation: str = ""
    conversation_snippet: str = ""


class AnswerResult(BaseModel):
    kind: Literal["answer"] = "answer"
    answer: str


class FinanceResult(BaseModel):
    kind: Literal["finance"] = "finance"
    extraction: FinanceExtraction
    persisted: bool = False
    activity: FinancialActivity | None = None


WorkerResult = Annotated[
    Union[
        PlanningResult,
        EntityResolutionResult,
        TimeframeResult,
        SearchResult,
        AnalysisResult,
        AnswerResult,
        FinanceResult,
    ],
    Field(discriminator="kind"),
]
