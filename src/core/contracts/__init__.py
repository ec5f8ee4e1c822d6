from src.core.contracts.api import QueryRequest, QueryResponse
from src.core.contracts.content import ContentItem, SearchItem, SearchPlan, SearchQuery, Timeframe
from src.core.contracts.plan import ExecutionPlan, PlanStep, StepContext, StepType
from src.core.contracts.records import ClassifiedItem, FinanceExtraction, FinancialActivity, SupportDoc
from src.core.contracts.results import (
    AnalysisResult,
    AnswerResult,
    EntityResolutionResult,
    FinanceResult,
    PlanningResult,
    SearchResult,
    TimeframeResult,
    WorkerResult,
)
from src.core.contracts.steps import AgentStep

__all__ = [
    "QueryRequest",
    "QueryResponse",
    "ContentItem",
    "SearchItem",
    "SearchPlan",
    "SearchQuery",
    "Timeframe",
    "ExecutionPlan",
    "PlanStep",
    "StepContext",
    "StepType",
    "ClassifiedItem",
    "FinanceExtraction",
    "FinancialActivity",
    "SupportDoc",
    "AnalysisResult",
    "AnswerResult",
    "EntityResolutionResult",
    "FinanceResult",
    "PlanningResult",
    "SearchResult",
    "TimeframeResult",
    "WorkerResult",
    "AgentStep",
]
