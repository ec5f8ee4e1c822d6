"""Step type → worker dispatch table."""
from __future__ import annotations

from src.core.config.models import AppConfig
from src.core.contracts.plan import PlanStep, StepType
from src.core.exceptions import ConfigError
from src.inference.llm import InferenceService
from src.orchestrator.recorder import StepRecorder
from src.retrieval.client import ContentRetrieval
from src.workers.analysis import AnalysisWorker
from src.workers.answer import AnswerWorker
from src.workers.base import BaseWorker
from src.workers.entity_resolution import EntityResolutionWorker
from src.workers.planning import PlanningWorker
from src.workers.relevance import RelevanceFilter
from src.workers.search import SearchWorker
from src.workers.timeframe import TimeframeWorker


class WorkerRegistry:
    """Must cover every StepType; an incomplete table fails at construction, not mid-run."""

    def __init__(self, workers: dict[StepType, BaseWorker]):
        missing = [t.value for t in StepType if t not in workers]
        if missing:
            raise ConfigError(f"No worker registered for step types: {', '.join(missing)}")
        self._workers = dict(workers)

    def resolve(self, step: PlanStep) -> BaseWorker:
        return self._workers[step.resolve_type()]

    def __contains__(self, step_type: StepType) -> bool:
        return step_type in self._workers


def build_registry(
    inference: InferenceService,
    retrieval: ContentRetrieval,
    recorder: StepRecorder,
    config: AppConfig,
) -> WorkerRegistry:
    relevance = RelevanceFilter(inference, recorder, config)
    return WorkerRegistry({
        StepType.PLANNING: PlanningWorker(inference, recorder, config),
        StepType.ENTITY_RESOLUTION: EntityResolutionWorker(inference, recorder, config),
        StepType.TIMEFRAME: TimeframeWorker(inference, recorder, config),
        StepType.SEARCH: SearchWorker(inference, recorder, config, retrieval=retrieval, relevance=relevance),
        StepType.ANALYSIS: AnalysisWorker(inference, recorder, config),
        StepType.ANSWER: AnswerWorker(inference, recorder, config),
    })
