from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from src.core.config.models import AppConfig
from src.data_access.factory import build_store
from src.data_access.store import RecordStore
from src.detection.duplicates import ClassifiedItemService, DuplicateDetector
from src.detection.finance import FinanceWorker, FinancialActivityDetector
from src.detection.instructions import InstructionManager
from src.detection.support_docs import SupportDocManager
from src.inference.llm import InferenceService, LangChainInference
from src.orchestrator.executor import Executor
from src.orchestrator.planner import Planner
from src.orchestrator.recorder import StepRecorder
from src.orchestrator.registry import build_registry
from src.orchestrator.service import Orchestrator
from src.retrieval.client import CaptureServiceClient, ContentRetrieval
from src.retrieval.notifications import DesktopNotifier, Notifier


@dataclass
class Services:
    config: AppConfig
    recorder: StepRecorder
    inference: InferenceService
    retrieval: ContentRetrieval
    notifier: Notifier
    store: RecordStore
    orchestrator: Orchestrator
    finance: FinanceWorker
    detector: FinancialActivityDetector
    support_docs: SupportDocManager
    instructions: InstructionManager
    classified_items: ClassifiedItemService


def build_services(
    config: AppConfig,
    project_root: Path | None = None,
    *,
    inference: InferenceService | None = None,
    retrieval: ContentRetrieval | None = None,
    notifier: Notifier | None = None,
    store: RecordStore | None = None,
    recorder: StepRecorder | None = None,
) -> Services:
    recorder = recorder or StepRecorder()
    inference = inference or LangChainInference()
    retrieval = retrieval or CaptureServiceClient(config.retrieval)
    notifier = notifier or DesktopNotifier(config.retrieval.notify_url)
    store = store or build_store(config, project_root)

    registry = build_registry(inference, retrieval, recorder, config)
    orchestrator = Orchestrator(Planner(inference, recorder, config), Executor(registry, recorder), recorder)
    finance = FinanceWorker(inference, recorder, config, store=store, notifier=notifier)
    duplicates = DuplicateDetector(inference, store, recorder, config)
    return Services(
        config=config,
        recorder=recorder,
        inference=inference,
        retrieval=retrieval,
        notifier=notifier,
        store=store,
        orchestrator=orchestrator,
        finance=finance,
        detector=FinancialActivityDetector(finance, retrieval),
        support_docs=SupportDocManager(inference, recorder, config, retrieval=retrieval, store=store, notifier=notifier),
        instructions=InstructionManager(
            inference, recorder, config, retrieval=retrieval, store=store, notifier=notifier, finance=finance
        ),
        classified_items=ClassifiedItemService(duplicates, store),
    )
