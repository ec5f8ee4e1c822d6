"""Duplicate detection for classified content, keyed on its hyperInfo string."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from pydantic import BaseModel, Field

from src.core.config.models import AppConfig
from src.core.contracts.api import ClassifiedItemResponse
from src.core.contracts.records import ClassifiedItem
from src.core.exceptions import RunCancelled
from src.data_access.store import RecordStore
from src.inference.llm import InferenceService
from src.orchestrator.recorder import StepRecorder
from src.workers.base import WorkerContext, preview

log = logging.getLogger("duplicates")


class Similarity(BaseModel):
    similarity: float = Field(ge=0.0, le=1.0)
    reason: str = ""


PROMPT = """Do these two descriptions refer to the same underlying item (same message, document, event or task)?

A: "{candidate}"
B: "{hyper_info}"

Return "similarity" between 0 (unrelated) and 1 (the same thing) and a short "reason"."""


def normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip().lower()


@dataclass(frozen=True)
class DuplicateCheck:
    duplicate: bool
    matched_hyper_info: str | None = None
    similarity: float | None = None


class DuplicateDetector:
    """Read-only against recent history: never updates stored items."""

    def __init__(self, inference: InferenceService, store: RecordStore, recorder: StepRecorder, config: AppConfig):
        self.inference = inference
        self.store = store
        self.recorder = recorder
        self.config = config

    async def check(self, hyper_info: str, context: WorkerContext) -> DuplicateCheck:
        threshold = self.config.thresholds.duplicate_similarity
        candidates = await self.store.recent_hyper_infos(self.config.pipeline.duplicate_candidate_limit)
        self.recorder.add_step(
            context.run_id, "duplicate check started", f"Comparing against {len(candidates)} recent items: {preview(hyper_info)}"
        )
        best = DuplicateCheck(duplicate=False)
        target = normalize(hyper_info)
        for candidate in candidates:
            if normalize(candidate) == target:
                best = DuplicateCheck(duplicate=True, matched_hyper_info=candidate, similarity=1.0)
                break
            try:
                scored = await context.cancel.guard(
                    self.inference.generate_structured(
                        self.config.models.worker,
                        Similarity,
                        PROMPT.format(candidate=candidate, hyper_info=hyper_info),
                        api_key=context.api_key,
                    )
                )
            except RunCancelled:
                raise
            except Exception as e:
                log.warning("similarity check against %r failed: %s", preview(candidate, 60), e)
                self.recorder.add_step(context.run_id, "duplicate check error", f"{preview(candidate, 60)}: {e}", "error")
                continue
            if best.similarity is None or scored.similarity > best.similarity:
                best = DuplicateCheck(
                    duplicate=scored.similarity >= threshold,
                    matched_hyper_info=candidate,
                    similarity=scored.similarity,
                )
            if best.duplicate:
                break
        self.recorder.add_step(
            context.run_id,
            "duplicate check complete",
            f"duplicate: {best.duplicate} (similarity {best.similarity if best.similarity is not None else 'n/a'})",
        )
        return best


class ClassifiedItemService:
    def __init__(self, detector: DuplicateDetector, store: RecordStore):
        self.detector = detector
        self.store = store

    async def submit(self, item: ClassifiedItem, context: WorkerContext) -> ClassifiedItemResponse:
        """Store ``item`` unless its hyperInfo duplicates a recent one."""
        if item.hyper_info:
            check = await self.detector.check(item.hyper_info, context)
            if check.duplicate:
                return ClassifiedItemResponse(
                    stored=False,
                    duplicate=True,
                    matched_hyper_info=check.matched_hyper_info,
                    similarity=check.similarity,
                )
        else:
            check = DuplicateCheck(duplicate=False)
        await self.store.insert_classified_item(item)
        return ClassifiedItemResponse(
            stored=True, duplicate=False, matched_hyper_info=check.matched_hyper_info, similarity=check.similarity
        )
