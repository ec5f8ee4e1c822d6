from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.core.exceptions import UnmappedStepError


class StepType(str, Enum):
    PLANNING = "planning"
    ENTITY_RESOLUTION = "entity-resolution"
    TIMEFRAME = "timeframe"
    SEARCH = "search"
    ANALYSIS = "analysis"
    ANSWER = "answer"


STEP_TYPE_NAMES = ", ".join(t.value for t in StepType)


class StepContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["search", "classification"] = "search"
    query: str = ""
    timeframe: str = ""


class PlanStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = Field(description=f"One of: {STEP_TYPE_NAMES}")
    purpose: str
    context: StepContext = Field(default_factory=StepContext)

    def resolve_type(self) -> StepType:
        try:
            return StepType(self.type)
        except ValueError:
            raise UnmappedStepError(self.type) from None


class ExecutionPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["search", "classification"] = "search"
    query: str = ""
    timeframe: str = ""
    steps: list[PlanStep] = Field(default_factory=list)
    estimated_complexity: Literal["low", "medium", "high"] = "medium"

    def describe(self) -> str:
        return " → ".join(f"{s.type}: {s.purpose}" for s in self.steps)
