from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from src.core.contracts.content import Timeframe

FinancialActivityType = Literal["invoice", "payment", "receipt", "subscription"]


class FinanceParty(BaseModel):
    name: str
    role: Literal["sender", "receiver"]


class FinanceExtraction(BaseModel):
    """What the model read out of a piece of text. Amount and confidence may be missing."""

    type: FinancialActivityType | None = None
    amount: float | None = None
    currency: str | None = None
    description: str | None = None
    parties: list[FinanceParty] = Field(default_factory=list)
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    def party(self, role: str) -> str | None:
        for p in self.parties:
            if p.role == role and p.name:
                return p.name
        return None


class FinancialActivity(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: FinancialActivityType
    amount: float
    currency: str
    description: str = ""
    sender_name: str | None = None
    receiver_name: str | None = None
    confidence: float
    source_text: str
    source_type: str


class SupportDoc(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    summary: str
    key_points: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)
    timeframe: Timeframe
    raw_data: list[dict[str, Any]] = Field(default_factory=list)


class ClassifiedItem(BaseModel):
    text: str
    app_name: str | None = None
    window_name: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: str
    classification: dict[str, Any] = Field(default_factory=dict)
    is_important: bool = False
    confidence: float = 0.0
    hyper_info: str | None = None
