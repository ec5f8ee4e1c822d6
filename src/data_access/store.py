"""Record store contract: single-row inserts and newest-first selects with a limit."""
from __future__ import annotations

from typing import Protocol

from src.core.contracts.records import ClassifiedItem, FinancialActivity, SupportDoc
from src.core.contracts.steps import AgentStep


class RecordStore(Protocol):
    async def insert_financial_activity(self, activity: FinancialActivity) -> None: ...

    async def list_financial_activities(self, limit: int = 50) -> list[FinancialActivity]: ...

    async def insert_support_doc(self, doc: SupportDoc) -> None: ...

    async def list_support_docs(self, limit: int = 20) -> list[SupportDoc]: ...

    async def insert_classified_item(self, item: ClassifiedItem) -> None: ...

    async def recent_hyper_infos(self, limit: int = 20) -> list[str]: ...

    async def insert_agent_steps(self, run_id: str, steps: list[AgentStep]) -> None: ...
