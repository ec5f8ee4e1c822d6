from __future__ import annotations

from src.core.contracts.records import ClassifiedItem, FinancialActivity, SupportDoc
from src.core.contracts.steps import AgentStep


class InMemoryStore:
    """Process-local store used when no Postgres URL is configured."""

    def __init__(self) -> None:
        self.financial_activities: list[FinancialActivity] = []
        self.support_docs: list[SupportDoc] = []
        self.classified_items: list[ClassifiedItem] = []
        self.agent_steps: dict[str, list[AgentStep]] = {}

    async def insert_financial_activity(self, activity: FinancialActivity) -> None:
        self.financial_activities.append(activity)

    async def list_financial_activities(self, limit: int = 50) -> list[FinancialActivity]:
        return sorted(self.financial_activities, key=lambda a: a.timestamp, reverse=True)[:limit]

    async def insert_support_doc(self, doc: SupportDoc) -> None:
        self.support_docs.append(doc)

    async def list_support_docs(self, limit: int = 20) -> list[SupportDoc]:
        return sorted(self.support_docs, key=lambda d: d.timestamp, reverse=True)[:limit]

    async def insert_classified_item(self, item: ClassifiedItem) -> None:
        self.classified_items.append(item)

    async def recent_hyper_infos(self, limit: int = 20) -> list[str]:
        items = sorted(self.classified_items, key=lambda i: i.timestamp, reverse=True)
        return [i.hyper_info for i in items if i.hyper_info][:limit]

    async def insert_agent_steps(self, run_id: str, steps: list[AgentStep]) -> None:
        """Steps already stored (same step id) are skipped."""
        timeline = self.agent_steps.setdefault(run_id, [])
        known = {s.id for s in timeline}
        timeline.extend(s for s in steps if s.id not in known)
