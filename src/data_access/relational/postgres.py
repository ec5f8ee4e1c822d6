"""Postgres-backed record store (asyncpg, one connection per call)."""
from __future__ import annotations

import json

import asyncpg

from src.core.contracts.content import Timeframe
from src.core.contracts.records import ClassifiedItem, FinancialActivity, SupportDoc
from src.core.contracts.steps import AgentStep


class PostgresStore:
    def __init__(self, url: str):
        self.url = url.replace("postgresql+asyncpg://", "postgresql://")

    async def _connect(self) -> asyncpg.Connection:
        return await asyncpg.connect(self.url)

    async def insert_financial_activity(self, activity: FinancialActivity) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO app.financial_activities
                    (timestamp, type, amount, currency, description, sender_name, receiver_name,
                     confidence, source_text, source_type)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                """,
                activity.timestamp,
                activity.type,
                activity.amount,
                activity.currency,
                activity.description,
                activity.sender_name,
                activity.receiver_name,
                activity.confidence,
                activity.source_text,
                activity.source_type,
            )
        finally:
            await conn.close()

    async def list_financial_activities(self, limit: int = 50) -> list[FinancialActivity]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                """
                SELECT timestamp, type, amount, currency, description, sender_name, receiver_name,
                       confidence, source_text, source_type
                FROM app.financial_activities ORDER BY timestamp DESC LIMIT $1
                """,
                limit,
            )
        finally:
            await conn.close()
        return [
            FinancialActivity(
                timestamp=r["timestamp"],
                type=r["type"],
                amount=float(r["amount"]),
                currency=r["currency"],
                description=r["description"] or "",
                sender_name=r["sender_name"],
                receiver_name=r["receiver_name"],
                confidence=float(r["confidence"]),
                source_text=r["source_text"],
                source_type=r["source_type"],
            )
            for r in rows
        ]

    async def insert_support_doc(self, doc: SupportDoc) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO app.support_docs (timestamp, summary, key_points, recommended_actions, timeframe, raw_data)
                VALUES ($1, $2, $3::jsonb, $4::jsonb, $5::jsonb, $6::jsonb)
                """,
                doc.timestamp,
                doc.summary,
                json.dumps(doc.key_points),
                json.dumps(doc.recommended_actions),
                doc.timeframe.model_dump_json(),
                json.dumps(doc.raw_data),
            )
        finally:
            await conn.close()

    async def list_support_docs(self, limit: int = 20) -> list[SupportDoc]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                """
                SELECT timestamp, summary, key_points, recommended_actions, timeframe, raw_data
                FROM app.support_docs ORDER BY timestamp DESC LIMIT $1
                """,
                limit,
            )
        finally:
            await conn.close()
        docs = []
        for r in rows:
            docs.append(SupportDoc(
                timestamp=r["timestamp"],
                summary=r["summary"],
                key_points=_json(r["key_points"], []),
                recommended_actions=_json(r["recommended_actions"], []),
                timeframe=Timeframe.model_validate(_json(r["timeframe"], {})),
                raw_data=_json(r["raw_data"], []),
            ))
        return docs

    async def insert_classified_item(self, item: ClassifiedItem) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO app.classified_items
                    (text, app_name, window_name, timestamp, type, classification, is_important, confidence, hyper_info)
                VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7, $8, $9)
                """,
                item.text,
                item.app_name,
                item.window_name,
                item.timestamp,
                item.type,
                json.dumps(item.classification),
                item.is_important,
                item.confidence,
                item.hyper_info,
            )
        finally:
            await conn.close()

    async def recent_hyper_infos(self, limit: int = 20) -> list[str]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                """
                SELECT hyper_info FROM app.classified_items
                WHERE hyper_info IS NOT NULL ORDER BY timestamp DESC LIMIT $1
                """,
                limit,
            )
        finally:
            await conn.close()
        return [r["hyper_info"] for r in rows]

    async def insert_agent_steps(self, run_id: str, steps: list[AgentStep]) -> None:
        if not steps:
            return
        conn = await self._connect()
        try:
            await conn.executemany(
                """
                INSERT INTO app.agent_steps (step_id, run_id, timestamp, human_action, text, finish_reason)
                VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT (step_id) DO NOTHING
                """,
                [(s.id, run_id, s.timestamp, s.human_action, s.text, s.finish_reason) for s in steps],
            )
        finally:
            await conn.close()


def _json(value, default):
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value
