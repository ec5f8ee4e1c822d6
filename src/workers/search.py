from __future__ import annotations

import asyncio

from pydantic import BaseModel, Field

from src.core.contracts.content import ContentItem, SearchItem, Timeframe
from src.core.contracts.results import EntityResolutionResult, PlanningResult, SearchResult, TimeframeResult
from src.core.exceptions import RunCancelled
from src.core.timeframes import search_window
from src.retrieval.client import ContentRetrieval, sanitize_search_query
from src.workers.base import BaseWorker, StepInput, WorkerContext, preview
from src.workers.relevance import RelevanceFilter


class KeyTerms(BaseModel):
    synonyms: list[str] = Field(default_factory=list)
    explanation: str = ""


KEY_TERMS_PROMPT = """User query: "{query}"
We only want short, single-word or short-phrase search terms (names, topics).
No extra words like "conversation" or "context".
Return "synonyms" and a short "explanation"."""

SUMMARY_PROMPT = """Summarize these {count} relevant results for the query: "{query}"

Items:
{items}

Write a short bullet summary (1-3 points): key findings and notable timestamps or events."""


class SearchWorker(BaseWorker[StepInput, SearchResult]):
    """Runs retrieval for the resolved terms, then hands the merged items to the relevance filter.

    Terms come from the latest entity-resolution or planning result when one
    exists; otherwise the query is reduced to key terms here. A failed
    content-type query is recorded and skipped.
    """

    kind = "search"

    def __init__(self, inference, recorder, config, retrieval: ContentRetrieval, relevance: RelevanceFilter):
        super().__init__(inference, recorder, config)
        self.retrieval = retrieval
        self.relevance = relevance

    def start_message(self, payload: StepInput, context: WorkerContext) -> tuple[str, str]:
        return "search started", f"Searching captured content for: {payload.step.purpose}"

    async def _terms(self, payload: StepInput, context: WorkerContext) -> tuple[list[str], str]:
        entities = payload.latest(EntityResolutionResult)
        if entities is not None and entities.synonyms:
            return entities.synonyms, entities.explanation or "from entity resolution"
        query = (payload.step.context.query or context.query).strip()
        if len(query.split()) <= 2:
            return [query], "query is already short"
        out = await self.structured(context, KeyTerms, KEY_TERMS_PROMPT.format(query=query))
        terms = [s.strip() for s in out.synonyms if s.strip()]
        if not terms:
            return [query], "no key terms found"
        return terms, out.explanation

    @staticmethod
    def _timeframe(payload: StepInput, context: WorkerContext) -> Timeframe | None:
        parsed = payload.latest(TimeframeResult)
        if parsed is not None:
            return parsed.timeframe
        planning = payload.latest(PlanningResult)
        if planning is not None and planning.search_plan.timeframe.type != "none":
            return planning.search_plan.timeframe
        return context.timeframe

    async def _query_one(
        self,
        q: str,
        content_type: str,
        start_time: str | None,
        end_time: str | None,
        context: WorkerContext,
    ) -> list[ContentItem]:
        retrieval = self.config.retrieval
        try:
            return await context.cancel.guard(self.retrieval.query(
                q=q,
                content_type=content_type,
                start_time=start_time,
                end_time=end_time,
                limit=retrieval.search_limit,
                min_length=retrieval.min_length,
                include_frames=False,
            ))
        except RunCancelled:
            raise
        except Exception as e:
            self.log.warning("query %r in %s failed: %s", q, content_type, e)
            self.record(context, "search error", f'Error searching "{q}" in {content_type}: {e}', "error")
            return []

    def _keep(self, item: ContentItem) -> bool:
        window = (item.content.window_name or "").lower()
        return not any(name.lower() in window for name in self.config.retrieval.excluded_window_names)

    async def _run(self, payload: StepInput, context: WorkerContext) -> SearchResult:
        terms, explanation = await self._terms(payload, context)
        self.record(context, "analyze query done", f"Synonyms used: {', '.join(terms)}\nExplanation: {explanation}")

        planning = payload.latest(PlanningResult)
        content_types = list(self.config.retrieval.default_content_types)
        queries = [" OR ".join(terms)]
        if planning is not None:
            content_types = list(planning.search_plan.content_types) or content_types
            if payload.latest(EntityResolutionResult) is None:
                queries = [q.query for q in planning.search_plan.search_queries if q.query.strip()] or queries
        queries = [q for q in (sanitize_search_query(q) for q in queries) if q]

        start_time, end_time = search_window(
            self._timeframe(payload, context),
            lookback_minutes=self.config.pipeline.default_lookback_minutes,
        )

        pairs = [(q, ct) for q in queries for ct in content_types]
        for n, (q, ct) in enumerate(pairs, 1):
            self.record(context, "search progress", f'Query {n}/{len(pairs)}: "{q}" in {ct}')
        batches = await asyncio.gather(*(self._query_one(q, ct, start_time, end_time, context) for q, ct in pairs))

        seen: set[tuple[str, str, str]] = set()
        merged: list[SearchItem] = []
        for (q, ct), batch in zip(pairs, batches):
            for item in batch:
                if not self._keep(item) or item.dedup_key() in seen:
                    continue
                seen.add(item.dedup_key())
                merged.append(SearchItem(
                    type=item.type or ct,
                    content=item.content,
                    human_readable_action=f"Found in {ct} content",
                ))

        user_query = payload.step.context.query or context.query
        relevant = await self.relevance.filter(merged, user_query, context)

        if relevant:
            sample = "\n---\n".join(i.content.text[:200] for i in relevant[:10])
            summary = await self.text(context, SUMMARY_PROMPT.format(count=len(relevant), query=user_query, items=sample))
        else:
            summary = "No relevant results found."
        return SearchResult(
            items=relevant,
            summary=summary,
            next_step_recommendation="proceed with analysis or final answer",
            total_found=len(merged),
        )

    def complete_message(self, result: SearchResult) -> tuple[str, str]:
        return "search complete", (
            f"total items found: {result.total_found}\n"
            f"relevant items: {len(result.items)}\n"
            f"summary: {preview(result.summary, 400)}"
        )
