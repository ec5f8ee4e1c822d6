from __future__ import annotations

from pydantic import BaseModel, Field

from src.core.contracts.results import EntityResolutionResult
from src.workers.base import BaseWorker, StepInput, WorkerContext


class EntityResolutionOutput(BaseModel):
    resolved_query: str = ""
    synonyms: list[str] = Field(default_factory=list)
    explanation: str = ""


SYSTEM = "You are an expert at detecting name variations and synonyms in user queries."

PROMPT = """The user query is: "{query}"

1) Identify the key entities (people, companies, topics) and any name variations or synonyms.
   Only short, single-word or short-phrase terms; no filler like "conversation" or "context".
2) Construct a "resolved_query" that combines them with OR, e.g. "alex OR alexander", if relevant.
3) Provide a short "explanation"."""


def _dedupe(terms: list[str]) -> list[str]:
    seen: set[str] = set()
    out = []
    for term in terms:
        t = term.strip()
        if t and t.lower() not in seen:
            seen.add(t.lower())
            out.append(t)
    return out


class EntityResolutionWorker(BaseWorker[StepInput, EntityResolutionResult]):
    kind = "entity-resolution"

    def start_message(self, payload: StepInput, context: WorkerContext) -> tuple[str, str]:
        return "entity-resolution started", f'resolving entities in query: "{self._query(payload, context)}"'

    @staticmethod
    def _query(payload: StepInput, context: WorkerContext) -> str:
        return (payload.step.context.query or context.query).strip()

    async def _run(self, payload: StepInput, context: WorkerContext) -> EntityResolutionResult:
        query = self._query(payload, context)
        out = await self.structured(context, EntityResolutionOutput, PROMPT.format(query=query), system=SYSTEM)
        synonyms = _dedupe(out.synonyms)
        if not synonyms:
            # No better variant: fall back to the literal query
            synonyms = [query]
            explanation = out.explanation or "No variants found; using the query as-is."
        else:
            explanation = out.explanation
        resolved = out.resolved_query.strip() or " OR ".join(synonyms)
        return EntityResolutionResult(resolved_query=resolved, synonyms=synonyms, explanation=explanation)

    def complete_message(self, result: EntityResolutionResult) -> tuple[str, str]:
        return "entity-resolution complete", (
            f"resolvedQuery: {result.resolved_query}\nsynonyms: {', '.join(result.synonyms)}"
        )
