from __future__ import annotations

from datetime import datetime, timezone

from src.core.contracts.content import Timeframe
from src.core.contracts.results import TimeframeResult
from src.core.timeframes import has_complete_bounds
from src.workers.base import BaseWorker, StepInput, WorkerContext

SYSTEM = (
    "You parse time expressions like 'yesterday', 'last week', 'last 15 minutes', "
    "'jan 1 to jan 10' into ISO8601 start/end times."
)

PROMPT = """User query: "{query}"
Current time (resolve relative expressions against this): {now}

1) If the user used a relative date (like "yesterday", "this month", "last 15 minutes"), produce type="relative" plus start_time/end_time.
2) If a specific date range was stated, produce type="specific".
3) If there is no mention of time, produce type="none" with empty start_time/end_time.
4) Provide "explanation" for how you interpreted it."""


class TimeframeWorker(BaseWorker[StepInput, TimeframeResult]):
    """Parses natural-language time references.

    Ambiguous or absent references come back as ``type: none`` with empty
    bounds; callers that need concrete bounds use ``normalize_timeframe``.
    """

    kind = "timeframe"

    def start_message(self, payload: StepInput, context: WorkerContext) -> tuple[str, str]:
        return "timeframe parsing started", f'analyzing timeframe in query: "{payload.step.context.query or context.query}"'

    async def _run(self, payload: StepInput, context: WorkerContext) -> TimeframeResult:
        now = datetime.now(timezone.utc)
        query = payload.step.context.query or context.query
        tf = await self.structured(context, Timeframe, PROMPT.format(query=query, now=now.isoformat()), system=SYSTEM)
        if tf.type == "none":
            tf = tf.model_copy(update={"start_time": "", "end_time": ""})
        elif not has_complete_bounds(tf):
            self.log.info("timeframe %s has incomplete bounds: %r → %r", tf.type, tf.start_time, tf.end_time)
        return TimeframeResult(timeframe=tf)

    def complete_message(self, result: TimeframeResult) -> tuple[str, str]:
        tf = result.timeframe
        return "timeframe parsing complete", f"parsed timeframe => {tf.type}: {tf.start_time} to {tf.end_time}"
