"""Live inbox relay: merges vision and transcription streams into Server-Sent Events."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncIterator

from pydantic import BaseModel

from src.core.cancellation import CancelToken
from src.core.exceptions import RunCancelled
from src.retrieval.client import ContentRetrieval

log = logging.getLogger("inbox")


class InboxMessage(BaseModel):
    text: str
    appName: str
    timestamp: str
    type: str  # "vision" | "transcription"
    device: str | None = None


def format_sse(message: InboxMessage) -> str:
    return f"data: {message.model_dump_json(exclude_none=True)}\n\n"


async def _pump_vision(retrieval: ContentRetrieval, watch: str, token: CancelToken, queue: asyncio.Queue) -> None:
    async for event in token.iterate(retrieval.stream_vision(False)):
        if watch in event.text.lower():
            await queue.put(InboxMessage(
                text=event.text,
                appName=event.app_name,
                timestamp=datetime.now(timezone.utc).isoformat(),
                type="vision",
            ))


async def _pump_transcriptions(retrieval: ContentRetrieval, watch: str, token: CancelToken, queue: asyncio.Queue) -> None:
    async for event in token.iterate(retrieval.stream_transcriptions()):
        if watch in event.text.lower():
            await queue.put(InboxMessage(
                text=event.text,
                appName="Audio Transcription",
                timestamp=event.timestamp or datetime.now(timezone.utc).isoformat(),
                type="transcription",
                device=event.device,
            ))


async def relay_events(retrieval: ContentRetrieval, watch: str, token: CancelToken) -> AsyncIterator[str]:
    """Yield SSE frames for captured text containing ``watch`` until the token fires or both streams end."""
    watch = watch.lower()
    queue: asyncio.Queue = asyncio.Queue()
    pumps = [
        asyncio.create_task(_pump_vision(retrieval, watch, token, queue)),
        asyncio.create_task(_pump_transcriptions(retrieval, watch, token, queue)),
    ]
    try:
        while not token.cancelled:
            if all(p.done() for p in pumps) and queue.empty():
                break
            try:
                message = await token.guard(asyncio.wait_for(queue.get(), timeout=1.0))
            except asyncio.TimeoutError:
                continue
            except RunCancelled:
                break
            yield format_sse(message)
    finally:
        token.cancel("inbox closed")
        for p in pumps:
            p.cancel()
        for p in await asyncio.gather(*pumps, return_exceptions=True):
            if isinstance(p, Exception) and not isinstance(p, RunCancelled):
                log.warning("inbox stream ended with error: %s", p)
