"""HTTP client for the capture service: time-ranged content queries and live event streams."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, AsyncIterator, Protocol

import httpx
from pydantic import BaseModel

from src.core.config.models import RetrievalConfig
from src.core.contracts.content import ContentItem, ContentPayload
from src.core.exceptions import RetrievalError

log = logging.getLogger("retrieval")

_UNSAFE_QUERY_CHARS = re.compile(r"[#\"*^{}\[\]()~?\\$]")


def sanitize_search_query(query: str) -> str:
    return re.sub(r"\s+", " ", _UNSAFE_QUERY_CHARS.sub(" ", query)).strip()


class VisionEvent(BaseModel):
    text: str = ""
    app_name: str = ""
    timestamp: str | None = None
    image: str | None = None


class TranscriptionEvent(BaseModel):
    text: str = ""
    timestamp: str | None = None
    device: str | None = None
    is_input: bool | None = None


class ContentRetrieval(Protocol):
    async def query(
        self,
        q: str,
        content_type: str,
        start_time: str | None = None,
        end_time: str | None = None,
        limit: int = 10,
        min_length: int | None = None,
        include_frames: bool = False,
    ) -> list[ContentItem]: ...

    def stream_vision(self, include_images: bool = False) -> AsyncIterator[VisionEvent]: ...

    def stream_transcriptions(self) -> AsyncIterator[TranscriptionEvent]: ...


def _to_content_item(raw: dict[str, Any]) -> ContentItem:
    content = dict(raw.get("content") or {})
    if not content.get("text") and content.get("transcription"):
        content["text"] = content["transcription"]
    return ContentItem(type=str(raw.get("type", "")).lower(), content=ContentPayload.model_validate(content))


def _vision_event(data: dict[str, Any]) -> VisionEvent:
    body = data.get("data", data)
    return VisionEvent(
        text=body.get("text") or "",
        app_name=body.get("app_name") or "",
        timestamp=body.get("timestamp"),
        image=body.get("image"),
    )


def _transcription_event(data: dict[str, Any]) -> TranscriptionEvent:
    choices = data.get("choices") or [{}]
    metadata = data.get("metadata") or {}
    return TranscriptionEvent(
        text=(choices[0] or {}).get("text") or "",
        timestamp=metadata.get("timestamp"),
        device=metadata.get("device"),
        is_input=metadata.get("isInput"),
    )


class CaptureServiceClient:
    def __init__(self, config: RetrievalConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.config.base_url, timeout=timeout, transport=self._transport)

    async def query(
        self,
        q: str,
        content_type: str,
        start_time: str | None = None,
        end_time: str | None = None,
        limit: int = 10,
        min_length: int | None = None,
        include_frames: bool = False,
    ) -> list[ContentItem]:
        params: dict[str, Any] = {
            "content_type": content_type,
            "limit": limit,
            "include_frames": str(include_frames).lower(),
        }
        if q:
            params["q"] = q
        if start_time:
            params["start_time"] = start_time
        if end_time:
            params["end_time"] = end_time
        if min_length is not None:
            params["min_length"] = min_length
        try:
            async with self._client(self.config.timeout_seconds) as client:
                r = await client.get("/search", params=params)
        except httpx.HTTPError as e:
            raise RetrievalError(f"capture service unreachable: {e}") from e
        if r.status_code != 200:
            raise RetrievalError(f"capture search failed: HTTP {r.status_code} {r.text[:200]}")
        data = r.json().get("data") or []
        items = [_to_content_item(d) for d in data if isinstance(d, dict)]
        log.info("query %r in %s → %s items", q, content_type, len(items))
        return items

    async def _stream(self, path: str, params: dict[str, Any] | None = None) -> AsyncIterator[dict[str, Any]]:
        # Live SSE feed: unbounded, no resume point.
        async with self._client(None) as client:
            async with client.stream("GET", path, params=params) as r:
                if r.status_code != 200:
                    raise RetrievalError(f"capture stream {path} failed: HTTP {r.status_code}")
                async for line in r.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    payload = line[len("data:"):].strip()
                    if not payload:
                        continue
                    try:
                        data = json.loads(payload)
                    except json.JSONDecodeError:
                        log.warning("skipping malformed stream event on %s", path)
                        continue
                    if isinstance(data, dict):
                        yield data

    async def stream_vision(self, include_images: bool = False) -> AsyncIterator[VisionEvent]:
        params = {"images": str(include_images).lower()}
        async for data in self._stream(self.config.vision_stream_path, params):
            yield _vision_event(data)

    async def stream_transcriptions(self) -> AsyncIterator[TranscriptionEvent]:
        async for data in self._stream(self.config.transcription_stream_path):
            yield _transcription_event(data)
