from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["ocr", "audio", "ui"]
TimeframeType = Literal["specific", "relative", "none"]


class ContentPayload(BaseModel):
    """Body of one captured item. Unknown capture fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    text: str = ""
    timestamp: str = ""
    app_name: str | None = None
    window_name: str | None = None
    frame_id: int | None = None
    file_path: str | None = None
    offset_index: int | None = None
    tags: list[str] | None = None


class ContentItem(BaseModel):
    type: str
    content: ContentPayload

    def dedup_key(self) -> tuple[str, str, str]:
        return (self.type.lower(), self.content.timestamp, self.content.text.strip())


class SearchItem(ContentItem):
    human_readable_action: str | None = None
    relevance_reason: str | None = None


class Timeframe(BaseModel):
    type: TimeframeType = "none"
    start_time: str = Field(default="", description="ISO8601 or empty")
    end_time: str = Field(default="", description="ISO8601 or empty")
    explanation: str = ""


class SearchQuery(BaseModel):
    query: str
    explanation: str = ""
    expected_results: list[str] = Field(default_factory=list)
    confidence: float = 0.5


class SearchPlan(BaseModel):
    timeframe: Timeframe = Field(default_factory=Timeframe)
    content_types: list[ContentType] = Field(default_factory=list)
    search_queries: list[SearchQuery] = Field(default_factory=list)
    rationale: str = ""
