from __future__ import annotations

from pydantic import BaseModel, Field


class ModelsConfig(BaseModel):
    planner: str = "gpt-4o-mini"
    worker: str = "gpt-4o-mini"
    finance: str = "gpt-4o-mini"


class ThresholdsConfig(BaseModel):
    finance_confidence: float = Field(default=0.7, ge=0.0, le=1.0)  # persist only when strictly above
    duplicate_similarity: float = Field(default=0.8, ge=0.0, le=1.0)


class RetrievalConfig(BaseModel):
    base_url: str = "http://localhost:3030"
    notify_url: str = "http://localhost:11435/notify"
    vision_stream_path: str = "/sse/vision"
    transcription_stream_path: str = "/sse/transcriptions"
    timeout_seconds: float = 30.0
    search_limit: int = 50
    min_length: int = 3
    default_content_types: list[str] = Field(default_factory=lambda: ["ocr"])
    excluded_window_names: list[str] = Field(default_factory=list)


class PipelineConfig(BaseModel):
    relevance_chunk_size: int = Field(default=8, ge=8, le=20)
    default_lookback_minutes: int = Field(default=5, gt=0)
    answer_max_lines: int = 10
    snippet_char_limit: int = 3000
    answer_snippet_char_limit: int = 4000
    duplicate_candidate_limit: int = 20


class SessionStoreConfig(BaseModel):
    type: str = "postgres"
    connection_id: str = "POSTGRES_APP_URL"  # env var name


class AppConfig(BaseModel):
    app_id: str
    app_name: str
    env_file_path: str | None = None
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    session_store: SessionStoreConfig | None = None

    def get_store_url(self, env: dict[str, str]) -> str | None:
        """Postgres URL from the env var named by session_store, normalised for asyncpg."""
        if self.session_store is None:
            return None
        url = env.get(self.session_store.connection_id)
        if not url:
            return None
        return url.replace("postgresql+asyncpg://", "postgresql://")
