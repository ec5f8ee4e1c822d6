"""Inference service: structured and free-text generation through LangChain chat models."""
from __future__ import annotations

import logging
from typing import Protocol, TypeVar

from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from src.inference.validation import parse_structured, schema_instructions

log = logging.getLogger("inference")

M = TypeVar("M", bound=BaseModel)

DEFAULT_SYSTEM = "You are a careful assistant working over the user's captured screen and audio history."


class InferenceService(Protocol):
    async def generate_structured(
        self,
        model_id: str,
        schema: type[M],
        prompt: str,
        *,
        system: str | None = None,
        api_key: str,
    ) -> M: ...

    async def generate_text(
        self,
        model_id: str,
        prompt: str,
        *,
        system: str | None = None,
        api_key: str,
    ) -> str: ...


# Only {system}, {format} and {prompt} are variables, so prompt text may contain literal braces
STRUCTURED_TEMPLATE = ChatPromptTemplate.from_messages([
    ("system", "{system}\n\n{format}"),
    ("human", "{prompt}"),
])

TEXT_TEMPLATE = ChatPromptTemplate.from_messages([
    ("system", "{system}"),
    ("human", "{prompt}"),
])


class LangChainInference:
    def __init__(self, temperature: float = 0, timeout: float = 120.0):
        self.temperature = temperature
        self.timeout = timeout

    def _llm(self, model_id: str, api_key: str) -> ChatOpenAI:
        return ChatOpenAI(model=model_id, temperature=self.temperature, api_key=api_key, timeout=self.timeout)

    async def generate_structured(
        self,
        model_id: str,
        schema: type[M],
        prompt: str,
        *,
        system: str | None = None,
        api_key: str,
    ) -> M:
        llm = self._llm(model_id, api_key).bind(response_format={"type": "json_object"})
        out = await (STRUCTURED_TEMPLATE | llm).ainvoke({
            "system": system or DEFAULT_SYSTEM,
            "format": schema_instructions(schema),
            "prompt": prompt,
        })
        text = out.content if hasattr(out, "content") else str(out)
        log.debug("%s → %s", schema.__name__, (text[:200] + "…") if len(text) > 200 else text)
        return parse_structured(text, schema)

    async def generate_text(
        self,
        model_id: str,
        prompt: str,
        *,
        system: str | None = None,
        api_key: str,
    ) -> str:
        out = await (TEXT_TEMPLATE | self._llm(model_id, api_key)).ainvoke({
            "system": system or DEFAULT_SYSTEM,
            "prompt": prompt,
        })
        return out.content if hasattr(out, "content") else str(out)
