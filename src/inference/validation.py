"""Validate structured inference output against a pydantic contract."""
from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from src.core.exceptions import SchemaValidationError

M = TypeVar("M", bound=BaseModel)


def strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
    return text.strip()


def validate_payload(data: Any, schema: type[M]) -> M:
    if not isinstance(data, dict):
        raise SchemaValidationError(f"{schema.__name__}: expected a JSON object, got {type(data).__name__}")
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError(f"{schema.__name__}: {e}") from e


def parse_structured(text: str, schema: type[M]) -> M:
    cleaned = strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise SchemaValidationError(f"{schema.__name__}: response is not valid JSON ({e})", raw=text) from e
    try:
        return validate_payload(data, schema)
    except SchemaValidationError as e:
        e.raw = text
        raise


def schema_instructions(schema: type[BaseModel]) -> str:
    return (
        "Output only valid JSON (no markdown, no explanation) matching this JSON schema:\n"
        + json.dumps(schema.model_json_schema())
    )
