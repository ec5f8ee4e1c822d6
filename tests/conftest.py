"""Pytest configuration: shared fixtures."""

from __future__ import annotations

from typing import Callable

import pytest

from src.core.cancellation import CancelToken
from src.core.config.models import AppConfig
from src.core.contracts.content import ContentItem
from src.data_access.memory import InMemoryStore
from src.orchestrator.recorder import StepRecorder
from src.workers.base import WorkerContext
from tests.fakes import FakeInference, FakeNotifier, FakeRetrieval, item


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(app_id="test", app_name="Test", retrieval={"excluded_window_names": ["hyprsqrl"]})


@pytest.fixture
def inference() -> FakeInference:
    return FakeInference()


@pytest.fixture
def recorder() -> StepRecorder:
    return StepRecorder()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def retrieval() -> FakeRetrieval:
    return FakeRetrieval()


@pytest.fixture
def context() -> WorkerContext:
    return WorkerContext(api_key="sk-test", run_id="run-1", query="test query", cancel=CancelToken())


@pytest.fixture
def make_item() -> Callable[..., ContentItem]:
    return item
