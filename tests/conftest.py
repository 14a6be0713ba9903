"""Shared fixtures: an in-memory engine and a manager wired to it."""

import time
from collections import Counter
from typing import List, Optional, Sequence

import pytest
from prometheus_client import CollectorRegistry

from libs.common.config import LMConfig
from libs.common.metrics import MetricsCollector
from libs.engine.base import (
    CatalogModel,
    ChatMessage,
    CompletionParams,
    CompletionResult,
    EmbeddingResult,
    InitParams,
    LMEngine,
)
from libs.lifecycle import ModelLifecycleManager

MODEL_ID = "qwen3-0.6"


class FakeEngine(LMEngine):
    """Engine double that records calls and can be told to fail."""

    def __init__(self, slug: str = MODEL_ID, downloaded: bool = False):
        self.slug = slug
        self.downloaded = downloaded
        self.loaded = False
        self.embedding = [0.1, 0.2, 1 / 3, -2.5]
        self.calls = Counter()
        self.init_params: List[InitParams] = []
        self.completion_calls: List[tuple] = []

        self.fail_catalog = False
        self.fail_download = False
        self.fail_initialize = False
        self.fail_unload = False
        self.raise_on_embedding = False
        self.init_delay = 0.0
        self.embed_delay = 0.0
        self.embedding_result: Optional[EmbeddingResult] = None
        self.completion_result: Optional[CompletionResult] = None

    def list_models(self) -> List[CatalogModel]:
        self.calls["list_models"] += 1
        if self.fail_catalog:
            raise OSError("catalog unavailable")
        return [
            CatalogModel(slug="gemma3-1b", is_downloaded=True),
            CatalogModel(slug=self.slug, is_downloaded=self.downloaded),
        ]

    def download_model(self, slug: str) -> None:
        self.calls["download_model"] += 1
        if self.fail_download:
            raise ConnectionError("network unreachable")
        self.downloaded = True

    def is_loaded(self) -> bool:
        return self.loaded

    def initialize_model(self, params: InitParams) -> None:
        self.calls["initialize_model"] += 1
        self.init_params.append(params)
        if self.init_delay:
            time.sleep(self.init_delay)
        if self.fail_initialize:
            raise RuntimeError("corrupt model file")
        self.loaded = True

    def generate_embedding(self, text: str) -> EmbeddingResult:
        self.calls["generate_embedding"] += 1
        if self.embed_delay:
            time.sleep(self.embed_delay)
        if not self.loaded:
            return EmbeddingResult(success=False, error_message="model not loaded")
        if self.raise_on_embedding:
            raise RuntimeError("out of memory")
        if self.embedding_result is not None:
            return self.embedding_result
        return EmbeddingResult(success=True, embeddings=list(self.embedding))

    def generate_completion(
        self,
        messages: Sequence[ChatMessage],
        params: CompletionParams
    ) -> CompletionResult:
        self.calls["generate_completion"] += 1
        self.completion_calls.append((list(messages), params))
        if self.completion_result is not None:
            return self.completion_result
        return CompletionResult(success=True, response=f"echo: {messages[-1].content}")

    def unload(self) -> None:
        self.calls["unload"] += 1
        if self.fail_unload:
            raise RuntimeError("engine busy")
        self.loaded = False


@pytest.fixture
def config():
    return LMConfig(ml_lm_model=MODEL_ID)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def metrics():
    return MetricsCollector("test-lm", registry=CollectorRegistry())


@pytest.fixture
def manager(engine, config, metrics):
    return ModelLifecycleManager(engine, config, metrics=metrics)
