"""Embedding-only engine backed by ``sentence-transformers``.

Useful when the platform only needs vectors: models are plain Hugging Face
repos, cached in the standard HF cache. Chat completion is not supported and
is reported as a failed result rather than raised.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np
import structlog
import torch
from huggingface_hub import snapshot_download, try_to_load_from_cache
from sentence_transformers import SentenceTransformer

from .base import (
    CatalogModel,
    ChatMessage,
    CompletionParams,
    CompletionResult,
    EmbeddingResult,
    InitParams,
    LMEngine,
)

logger = structlog.get_logger("engine.sentence_transformer")

# Every sentence-transformers repo ships this file
_MARKER_FILE = "modules.json"


class SentenceTransformerEngine(LMEngine):
    """Engine producing sentence embeddings with SentenceTransformer models.

    Parameters
    - catalog: Mapping of model slug to Hugging Face repo id
    - cache_dir: Optional HF cache directory override
    - device: Torch device; ``None`` lets sentence-transformers pick
    """

    def __init__(
        self,
        catalog: Dict[str, str],
        cache_dir: Optional[str] = None,
        device: Optional[str] = None,
    ):
        self.catalog = dict(catalog)
        self.cache_dir = cache_dir
        self.device = device
        self._model: Optional[SentenceTransformer] = None

    def _repo_id(self, slug: str) -> str:
        try:
            return self.catalog[slug]
        except KeyError:
            raise ValueError(f"Unknown model {slug!r}. Available: {', '.join(self.catalog)}")

    def _is_cached(self, repo_id: str) -> bool:
        cached = try_to_load_from_cache(repo_id, _MARKER_FILE, cache_dir=self.cache_dir)
        return isinstance(cached, str)

    def list_models(self) -> List[CatalogModel]:
        return [
            CatalogModel(slug=slug, is_downloaded=self._is_cached(repo_id))
            for slug, repo_id in self.catalog.items()
        ]

    def download_model(self, slug: str) -> None:
        repo_id = self._repo_id(slug)
        logger.info("Downloading sentence-transformers model", model=slug, repo_id=repo_id)
        path = snapshot_download(repo_id=repo_id, cache_dir=self.cache_dir)
        logger.info("Model snapshot stored", model=slug, path=path)

    def is_loaded(self) -> bool:
        return self._model is not None

    def initialize_model(self, params: InitParams) -> None:
        repo_id = self._repo_id(params.model)
        model = SentenceTransformer(repo_id, device=self.device, cache_folder=self.cache_dir)

        if model.max_seq_length is None or model.max_seq_length > params.context_size:
            model.max_seq_length = params.context_size

        self._model = model
        logger.info(
            "SentenceTransformer loaded",
            model=params.model,
            dimension=model.get_sentence_embedding_dimension(),
            max_length=model.max_seq_length,
        )

    def generate_embedding(self, text: str) -> EmbeddingResult:
        if self._model is None:
            return EmbeddingResult(success=False, error_message="No model loaded")

        try:
            vector = self._model.encode(text, convert_to_numpy=True)
        except Exception as e:
            return EmbeddingResult(success=False, error_message=str(e))

        return EmbeddingResult(success=True, embeddings=np.asarray(vector, dtype=np.float64).tolist())

    def generate_completion(
        self,
        messages: Sequence[ChatMessage],
        params: CompletionParams
    ) -> CompletionResult:
        return CompletionResult(
            success=False,
            error_message="sentence-transformers models do not support chat completion",
        )

    def unload(self) -> None:
        self._model = None
        if torch.cuda.is_available():
            torch.cuda.empty_cache()
        logger.info("SentenceTransformer released")
