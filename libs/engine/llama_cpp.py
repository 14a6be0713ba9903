"""llama.cpp engine backed by ``llama-cpp-python``.

GGUF weights are fetched from the Hugging Face Hub into a local models
directory and loaded with ``llama_cpp.Llama`` with embeddings enabled, so
a single model serves both embedding and chat completion requests.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import structlog
from huggingface_hub import hf_hub_download
from llama_cpp import Llama

from .base import (
    CatalogModel,
    ChatMessage,
    CompletionParams,
    CompletionResult,
    EmbeddingResult,
    InitParams,
    LMEngine,
)

logger = structlog.get_logger("engine.llama_cpp")


@dataclass(frozen=True)
class GGUFSource:
    """Where the weights for a catalog slug live on the Hub."""
    repo_id: str
    filename: str


class LlamaCppEngine(LMEngine):
    """Engine running GGUF models in-process through llama.cpp.

    Parameters
    - catalog: Mapping of model slug to its ``GGUFSource``
    - models_dir: Directory the GGUF files are downloaded into
    - n_threads: CPU threads for llama.cpp (``None`` lets it decide)
    """

    def __init__(
        self,
        catalog: Dict[str, GGUFSource],
        models_dir: str = "models",
        n_threads: Optional[int] = None,
    ):
        self.catalog = dict(catalog)
        self.models_dir = Path(models_dir)
        self.n_threads = n_threads
        self._llm: Optional[Llama] = None
        self._loaded_slug: Optional[str] = None

    def _source(self, slug: str) -> GGUFSource:
        try:
            return self.catalog[slug]
        except KeyError:
            raise ValueError(f"Unknown model {slug!r}. Available: {', '.join(self.catalog)}")

    def _model_path(self, slug: str) -> Path:
        return self.models_dir / self._source(slug).filename

    def list_models(self) -> List[CatalogModel]:
        return [
            CatalogModel(slug=slug, is_downloaded=(self.models_dir / source.filename).is_file())
            for slug, source in self.catalog.items()
        ]

    def download_model(self, slug: str) -> None:
        source = self._source(slug)
        self.models_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            "Downloading GGUF weights",
            model=slug,
            repo_id=source.repo_id,
            filename=source.filename,
        )
        path = hf_hub_download(
            repo_id=source.repo_id,
            filename=source.filename,
            local_dir=str(self.models_dir),
        )
        logger.info("GGUF weights stored", model=slug, path=path)

    def is_loaded(self) -> bool:
        return self._llm is not None

    def initialize_model(self, params: InitParams) -> None:
        model_path = self._model_path(params.model)
        if not model_path.is_file():
            raise FileNotFoundError(f"Model weights not found: {model_path}")

        # Replace any previously loaded model
        if self._llm is not None:
            self.unload()

        kwargs: Dict[str, Any] = {
            "model_path": str(model_path),
            "n_ctx": params.context_size,
            "embedding": True,
            "verbose": False,
        }
        if self.n_threads is not None:
            kwargs["n_threads"] = self.n_threads

        self._llm = Llama(**kwargs)
        self._loaded_slug = params.model
        logger.info("llama.cpp model loaded", model=params.model, n_ctx=params.context_size)

    def generate_embedding(self, text: str) -> EmbeddingResult:
        if self._llm is None:
            return EmbeddingResult(success=False, error_message="No model loaded")

        try:
            raw = self._llm.embed(text)
        except Exception as e:
            return EmbeddingResult(success=False, error_message=str(e))

        vector = np.asarray(raw, dtype=np.float64)
        if vector.ndim == 2:
            # Per-token output when the model has no pooling layer
            vector = vector.mean(axis=0)
        if vector.ndim != 1 or vector.size == 0:
            return EmbeddingResult(
                success=False,
                error_message=f"Unexpected embedding shape {vector.shape}",
            )

        return EmbeddingResult(success=True, embeddings=vector.tolist())

    def generate_completion(
        self,
        messages: Sequence[ChatMessage],
        params: CompletionParams
    ) -> CompletionResult:
        if self._llm is None:
            return CompletionResult(success=False, error_message="No model loaded")

        try:
            output = self._llm.create_chat_completion(
                messages=[{"role": m.role, "content": m.content} for m in messages],
                max_tokens=params.max_tokens,
                temperature=params.temperature,
            )
            content = output["choices"][0]["message"]["content"]
        except Exception as e:
            return CompletionResult(success=False, error_message=str(e))

        return CompletionResult(success=True, response=content or "")

    def unload(self) -> None:
        llm, self._llm = self._llm, None
        if llm is not None:
            llm.close()
            logger.info("llama.cpp model released", model=self._loaded_slug)
        self._loaded_slug = None
