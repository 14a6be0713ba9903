"""Language-model engine abstractions and backends.

Exports the ``LMEngine`` contract and the plain data types exchanged with
it. Concrete backends (``llama_cpp``, ``sentence_transformer``) are imported
lazily by the factory so heavy runtimes load only when selected.
"""

from .base import (
    CatalogModel,
    ChatMessage,
    CompletionParams,
    CompletionResult,
    EmbeddingResult,
    InitParams,
    LMEngine,
)

__all__ = [
    "CatalogModel",
    "ChatMessage",
    "CompletionParams",
    "CompletionResult",
    "EmbeddingResult",
    "InitParams",
    "LMEngine",
]
