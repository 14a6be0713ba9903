"""Base language-model engine interface.

Defines the contract the lifecycle manager depends on, independent of the
runtime doing the actual work (llama.cpp, sentence-transformers, ...).

Methods are synchronous: engines wrap blocking native calls, and callers are
expected to run them off the event loop.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class CatalogModel:
    """A model the engine knows about and whether its weights are local."""
    slug: str
    is_downloaded: bool


@dataclass(frozen=True)
class InitParams:
    """Parameters passed to ``LMEngine.initialize_model``."""
    model: str
    context_size: int


@dataclass(frozen=True)
class ChatMessage:
    """A single conversational turn."""
    role: str
    content: str


@dataclass(frozen=True)
class CompletionParams:
    """Sampling parameters passed to ``LMEngine.generate_completion``."""
    max_tokens: int
    temperature: float


@dataclass
class EmbeddingResult:
    """Engine-reported embedding outcome (double precision values)."""
    success: bool
    embeddings: List[float] = field(default_factory=list)
    error_message: Optional[str] = None


@dataclass
class CompletionResult:
    """Engine-reported completion outcome."""
    success: bool
    response: Optional[str] = None
    error_message: Optional[str] = None


class LMEngine(ABC):
    """Abstract base class for on-device language-model engines.

    An engine owns at most one loaded model at a time. Generation failures
    are reported through the result objects; download and initialization
    failures are raised.
    """

    @abstractmethod
    def list_models(self) -> List[CatalogModel]:
        """Return the catalog of models this engine can fetch."""
        pass

    @abstractmethod
    def download_model(self, slug: str) -> None:
        """Fetch the weights for ``slug`` into local storage."""
        pass

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether a model is currently loaded."""
        pass

    @abstractmethod
    def initialize_model(self, params: InitParams) -> None:
        """Load the model named in ``params`` into memory."""
        pass

    @abstractmethod
    def generate_embedding(self, text: str) -> EmbeddingResult:
        """Embed ``text`` with the loaded model."""
        pass

    @abstractmethod
    def generate_completion(
        self,
        messages: Sequence[ChatMessage],
        params: CompletionParams
    ) -> CompletionResult:
        """Generate a reply to ``messages`` with the loaded model."""
        pass

    @abstractmethod
    def unload(self) -> None:
        """Release the loaded model, if any."""
        pass
