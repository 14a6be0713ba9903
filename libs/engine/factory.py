"""Engine factory for creating backend implementations.

Centralizes creation of concrete ``LMEngine`` backends so callers don't
depend on implementation details. Backend modules are imported inside the
branch that needs them; llama.cpp and torch are heavy to import.
"""

from enum import Enum
import structlog

from libs.common.config import LMConfig
from .base import LMEngine

logger = structlog.get_logger("engine.factory")


class EngineType(Enum):
    """Supported engine backends."""
    LLAMA_CPP = "llama_cpp"
    SENTENCE_TRANSFORMERS = "sentence_transformers"


class EngineFactory:
    """Factory for creating engine instances."""

    @staticmethod
    def create(engine_type: EngineType, config: LMConfig) -> LMEngine:
        """Create an engine whose catalog contains the configured model."""

        if engine_type == EngineType.LLAMA_CPP:
            from .llama_cpp import GGUFSource, LlamaCppEngine

            catalog = {
                config.ml_lm_model: GGUFSource(
                    repo_id=config.ml_lm_model_repo,
                    filename=config.ml_lm_model_file,
                )
            }
            return LlamaCppEngine(
                catalog=catalog,
                models_dir=config.ml_lm_models_dir,
                n_threads=config.ml_lm_threads,
            )

        elif engine_type == EngineType.SENTENCE_TRANSFORMERS:
            from .sentence_transformer import SentenceTransformerEngine

            return SentenceTransformerEngine(
                catalog={config.ml_lm_model: config.ml_lm_model_repo},
                cache_dir=config.ml_lm_hf_cache_dir,
            )

        else:
            raise ValueError(f"Unsupported engine type: {engine_type}")


def create_engine_from_config(config: LMConfig) -> LMEngine:
    """Create the engine selected by ``config.ml_lm_backend``."""
    try:
        engine_type = EngineType(config.ml_lm_backend)
    except ValueError:
        raise ValueError(f"Unsupported engine type: {config.ml_lm_backend}")

    logger.info(
        "Creating engine",
        backend=engine_type.value,
        model=config.ml_lm_model,
        repo_id=config.ml_lm_model_repo,
    )
    return EngineFactory.create(engine_type, config)
