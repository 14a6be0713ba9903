"""Configuration management for the on-device LM platform.

This module centralizes environment-driven configuration for the language
model service and the lifecycle manager. It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults.

Highlights
- Strongly‑typed settings with sensible defaults
- One place to discover commonly used environment variables
- Field names double as (case-insensitive) environment variable names

Usage
- Inject the config in your service entrypoint: ``config = LMConfig()``
- Or select dynamically: ``config = get_config("lm")``
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class for all services.

    Parameters are read from the process environment with the given names.
    Defaults keep local development convenient while still being explicit.

    Notes
    - Add new shared settings here so downstream services inherit them.
    - Prefer a declared field over reading ``os.environ`` directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ml_env: str = Field(default="local", description="Deployment environment name")

    # Logging
    ml_log_level: str = Field(default="INFO", description="Root log level")
    ml_log_format: str = Field(default="json", description="json or console")


class LMConfig(BaseConfig):
    """Configuration for the on-device language model.

    The model slug is the identifier the lifecycle manager fetches and loads;
    it is read once per manager. Repo and file name tell the llama.cpp
    backend where to download GGUF weights from.
    """

    ml_lm_backend: str = Field(default="llama_cpp", description="Engine backend: llama_cpp or sentence_transformers")
    ml_lm_model: str = Field(default="qwen3-0.6", description="Model slug fetched and loaded by the engine")
    ml_lm_model_repo: str = Field(default="Qwen/Qwen3-0.6B-GGUF", description="Hugging Face repo holding the weights")
    ml_lm_model_file: str = Field(default="Qwen3-0.6B-Q8_0.gguf", description="GGUF file inside the repo (llama_cpp only)")
    ml_lm_models_dir: str = Field(default="models", description="Local directory for downloaded GGUF files")
    ml_lm_hf_cache_dir: Optional[str] = Field(default=None, description="Override for the Hugging Face cache directory")
    ml_lm_threads: Optional[int] = Field(default=None, description="CPU threads used by llama.cpp")

    # Small context keeps RAM bounded for embedding-only use
    ml_lm_context_size: int = Field(default=512, description="Context window passed at initialization")
    ml_lm_max_tokens: int = Field(default=200, description="Completion token budget")
    ml_lm_temperature: float = Field(default=0.7, description="Completion sampling temperature")

    # Service
    ml_lm_preload: bool = Field(default=False, description="Initialize the model at service startup")
    ml_lm_port: int = Field(default=9008, description="HTTP port of the LM service")
    ml_lm_service_url: str = Field(default="http://localhost:9008", description="Public URL of the LM service")


def get_config(service_name: str) -> BaseConfig:
    """Get configuration for a specific service.

    Parameters
    - service_name: ``lm`` or ``lm-service``; anything else yields ``BaseConfig``

    Returns
    - A concrete ``BaseConfig`` subclass pre‑wired to read the right env vars.
    """
    config_map = {
        "lm": LMConfig,
        "lm-service": LMConfig,
    }

    # Default to ``BaseConfig`` to avoid surprising crashes for unknown names.
    config_class = config_map.get(service_name, BaseConfig)
    return config_class()
