"""Tests for common utilities."""

from prometheus_client import CollectorRegistry

from libs.common.config import BaseConfig, LMConfig, get_config
from libs.common.logging import ServiceLogger, configure_logging
from libs.common.metrics import MetricsCollector


def test_config_loading():
    """Test configuration loading."""
    config = BaseConfig()
    assert config.ml_env == "local"
    assert config.ml_log_level == "INFO"
    assert config.ml_log_format == "json"


def test_lm_config_defaults():
    """Test LM configuration defaults."""
    config = LMConfig()
    assert config.ml_lm_model == "qwen3-0.6"
    assert config.ml_lm_backend == "llama_cpp"
    assert config.ml_lm_context_size == 512
    assert config.ml_lm_max_tokens == 200
    assert config.ml_lm_temperature == 0.7
    assert config.ml_lm_preload is False


def test_lm_config_reads_environment(monkeypatch):
    monkeypatch.setenv("ML_LM_CONTEXT_SIZE", "1024")
    monkeypatch.setenv("ml_lm_backend", "sentence_transformers")

    config = LMConfig()

    assert config.ml_lm_context_size == 1024
    assert config.ml_lm_backend == "sentence_transformers"


def test_get_config():
    assert isinstance(get_config("lm"), LMConfig)
    assert type(get_config("unknown")) is BaseConfig


def test_logging_configuration():
    """Test logging configuration."""
    # This should not raise an exception
    configure_logging("test-service", "INFO", "json")
    configure_logging("test-service", "debug", "console")


def test_service_logger_bind_keeps_original():
    logger = ServiceLogger("lifecycle.test", model="qwen3-0.6")
    bound = logger.bind(state="ready")

    assert bound.context == {"model": "qwen3-0.6", "state": "ready"}
    assert logger.context == {"model": "qwen3-0.6"}


def test_metrics_collector():
    """Test metrics collector."""
    collector = MetricsCollector("test-service", registry=CollectorRegistry())
    assert collector.service_name == "test-service"

    collector.record_http_request("POST", "/api/v1/embed", 200, 0.1)
    collector.record_lifecycle_operation("qwen3-0.6", "initialize", "success", 1.5)
    collector.record_embedding("qwen3-0.6", "success", 0.05)
    collector.set_model_state("qwen3-0.6", "ready", ["unloaded", "ready"])

    metrics = collector.get_metrics()
    assert isinstance(metrics, str)
    assert "http_requests_total" in metrics
    assert "lm_lifecycle_operations_total" in metrics

    registry = collector.registry
    assert registry.get_sample_value(
        "lm_model_state", {"model_name": "qwen3-0.6", "state": "ready"}
    ) == 1.0
    assert registry.get_sample_value(
        "lm_model_state", {"model_name": "qwen3-0.6", "state": "unloaded"}
    ) == 0.0
