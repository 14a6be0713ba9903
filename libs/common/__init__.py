"""Common utilities shared across the platform.

Includes:
- ``config``: pydantic-settings configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.

Import pattern:
- from libs.common.config import LMConfig
- from libs.common.logging import configure_logging
"""
