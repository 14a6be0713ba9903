"""Shared libraries for the on-device LM platform.

Subpackages:
- ``libs.common``: configuration, logging and metrics.
- ``libs.engine``: the engine contract and its llama.cpp / sentence-transformers backends.
- ``libs.lifecycle``: the model lifecycle manager, state machine and result types.

Notes:
- Avoid service-specific logic; keep modules cohesive and broadly useful.
"""
