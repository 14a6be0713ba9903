"""API subpackage for the LM service.

Contains FastAPI routers that expose endpoints for:
- Model lifecycle (``/model``, ``/model/download``, ``/model/initialize``, ``/model/unload``)
- Embedding generation (``/embed``)
- Chat completion (``/complete``)
"""
