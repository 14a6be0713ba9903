"""Model lifecycle manager.

Owns a single ``LMEngine`` handle and drives it through
download → initialize → infer. Every public operation returns an
``OperationResult``; exceptions from the engine boundary are logged and
converted, never propagated. Cancellation is re-raised after a
DOWNLOADING or LOADING state is moved to FAILED.

Design
- One manager per engine, constructed explicitly and injected where needed
- An ``asyncio.Lock`` serializes state changes and engine use, so concurrent
  callers cannot double-initialize or use the engine after unload
- Blocking engine calls run in a worker thread via ``asyncio.to_thread``
- The cached ``READY`` state is re-checked against ``engine.is_loaded()``
  before every use
"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional, Sequence

import numpy as np

from libs.common.config import LMConfig
from libs.common.logging import ServiceLogger, log_performance
from libs.common.metrics import MetricsCollector
from libs.engine.base import ChatMessage, CompletionParams, InitParams, LMEngine
from .results import FailureKind, OperationResult
from .state import ModelState, ModelStateMachine


class ModelLifecycleManager:
    """Manages download, initialization, inference and unload of one model.

    Parameters
    - engine: The engine instance to drive; owned by this manager
    - config: ``LMConfig`` providing the model slug and fixed parameters
    - metrics: Optional ``MetricsCollector``; a private one is created if omitted
    """

    def __init__(
        self,
        engine: LMEngine,
        config: LMConfig,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.engine = engine
        self._model_id = config.ml_lm_model
        self._context_size = config.ml_lm_context_size
        self._completion_params = CompletionParams(
            max_tokens=config.ml_lm_max_tokens,
            temperature=config.ml_lm_temperature,
        )
        self.metrics = metrics or MetricsCollector("model-lifecycle")
        self.log = ServiceLogger("lifecycle.model_manager", model=self._model_id)

        self._states = ModelStateMachine(self._model_id)
        self._lock = asyncio.Lock()
        self._publish_state()

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def state(self) -> ModelState:
        return self._states.state

    @property
    def is_ready(self) -> bool:
        return self._states.state is ModelState.READY

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(func, *args)

    def _publish_state(self) -> None:
        self.metrics.set_model_state(
            self._model_id,
            self._states.state.value,
            [s.value for s in ModelState],
        )

    def _set_state(self, target: ModelState, reason: str) -> None:
        if self._states.state is target:
            return
        self._states.transition(target, reason)
        self._publish_state()

    def _fail(self, reason: str) -> None:
        self._set_state(ModelState.FAILED, reason)

    def _abort(self, reason: str) -> None:
        # The worker thread may still be running; the engine is in an unknown state
        if self._states.state in (ModelState.DOWNLOADING, ModelState.LOADING):
            self.log.warning("Lifecycle operation cancelled", reason=reason)
            self._fail(reason)

    def _record(self, operation: str, outcome: str, start: float) -> None:
        self.metrics.record_lifecycle_operation(
            self._model_id, operation, outcome, time.time() - start
        )

    async def _query_downloaded(self) -> bool:
        models = await self._call(self.engine.list_models)
        target = next((m for m in models if m.slug == self._model_id), None)
        downloaded = target is not None and target.is_downloaded
        self.log.debug("Checked model download status", downloaded=downloaded)
        return downloaded

    async def _engine_loaded(self) -> bool:
        try:
            return bool(await self._call(self.engine.is_loaded))
        except Exception as e:
            self.log.warning("Engine load check failed", error=str(e))
            return False

    async def is_downloaded(self) -> bool:
        """Whether the model weights are present locally. Never cached."""
        try:
            return await self._query_downloaded()
        except Exception as e:
            self.log.error("Failed to query model catalog", error=str(e))
            return False

    async def download(self) -> OperationResult[bool]:
        """Download the model unless it is already present."""
        async with self._lock:
            return await self._download(then_load=False)

    async def _download(self, *, then_load: bool) -> OperationResult[bool]:
        # While READY the weights are already in memory; fetch without
        # touching the state.
        tracked = self._states.state is not ModelState.READY
        start = time.time()
        try:
            if await self._query_downloaded():
                self.log.debug("Model already downloaded")
                return OperationResult.success(True)

            if tracked:
                self._set_state(ModelState.DOWNLOADING, "download started")
            self.log.info("Starting model download")
            await self._call(self.engine.download_model, self._model_id)
        except asyncio.CancelledError:
            self._abort("download cancelled")
            raise
        except Exception as e:
            self.log.error("Error downloading model", error=str(e))
            if tracked:
                self._fail("download failed")
            self._record("download", "failure", start)
            return OperationResult.failed(FailureKind.DOWNLOAD, str(e))

        if tracked and not then_load:
            self._set_state(ModelState.UNLOADED, "download finished")
        self._record("download", "success", start)
        self.log.info("Model download finished", duration_ms=(time.time() - start) * 1000)
        return OperationResult.success(True)

    async def initialize(self) -> OperationResult[bool]:
        """Make the model ready, downloading it first if needed.

        Idempotent: returns immediately when the model is ready and the
        engine agrees it is loaded.
        """
        async with self._lock:
            return await self._ensure_ready()

    async def _ensure_ready(self) -> OperationResult[bool]:
        if self._states.state is ModelState.READY:
            if await self._engine_loaded():
                return OperationResult.success(True)
            self.log.warning("Engine reports model not loaded, re-initializing")
            self._set_state(ModelState.UNLOADED, "engine state drift")

        start = time.time()
        downloaded = await self._download(then_load=True)
        if not downloaded:
            self.log.error("Model download failed. Cannot initialize.")
            self._record("initialize", "failure", start)
            return OperationResult.failed(FailureKind.DOWNLOAD, downloaded.error)

        params = InitParams(model=self._model_id, context_size=self._context_size)
        try:
            self._set_state(ModelState.LOADING, "initialize")
            self.log.info("Initializing engine", context_size=params.context_size)
            await self._call(self.engine.initialize_model, params)
        except asyncio.CancelledError:
            self._abort("initialization cancelled")
            raise
        except Exception as e:
            self.log.exception("Error initializing engine", error=str(e))
            self._fail("initialization failed")
            self._record("initialize", "failure", start)
            return OperationResult.failed(FailureKind.INITIALIZATION, str(e))

        self._set_state(ModelState.READY, "initialized")
        self._record("initialize", "success", start)
        self.log.info("Engine initialized successfully")
        return OperationResult.success(True)

    async def generate_embedding(self, text: str) -> OperationResult[np.ndarray]:
        """Embed ``text``; the vector is returned as float32.

        Length and order match the engine output exactly.
        """
        async with self._lock:
            ready = await self._ensure_ready()
            if not ready:
                self.log.error(
                    "Failed to initialize model for embedding generation",
                    failure=ready.failure.value,
                )
                return OperationResult.failed(ready.failure, ready.error)

            start = time.time()
            try:
                result = await self._call(self.engine.generate_embedding, text)
                if result is not None and result.success:
                    vector = np.asarray(result.embeddings, dtype=np.float32)
                else:
                    error = result.error_message if result is not None else "engine returned no result"
                    self.log.error("Embedding generation failed", error=error)
                    self.metrics.record_embedding(self._model_id, "failure", time.time() - start)
                    return OperationResult.failed(FailureKind.INFERENCE, error)
            except Exception as e:
                self.log.error("Error generating embedding", error=str(e))
                self.metrics.record_embedding(self._model_id, "failure", time.time() - start)
                return OperationResult.failed(FailureKind.INFERENCE, str(e))

            duration = time.time() - start
            self.metrics.record_embedding(self._model_id, "success", duration)
            log_performance(
                "generate_embedding",
                duration * 1000,
                model=self._model_id,
                dimension=int(vector.shape[0]),
            )
            return OperationResult.success(vector)

    async def generate_completion(self, messages: Sequence[ChatMessage]) -> OperationResult[str]:
        """Generate a reply to ``messages`` with the fixed completion parameters."""
        async with self._lock:
            ready = await self._ensure_ready()
            if not ready:
                self.log.error(
                    "Failed to initialize model for completion",
                    failure=ready.failure.value,
                )
                return OperationResult.failed(ready.failure, ready.error)

            start = time.time()
            try:
                result = await self._call(
                    self.engine.generate_completion, list(messages), self._completion_params
                )
            except Exception as e:
                self.log.error("Error generating completion", error=str(e))
                self.metrics.record_completion(self._model_id, "failure", time.time() - start)
                return OperationResult.failed(FailureKind.INFERENCE, str(e))

            if result is None or not result.success:
                error = result.error_message if result is not None else "engine returned no result"
                self.log.error("Completion generation failed", error=error)
                self.metrics.record_completion(self._model_id, "failure", time.time() - start)
                return OperationResult.failed(FailureKind.INFERENCE, error)

            duration = time.time() - start
            self.metrics.record_completion(self._model_id, "success", duration)
            log_performance(
                "generate_completion",
                duration * 1000,
                model=self._model_id,
                max_tokens=self._completion_params.max_tokens,
            )
            return OperationResult.success(result.response or "")

    async def unload(self) -> OperationResult[bool]:
        """Release the engine's model. Best effort; never raises."""
        async with self._lock:
            start = time.time()
            try:
                await self._call(self.engine.unload)
                self._set_state(ModelState.UNLOADED, "unloaded")
            except Exception as e:
                self.log.exception("Error unloading engine", error=str(e))
                self._fail("unload failed")
                self._record("unload", "failure", start)
                return OperationResult.failed(FailureKind.UNLOAD, str(e))

            self._record("unload", "success", start)
            self.log.info("Engine unloaded")
            return OperationResult.success(True)

    async def status(self) -> Dict[str, Any]:
        """Snapshot of the lifecycle state for probes and the API."""
        return {
            "model": self._model_id,
            "state": self._states.state.value,
            "engine_loaded": await self._engine_loaded(),
            "state_changed_at": self._states.changed_at,
        }
