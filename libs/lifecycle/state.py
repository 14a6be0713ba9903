"""Model lifecycle state machine.

States and allowed transitions:

- ``UNLOADED``    → DOWNLOADING, LOADING, FAILED
- ``DOWNLOADING`` → UNLOADED, LOADING, FAILED
- ``LOADING``     → READY, FAILED
- ``READY``       → UNLOADED, FAILED
- ``FAILED``      → DOWNLOADING, LOADING, UNLOADED

``READY`` is only trusted together with the engine's own loaded flag; the
manager drops back to ``UNLOADED`` when the two disagree.
"""

import time
from collections import deque
from enum import Enum
from typing import Deque, Dict, FrozenSet, Optional, Tuple
import structlog

logger = structlog.get_logger("lifecycle.state")

# Recent transitions kept per machine
HISTORY_SIZE = 32


class ModelState(Enum):
    """Lifecycle states of the managed model."""
    UNLOADED = "unloaded"
    DOWNLOADING = "downloading"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


TRANSITIONS: Dict[ModelState, FrozenSet[ModelState]] = {
    ModelState.UNLOADED: frozenset({ModelState.DOWNLOADING, ModelState.LOADING, ModelState.FAILED}),
    ModelState.DOWNLOADING: frozenset({ModelState.UNLOADED, ModelState.LOADING, ModelState.FAILED}),
    ModelState.LOADING: frozenset({ModelState.READY, ModelState.FAILED}),
    ModelState.READY: frozenset({ModelState.UNLOADED, ModelState.FAILED}),
    ModelState.FAILED: frozenset({ModelState.DOWNLOADING, ModelState.LOADING, ModelState.UNLOADED}),
}


class InvalidStateTransition(Exception):
    """Raised when a transition is not in ``TRANSITIONS``."""

    def __init__(self, current: ModelState, target: ModelState):
        super().__init__(f"Invalid model state transition {current.value} -> {target.value}")
        self.current = current
        self.target = target


class ModelStateMachine:
    """Tracks the current ``ModelState`` and validates transitions.

    Parameters
    - model_name: Used only for log context
    - initial: Starting state (``UNLOADED`` by default)
    """

    def __init__(self, model_name: str, initial: ModelState = ModelState.UNLOADED):
        self.model_name = model_name
        self._state = initial
        self._changed_at = time.time()
        self.history: Deque[Tuple[ModelState, float]] = deque(
            [(initial, self._changed_at)], maxlen=HISTORY_SIZE
        )

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def changed_at(self) -> float:
        return self._changed_at

    def can_transition(self, target: ModelState) -> bool:
        return target in TRANSITIONS[self._state]

    def transition(self, target: ModelState, reason: Optional[str] = None) -> ModelState:
        """Move to ``target``; returns the previous state."""
        if not self.can_transition(target):
            raise InvalidStateTransition(self._state, target)

        previous = self._state
        self._state = target
        self._changed_at = time.time()
        self.history.append((target, self._changed_at))

        logger.debug(
            "Model state changed",
            model=self.model_name,
            from_state=previous.value,
            to_state=target.value,
            reason=reason,
        )
        return previous
