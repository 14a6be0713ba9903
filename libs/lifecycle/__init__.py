"""Model lifecycle management.

Exports the ``ModelLifecycleManager`` which sequences download,
initialization, inference and unload against an ``LMEngine``, together with
the state machine and result types it exposes.
"""

from .manager import ModelLifecycleManager
from .results import FailureKind, OperationResult
from .state import InvalidStateTransition, ModelState, ModelStateMachine

__all__ = [
    "FailureKind",
    "InvalidStateTransition",
    "ModelLifecycleManager",
    "ModelState",
    "ModelStateMachine",
    "OperationResult",
]
