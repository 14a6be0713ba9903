"""Tests for the model state machine and result types."""

import pytest

from libs.lifecycle import (
    FailureKind,
    InvalidStateTransition,
    ModelState,
    ModelStateMachine,
    OperationResult,
)
from libs.lifecycle.state import HISTORY_SIZE, TRANSITIONS


def test_starts_unloaded():
    machine = ModelStateMachine("qwen3-0.6")
    assert machine.state is ModelState.UNLOADED
    assert machine.history[0][0] is ModelState.UNLOADED


def test_happy_path_transitions():
    machine = ModelStateMachine("qwen3-0.6")

    assert machine.transition(ModelState.DOWNLOADING) is ModelState.UNLOADED
    machine.transition(ModelState.LOADING)
    machine.transition(ModelState.READY)
    machine.transition(ModelState.UNLOADED)

    assert [state for state, _ in machine.history] == [
        ModelState.UNLOADED,
        ModelState.DOWNLOADING,
        ModelState.LOADING,
        ModelState.READY,
        ModelState.UNLOADED,
    ]


@pytest.mark.parametrize("current,target", [
    (ModelState.UNLOADED, ModelState.READY),
    (ModelState.LOADING, ModelState.UNLOADED),
    (ModelState.READY, ModelState.LOADING),
    (ModelState.READY, ModelState.DOWNLOADING),
    (ModelState.FAILED, ModelState.READY),
])
def test_invalid_transitions_raise(current, target):
    machine = ModelStateMachine("qwen3-0.6", initial=current)

    with pytest.raises(InvalidStateTransition) as exc_info:
        machine.transition(target)

    assert exc_info.value.current is current
    assert exc_info.value.target is target
    assert machine.state is current


def test_every_state_can_fail_or_recover():
    for state, targets in TRANSITIONS.items():
        if state is ModelState.FAILED:
            assert ModelState.LOADING in targets
        else:
            assert ModelState.FAILED in targets


def test_operation_result_truthiness():
    ok = OperationResult.success(True)
    failed = OperationResult.failed(FailureKind.DOWNLOAD, "disk full")

    assert ok and ok.ok and ok.value is True
    assert not failed
    assert failed.value is None
    assert failed.failure is FailureKind.DOWNLOAD
    assert failed.error == "disk full"
    # Success without a payload is still truthy
    assert OperationResult.success()


def test_history_keeps_recent_transitions_only():
    machine = ModelStateMachine("qwen3-0.6")

    for _ in range(HISTORY_SIZE):
        machine.transition(ModelState.LOADING)
        machine.transition(ModelState.READY)
        machine.transition(ModelState.UNLOADED)

    assert len(machine.history) == HISTORY_SIZE
    assert machine.history[-1][0] is ModelState.UNLOADED
