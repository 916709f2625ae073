"""Tests for domain exceptions (error_code, message, details)."""

import pytest

from autoflow.domain.exceptions import (
    ActionExecutionError,
    AutoflowException,
    ConditionSyntaxError,
    ResourceNotFoundException,
    RunFatalError,
    StepMoveException,
    ValidationException,
    WorkflowInactiveException,
)


def test_autoflow_exception_default_error_code() -> None:
    """Base AutoflowException uses class name as error_code when not provided."""
    exc = AutoflowException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "AutoflowException"
    assert exc.details == {}


def test_autoflow_exception_to_dict() -> None:
    exc = AutoflowException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.to_dict() == {
        "error": "CUSTOM",
        "message": "Oops",
        "details": {"key": "value"},
    }


def test_validation_exception() -> None:
    """ValidationException sets VALIDATION_ERROR and optional field in details."""
    exc = ValidationException("Workflow name must not be empty", field="name")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "name"}


def test_validation_exception_without_field() -> None:
    exc = ValidationException("bad")
    assert exc.details == {}


def test_resource_not_found() -> None:
    exc = ResourceNotFoundException("workflow", "wf1")
    assert exc.error_code == "RESOURCE_NOT_FOUND"
    assert "wf1" in exc.message
    assert exc.details == {"resource_type": "workflow", "resource_id": "wf1"}


def test_workflow_inactive() -> None:
    exc = WorkflowInactiveException("wf1")
    assert exc.error_code == "WORKFLOW_INACTIVE"
    assert exc.details["workflow_id"] == "wf1"


def test_step_move_exception_is_validation_error() -> None:
    """Moving past either end is reported as a validation error with step and direction."""
    exc = StepMoveException("s1", "up")
    assert isinstance(exc, ValidationException)
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "steps", "step_id": "s1", "direction": "up"}


def test_action_execution_error() -> None:
    exc = ActionExecutionError("send_email", "no contact email in context")
    assert exc.error_code == "ACTION_EXECUTION_ERROR"
    assert exc.message == "send_email failed: no contact email in context"
    assert exc.details["step_type"] == "send_email"


@pytest.mark.parametrize("position", [None, 4])
def test_condition_syntax_error_position(position: int | None) -> None:
    exc = ConditionSyntaxError("a && ", "unexpected end", position)
    assert exc.error_code == "CONDITION_SYNTAX_ERROR"
    assert ("position" in exc.details) is (position is not None)


def test_run_fatal_error() -> None:
    exc = RunFatalError("run1", "unknown step type 'teleport'")
    assert exc.error_code == "RUN_FATAL_ERROR"
    assert exc.details == {"run_id": "run1", "reason": "unknown step type 'teleport'"}
