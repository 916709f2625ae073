"""Domain exceptions for the Autoflow application.

Defines domain-level exceptions that represent business rule violations
and run failures. These exceptions are independent of infrastructure
concerns. Presentation layer maps them to HTTP responses in exception
handlers.
"""

from typing import Any


class AutoflowException(Exception):
    """Base exception for all Autoflow application errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(AutoflowException):
    """Raised when input validation fails (e.g. empty name, unknown trigger or step type)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(AutoflowException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'workflow', 'execution_run').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class WorkflowInactiveException(AutoflowException):
    """Raised when manual execution is requested for an inactive workflow and that is disallowed."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(
            f"Workflow is inactive: {workflow_id}",
            "WORKFLOW_INACTIVE",
            {"workflow_id": workflow_id},
        )


class StepMoveException(ValidationException):
    """Raised when a step cannot move further in the requested direction."""

    def __init__(self, step_id: str, direction: str) -> None:
        super().__init__(
            f"Step {step_id} cannot move {direction}", field="steps"
        )
        self.details["step_id"] = step_id
        self.details["direction"] = direction


class ActionExecutionError(AutoflowException):
    """Raised by an action handler when its step fails.

    Isolated to the step: the executor records it and continues with the
    next step.
    """

    def __init__(self, step_type: str, reason: str) -> None:
        super().__init__(
            f"{step_type} failed: {reason}",
            "ACTION_EXECUTION_ERROR",
            {"step_type": step_type, "reason": reason},
        )


class ConditionSyntaxError(AutoflowException):
    """Raised when a condition expression cannot be tokenized or parsed."""

    def __init__(self, expression: str, reason: str, position: int | None = None) -> None:
        details: dict[str, Any] = {"expression": expression, "reason": reason}
        if position is not None:
            details["position"] = position
        super().__init__(
            f"Invalid condition expression: {reason}",
            "CONDITION_SYNTAX_ERROR",
            details,
        )


class RunFatalError(AutoflowException):
    """Raised for a fault inside the executor itself; aborts the run."""

    def __init__(self, run_id: str, reason: str) -> None:
        super().__init__(
            f"Run {run_id} aborted: {reason}",
            "RUN_FATAL_ERROR",
            {"run_id": run_id, "reason": reason},
        )
