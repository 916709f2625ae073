"""Data transfer objects (no dependency on ORM)."""

from autoflow.application.dtos.execution import ActionResult, ExecutionAck, StepContext
from autoflow.application.dtos.workflow import Page, WorkflowDefinition

__all__ = [
    "ActionResult",
    "ExecutionAck",
    "StepContext",
    "Page",
    "WorkflowDefinition",
]
