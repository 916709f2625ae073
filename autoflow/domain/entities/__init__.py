"""Domain entities and aggregates.

Pure domain models; no ORM or persistence concerns.
"""

from autoflow.domain.entities.event import DomainEvent
from autoflow.domain.entities.run import ExecutionRunEntity, RunContinuation
from autoflow.domain.entities.workflow import StepEntity, WorkflowEntity, move_step

__all__ = [
    "DomainEvent",
    "ExecutionRunEntity",
    "RunContinuation",
    "StepEntity",
    "WorkflowEntity",
    "move_step",
]
