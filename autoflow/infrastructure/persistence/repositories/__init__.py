"""SQLAlchemy repository implementations."""

from autoflow.infrastructure.persistence.repositories.workflow_repo import (
    ExecutionRunRepository,
    RunContinuationRepository,
    WorkflowRepository,
)

__all__ = [
    "WorkflowRepository",
    "ExecutionRunRepository",
    "RunContinuationRepository",
]
