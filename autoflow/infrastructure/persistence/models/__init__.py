"""ORM models. Importing this package registers every table on Base.metadata."""

from autoflow.infrastructure.persistence.models.workflow import (
    ExecutionRun,
    RunContinuationRecord,
    Workflow,
)

__all__ = ["Workflow", "ExecutionRun", "RunContinuationRecord"]
