"""Application use cases (orchestrate repositories and domain rules)."""

from autoflow.application.use_cases.workflows import (
    WorkflowDefinitionService,
    validate_definition,
)

__all__ = ["WorkflowDefinitionService", "validate_definition"]
