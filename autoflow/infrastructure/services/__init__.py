"""Infrastructure services: the workflow execution engine and its default collaborators."""

from autoflow.infrastructure.services.engine import WorkflowEngine, build_engine

__all__ = ["WorkflowEngine", "build_engine"]
