"""DTOs for workflow definitions and paged queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from autoflow.domain.entities import StepEntity

T = TypeVar("T")


@dataclass(frozen=True)
class WorkflowDefinition:
    """Full-replace payload for saving a workflow (name, description, trigger, steps)."""

    name: str
    trigger_type: str
    steps: tuple[StepEntity, ...] = ()
    description: str | None = None


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the total matching count."""

    items: list[T]
    total: int
    page: int
    page_size: int
