"""Workflow domain entity.

A workflow is a definition: a trigger type and an ordered list of steps.
The step list is an immutable snapshot; edits produce a new tuple that is
persisted with a full-replace save. Step ids are stable keys, so reordering
never changes which step is which.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from autoflow.domain.enums import MoveDirection
from autoflow.domain.exceptions import StepMoveException


@dataclass(frozen=True)
class StepEntity:
    """One ordered unit of work: action type, free-text label, type-specific config."""

    id: str
    type: str
    label: str = ""
    config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepEntity:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            label=str(data.get("label") or ""),
            config=dict(data.get("config") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "config": dict(self.config),
        }


@dataclass(frozen=True)
class WorkflowEntity:
    """Domain entity for a workflow definition (trigger + ordered steps + counters)."""

    id: str
    org_id: str
    name: str
    description: str | None
    trigger_type: str
    is_active: bool
    steps: tuple[StepEntity, ...]
    execution_count: int = 0
    last_executed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def move_step(
    steps: tuple[StepEntity, ...], step_id: str, direction: MoveDirection
) -> tuple[StepEntity, ...]:
    """Swap a step with its neighbour above or below; return the new snapshot.

    Raises:
        ValueError: If no step has the given id.
        StepMoveException: If the step is already first (up) or last (down).
    """
    index = next((i for i, s in enumerate(steps) if s.id == step_id), None)
    if index is None:
        raise ValueError(f"Unknown step id: {step_id}")
    target = index - 1 if direction == MoveDirection.UP else index + 1
    if target < 0 or target >= len(steps):
        raise StepMoveException(step_id, direction.value)
    reordered = list(steps)
    reordered[index], reordered[target] = reordered[target], reordered[index]
    return tuple(reordered)
