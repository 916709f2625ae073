"""DTOs passed between the step executor, action handlers, and callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class StepContext:
    """Per-run data bag handed to action handlers.

    data is the triggering event payload (e.g. {"lead": {...}}); handlers may
    update it (e.g. a new status or tag) so later steps and conditions see
    the change. It is persisted only as part of a wait continuation.
    """

    org_id: str
    run_id: str
    workflow_id: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one action handler call."""

    success: bool
    detail: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def ok(cls, **detail: Any) -> ActionResult:
        return cls(success=True, detail=detail)

    @classmethod
    def failed(cls, error: str, **detail: Any) -> ActionResult:
        return cls(success=False, detail=detail, error=error)


@dataclass(frozen=True)
class ExecutionAck:
    """Acknowledgement of a manual execute request; the outcome shows up in run history."""

    workflow_id: str
    run_id: str
    accepted: bool = True
