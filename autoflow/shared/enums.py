"""Shared enumerations for the Autoflow application.

Cross-cutting enums used by application and infrastructure (e.g. run
status). Workflow vocabulary (trigger types, step types, operators) lives
in autoflow.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ExecutionRunStatus(_ValuesMixin, str, Enum):
    """Execution run lifecycle status. running is initial; the others are terminal."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionRunStatus.RUNNING


class StepOutcome(_ValuesMixin, str, Enum):
    """Outcome recorded in a run's step log."""

    SUCCESS = "success"
    FAILED = "failed"
    SUSPENDED = "suspended"
    SHORT_CIRCUIT = "short_circuit"
