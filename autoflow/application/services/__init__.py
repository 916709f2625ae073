"""Pure application services (no I/O)."""

from autoflow.application.services.condition_evaluator import ConditionEvaluator

__all__ = ["ConditionEvaluator"]
