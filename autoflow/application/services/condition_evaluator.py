"""Evaluates condition-step configs against a run context."""

from __future__ import annotations

from typing import Any

from autoflow.application.dtos.step_config import ConditionConfig, parse_step_config
from autoflow.application.services.condition_expression import evaluate_expression
from autoflow.application.services.condition_operators import compare, resolve_path
from autoflow.domain.enums import StepType
from autoflow.domain.exceptions import ActionExecutionError


class ConditionEvaluator:
    """evaluate(context, config) -> bool for structured or expression conditions.

    A non-empty expression is evaluated instead of the field/operator/value
    triple. Raises ConditionSyntaxError for a malformed expression and
    ActionExecutionError when the config names neither form.
    """

    def evaluate(self, context: dict[str, Any], config: dict[str, Any]) -> bool:
        condition = parse_step_config(ConditionConfig, StepType.CONDITION, config)
        expression = (condition.expression or "").strip()
        if expression:
            return evaluate_expression(expression, context)
        if not condition.field or condition.operator is None:
            raise ActionExecutionError(
                StepType.CONDITION.value,
                "condition needs an expression or a field and operator",
            )
        actual = resolve_path(context, condition.field.strip())
        return compare(actual, condition.operator, condition.value)
