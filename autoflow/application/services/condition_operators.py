"""Comparison semantics shared by structured and expression conditions.

Values come from event payloads and from the dashboard editor, where every
config value is a string. Equality therefore tries numbers first and falls
back to text; ordering comparisons only apply to numbers. A missing field is
None: every comparison against it is false, except neq against a non-null
value.
"""

from __future__ import annotations

import math
from typing import Any

from autoflow.domain.enums import ConditionOperator


def resolve_path(data: Any, path: str) -> Any:
    """Resolve a dot path (e.g. lead.score) in nested mappings; None when absent."""
    if not path:
        return None
    current = data
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
    return current


def to_number(value: Any) -> float | None:
    """Numeric coercion: ints, floats, and numeric strings; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _equals(actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return False
    left, right = to_number(actual), to_number(expected)
    if left is not None and right is not None:
        return left == right
    return _to_text(actual) == _to_text(expected)


def _ordered(actual: Any, expected: Any, operator: ConditionOperator) -> bool:
    left, right = to_number(actual), to_number(expected)
    if left is None or right is None:
        return False
    if operator == ConditionOperator.GT:
        return left > right
    if operator == ConditionOperator.LT:
        return left < right
    if operator == ConditionOperator.GTE:
        return left >= right
    return left <= right


def compare(actual: Any, operator: ConditionOperator, expected: Any) -> bool:
    """Apply operator to a resolved field value and an expected value."""
    if operator == ConditionOperator.EQ:
        return _equals(actual, expected)
    if operator == ConditionOperator.NEQ:
        if actual is None:
            return expected is not None
        return not _equals(actual, expected)
    if operator == ConditionOperator.CONTAINS:
        if not isinstance(actual, str) or expected is None:
            return False
        return _to_text(expected) in actual
    return _ordered(actual, expected, operator)
