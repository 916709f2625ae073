"""Expression-mode conditions: tokenizer, parser, and evaluation over the run context."""

import pytest

from autoflow.application.services.condition_expression import (
    evaluate_expression,
    tokenize,
)
from autoflow.domain.exceptions import ConditionSyntaxError

CONTEXT = {
    "lead": {
        "score": 85,
        "status": "qualified",
        "source": "web",
        "note": "asked about pricing",
        "owner": None,
        "vip": True,
    },
    "message": {"channel": "whatsapp"},
}


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("lead.score > 80 && lead.status == 'qualified'", True),
        ("lead.score > 90 && lead.status == 'qualified'", False),
        ("lead.score > 90 || lead.source == \"web\"", True),
        ("!(lead.score > 90)", True),
        ("lead.score >= 85 && lead.score <= 85", True),
        ("lead.score != 85", False),
        ("lead.note contains 'pricing'", True),
        ("lead.owner == null", False),
        ("lead.owner != 'u1'", True),
        ("lead.vip", True),
        ("lead.vip == true", True),
        ("lead.missing", False),
        ("lead.missing > 0", False),
        ("(lead.score > 90 || message.channel == 'whatsapp') && lead.status == 'qualified'", True),
        ("lead.score>80&&lead.source=='web'", True),
        ("lead.score > -5", True),
        ("lead.score == 85.0", True),
    ],
)
def test_evaluate(expression: str, expected: bool) -> None:
    assert evaluate_expression(expression, CONTEXT) is expected


def test_and_binds_tighter_than_or() -> None:
    # false || (true && true)
    assert evaluate_expression("lead.score > 100 || lead.vip && lead.source == 'web'", CONTEXT)


def test_escaped_quote_in_string_literal() -> None:
    context = {"lead": {"name": "O'Brien"}}
    assert evaluate_expression("lead.name == 'O\\'Brien'", context)


def test_tokenize_keeps_positions() -> None:
    tokens = tokenize("a.b >= 2")
    assert [(t.kind, t.text, t.position) for t in tokens] == [
        ("name", "a.b", 0),
        ("op", ">=", 4),
        ("number", "2", 7),
    ]


@pytest.mark.parametrize(
    "expression",
    [
        "",
        "lead.score >",
        "(lead.score > 1",
        "lead.score = 1",
        "lead.score == 1 lead.status",
        "&& lead.vip",
        "contains == 1",
        "lead.score > 1; drop",
        "__import__('os')",
    ],
)
def test_malformed_expressions_raise(expression: str) -> None:
    with pytest.raises(ConditionSyntaxError) as exc_info:
        evaluate_expression(expression, CONTEXT)
    assert exc_info.value.error_code == "CONDITION_SYNTAX_ERROR"


def test_overlong_expression_rejected() -> None:
    with pytest.raises(ConditionSyntaxError):
        evaluate_expression(" || ".join(["lead.vip"] * 400), CONTEXT)


@pytest.mark.parametrize(
    "expression",
    ["!" * 1500 + "true", "(" * 500 + "true" + ")" * 500, "!(" * 40 + "true" + ")" * 40],
)
def test_deep_nesting_rejected(expression: str) -> None:
    with pytest.raises(ConditionSyntaxError) as exc_info:
        evaluate_expression(expression, CONTEXT)
    assert exc_info.value.details["reason"] == "nesting too deep"


def test_moderate_nesting_still_parses() -> None:
    assert evaluate_expression("!" * 10 + "true", CONTEXT) is True
    assert evaluate_expression("(" * 20 + "lead.vip" + ")" * 20, CONTEXT) is True
