"""Typed step config parsing: editor alias keys, string numerals, and error reporting."""

import pytest

from autoflow.application.dtos.step_config import (
    MAX_WAIT_MINUTES,
    AddTagConfig,
    AiReplyConfig,
    AssignAgentConfig,
    AssignLeadConfig,
    ConditionConfig,
    MessageConfig,
    UpdateStatusConfig,
    WaitConfig,
    parse_step_config,
)
from autoflow.domain.enums import ConditionOperator, StepType
from autoflow.domain.exceptions import ActionExecutionError


def test_wait_minutes_from_string() -> None:
    cfg = parse_step_config(WaitConfig, StepType.WAIT, {"minutes": "30"})
    assert cfg.minutes == 30.0


def test_wait_negative_minutes_rejected() -> None:
    with pytest.raises(ActionExecutionError) as exc_info:
        parse_step_config(WaitConfig, StepType.WAIT, {"minutes": -1})
    assert "minutes" in exc_info.value.message


def test_wait_missing_minutes_rejected() -> None:
    with pytest.raises(ActionExecutionError):
        parse_step_config(WaitConfig, StepType.WAIT, {})


@pytest.mark.parametrize("minutes", ["inf", "nan", float("inf"), "1e308", 10**12])
def test_wait_unbounded_minutes_rejected(minutes) -> None:
    with pytest.raises(ActionExecutionError) as exc_info:
        parse_step_config(WaitConfig, StepType.WAIT, {"minutes": minutes})
    assert "minutes" in exc_info.value.message


def test_wait_one_year_accepted() -> None:
    cfg = parse_step_config(WaitConfig, StepType.WAIT, {"minutes": MAX_WAIT_MINUTES})
    assert cfg.minutes == MAX_WAIT_MINUTES


def test_ai_reply_aliases_and_numerals() -> None:
    cfg = parse_step_config(
        AiReplyConfig,
        StepType.AI_REPLY,
        {"prompt": "Reply to {{ lead.name }}", "maxTokens": "200", "temperature": "0.2"},
    )
    assert cfg.max_tokens == 200
    assert cfg.temperature == pytest.approx(0.2)


def test_ai_reply_defaults() -> None:
    cfg = parse_step_config(AiReplyConfig, StepType.AI_REPLY, {"prompt": "hi"})
    assert cfg.max_tokens == 500
    assert cfg.temperature == pytest.approx(0.7)


def test_ai_reply_temperature_out_of_range() -> None:
    with pytest.raises(ActionExecutionError):
        parse_step_config(AiReplyConfig, StepType.AI_REPLY, {"prompt": "hi", "temperature": 3})


@pytest.mark.parametrize("key", ["targetStatus", "target", "status", "target_status"])
def test_update_status_aliases(key: str) -> None:
    cfg = parse_step_config(UpdateStatusConfig, StepType.UPDATE_STATUS, {key: "qualified"})
    assert cfg.target_status == "qualified"


@pytest.mark.parametrize("key", ["tagName", "tag", "tag_name"])
def test_add_tag_aliases(key: str) -> None:
    assert parse_step_config(AddTagConfig, StepType.ADD_TAG, {key: "vip"}).tag_name == "vip"


def test_assign_configs() -> None:
    assert parse_step_config(AssignAgentConfig, StepType.ASSIGN_AGENT, {"agentId": "u1"}).agent_id == "u1"
    assert parse_step_config(AssignLeadConfig, StepType.ASSIGN_LEAD, {"assignTo": "u2"}).assign_to == "u2"


def test_assign_agent_requires_agent() -> None:
    with pytest.raises(ActionExecutionError) as exc_info:
        parse_step_config(AssignAgentConfig, StepType.ASSIGN_AGENT, {"agentId": ""})
    assert exc_info.value.details["step_type"] == "assign_agent"


def test_message_content_alias_and_unknown_keys_ignored() -> None:
    cfg = parse_step_config(
        MessageConfig, StepType.SEND_MESSAGE, {"content": "Hello", "color": "blue"}
    )
    assert cfg.message == "Hello"


def test_condition_blank_strings_become_none() -> None:
    cfg = parse_step_config(
        ConditionConfig,
        StepType.CONDITION,
        {"condField": " ", "condOp": "", "condValue": "x", "expression": ""},
    )
    assert cfg.field is None
    assert cfg.operator is None
    assert cfg.expression is None
    assert cfg.value == "x"


def test_condition_operator_enum() -> None:
    cfg = parse_step_config(ConditionConfig, StepType.CONDITION, {"operator": "contains"})
    assert cfg.operator is ConditionOperator.CONTAINS


def test_none_config_treated_as_empty() -> None:
    cfg = parse_step_config(MessageConfig, StepType.SEND_MESSAGE, None)
    assert cfg.message == ""
