"""Typed step configuration, one model per action kind.

Step config is stored as a free string-keyed map (the dashboard editor sends
string values under its own key names). Each action kind parses the map into
its own model here, so handlers work with typed fields and adding an action
type means adding a model and a handler rather than another branch.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from autoflow.domain.enums import ConditionOperator, StepType
from autoflow.domain.exceptions import ActionExecutionError


class _StepConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class MessageConfig(_StepConfig):
    """send_message / send_notification."""

    message: str = Field(
        default="", validation_alias=AliasChoices("message", "content")
    )
    title: str | None = None
    recipient_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("recipient_id", "recipientId", "userId"),
    )


class EmailConfig(_StepConfig):
    """send_email; to overrides the contact address resolved from the context."""

    subject: str = ""
    body: str = ""
    to: str | None = None


class AssignAgentConfig(_StepConfig):
    agent_id: str = Field(
        min_length=1, validation_alias=AliasChoices("agent_id", "agentId")
    )
    resource_type: str | None = Field(
        default=None, validation_alias=AliasChoices("resource_type", "resourceType")
    )


class AssignLeadConfig(_StepConfig):
    assign_to: str = Field(
        min_length=1, validation_alias=AliasChoices("assign_to", "assignTo")
    )


class UpdateStatusConfig(_StepConfig):
    target_status: str = Field(
        min_length=1,
        validation_alias=AliasChoices("target_status", "targetStatus", "target", "status"),
    )
    resource_type: str | None = Field(
        default=None, validation_alias=AliasChoices("resource_type", "resourceType")
    )


class AddTagConfig(_StepConfig):
    tag_name: str = Field(
        min_length=1, validation_alias=AliasChoices("tag_name", "tagName", "tag")
    )
    resource_type: str | None = Field(
        default=None, validation_alias=AliasChoices("resource_type", "resourceType")
    )


# One year.
MAX_WAIT_MINUTES = 60 * 24 * 366


class WaitConfig(_StepConfig):
    minutes: float = Field(ge=0, le=MAX_WAIT_MINUTES, allow_inf_nan=False)


class AiReplyConfig(_StepConfig):
    prompt: str = Field(min_length=1)
    max_tokens: int = Field(
        default=500, gt=0, validation_alias=AliasChoices("max_tokens", "maxTokens")
    )
    temperature: float = Field(default=0.7, ge=0, le=2)
    recipient_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("recipient_id", "recipientId", "userId"),
    )


class ConditionConfig(_StepConfig):
    """Structured (field/operator/value) or expression condition.

    A non-empty expression takes precedence over the structured triple.
    """

    field: str | None = Field(
        default=None, validation_alias=AliasChoices("field", "condField")
    )
    operator: ConditionOperator | None = Field(
        default=None, validation_alias=AliasChoices("operator", "condOp")
    )
    value: Any = Field(default=None, validation_alias=AliasChoices("value", "condValue"))
    expression: str | None = None

    @field_validator("field", "operator", "expression", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


C = TypeVar("C", bound="_StepConfig")


def parse_step_config(
    model: type[C], step_type: StepType, config: dict[str, Any]
) -> C:
    """Validate a raw config map into the model for its action kind.

    Raises:
        ActionExecutionError: If required keys are missing or values are invalid.
    """
    try:
        return model.model_validate(config or {})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        raise ActionExecutionError(step_type.value, f"invalid config ({problems})") from e
