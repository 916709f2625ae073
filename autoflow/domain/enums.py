"""Domain enumerations for workflow automation.

Enums represent the fixed vocabularies a workflow definition may use:
what triggers it, what each step does, and how conditions compare.
"""

from enum import Enum


class TriggerType(str, Enum):
    """Event category that starts a workflow run."""

    LEAD_CREATED = "lead_created"
    LEAD_SCORE_CHANGE = "lead_score_change"
    CUSTOMER_STAGE_CHANGE = "customer_stage_change"
    MESSAGE_RECEIVED = "message_received"
    MESSAGE_UNREPLIED = "message_unreplied"
    SCHEDULED = "scheduled"
    MANUAL = "manual"
    NEW_CONVERSATION = "new_conversation"
    LEAD_STATUS_CHANGE = "lead_status_change"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid trigger type values as strings."""
        return [trigger.value for trigger in cls]


class StepType(str, Enum):
    """Action type performed by a workflow step."""

    SEND_MESSAGE = "send_message"
    SEND_EMAIL = "send_email"
    SEND_NOTIFICATION = "send_notification"
    ASSIGN_AGENT = "assign_agent"
    ASSIGN_LEAD = "assign_lead"
    UPDATE_STATUS = "update_status"
    ADD_TAG = "add_tag"
    WAIT = "wait"
    AI_REPLY = "ai_reply"
    CONDITION = "condition"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid step type values as strings."""
        return [step_type.value for step_type in cls]


class ConditionOperator(str, Enum):
    """Comparison operator of a structured condition."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    CONTAINS = "contains"


class MoveDirection(str, Enum):
    """Adjacent-neighbour step move."""

    UP = "up"
    DOWN = "down"
