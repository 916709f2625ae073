"""Action handlers, one per step type, and the registry the executor dispatches through.

Handlers parse their raw config into a typed model, render any user text with
the run context, and call one collaborator. A handler signals failure by
raising ActionExecutionError; the executor records it against the step.
"""

from __future__ import annotations

from typing import Any

from autoflow.application.dtos.execution import ActionResult, StepContext
from autoflow.application.dtos.step_config import (
    AddTagConfig,
    AiReplyConfig,
    AssignAgentConfig,
    AssignLeadConfig,
    EmailConfig,
    MessageConfig,
    UpdateStatusConfig,
    parse_step_config,
)
from autoflow.application.interfaces.services import (
    IActionHandler,
    IAssignmentService,
    IEmailService,
    IEntityService,
    IGenerationService,
    INotificationService,
)
from autoflow.domain.enums import StepType
from autoflow.domain.exceptions import ActionExecutionError
from autoflow.infrastructure.services.template_renderer import StepTemplateRenderer

# Context keys that may carry the entity a step acts on, in lookup order.
TARGET_RESOURCE_TYPES = ("lead", "customer", "ticket", "conversation", "deal")
# Context keys that may carry the contact address for send_email, in lookup order.
CONTACT_RESOURCE_TYPES = ("lead", "customer", "contact")


def resolve_target(
    context: dict[str, Any], step_type: StepType, resource_type: str | None = None
) -> tuple[str, dict[str, Any]]:
    """Return (resource_type, record) for the entity a step should act on.

    An explicit resource_type must be present in the context with an id;
    otherwise the first of TARGET_RESOURCE_TYPES that has one is used.
    """
    candidates = (resource_type,) if resource_type else TARGET_RESOURCE_TYPES
    for name in candidates:
        record = context.get(name)
        if isinstance(record, dict) and record.get("id") not in (None, ""):
            return name, record
    wanted = resource_type or "/".join(TARGET_RESOURCE_TYPES)
    raise ActionExecutionError(step_type.value, f"no {wanted} with an id in context")


def resolve_contact_email(context: dict[str, Any]) -> str | None:
    for name in CONTACT_RESOURCE_TYPES:
        record = context.get(name)
        if isinstance(record, dict) and record.get("email"):
            return str(record["email"])
    email = context.get("email")
    return str(email) if email else None


class NotificationHandler:
    """send_message and send_notification: render content, hand it to the notifier."""

    def __init__(
        self,
        step_type: StepType,
        notifier: INotificationService,
        renderer: StepTemplateRenderer,
    ) -> None:
        self.step_type = step_type
        self._notifier = notifier
        self._renderer = renderer

    async def execute(self, context: StepContext, config: dict[str, Any]) -> ActionResult:
        cfg = parse_step_config(MessageConfig, self.step_type, config)
        content = self._renderer.render(cfg.message, context.data, step_type=self.step_type.value)
        if not content.strip():
            raise ActionExecutionError(self.step_type.value, "message content is empty")
        title = self._renderer.render(cfg.title, context.data, step_type=self.step_type.value)
        await self._notifier.send(
            context.org_id,
            recipient_id=cfg.recipient_id,
            title=title,
            content=content,
            kind=self.step_type.value,
        )
        return ActionResult.ok(recipient_id=cfg.recipient_id)


class EmailHandler:
    step_type = StepType.SEND_EMAIL

    def __init__(self, mailer: IEmailService, renderer: StepTemplateRenderer) -> None:
        self._mailer = mailer
        self._renderer = renderer

    async def execute(self, context: StepContext, config: dict[str, Any]) -> ActionResult:
        cfg = parse_step_config(EmailConfig, self.step_type, config)
        to = cfg.to or resolve_contact_email(context.data)
        if not to:
            raise ActionExecutionError(self.step_type.value, "no contact email in context")
        subject = self._renderer.render(cfg.subject, context.data, step_type=self.step_type.value)
        body = self._renderer.render(cfg.body, context.data, step_type=self.step_type.value)
        await self._mailer.send_email(context.org_id, to=to, subject=subject, body=body)
        return ActionResult.ok(to=to)


class AssignAgentHandler:
    step_type = StepType.ASSIGN_AGENT

    def __init__(self, assigner: IAssignmentService) -> None:
        self._assigner = assigner

    async def execute(self, context: StepContext, config: dict[str, Any]) -> ActionResult:
        cfg = parse_step_config(AssignAgentConfig, self.step_type, config)
        resource_type, record = resolve_target(context.data, self.step_type, cfg.resource_type)
        await self._assigner.assign_owner(
            context.org_id,
            resource_type=resource_type,
            resource_id=str(record["id"]),
            owner_id=cfg.agent_id,
        )
        record["assigned_to"] = cfg.agent_id
        return ActionResult.ok(resource_type=resource_type, owner_id=cfg.agent_id)


class AssignLeadHandler:
    """assign_lead always targets the lead in the context."""

    step_type = StepType.ASSIGN_LEAD

    def __init__(self, assigner: IAssignmentService) -> None:
        self._assigner = assigner

    async def execute(self, context: StepContext, config: dict[str, Any]) -> ActionResult:
        cfg = parse_step_config(AssignLeadConfig, self.step_type, config)
        _, lead = resolve_target(context.data, self.step_type, "lead")
        await self._assigner.assign_owner(
            context.org_id,
            resource_type="lead",
            resource_id=str(lead["id"]),
            owner_id=cfg.assign_to,
        )
        lead["assigned_to"] = cfg.assign_to
        return ActionResult.ok(resource_type="lead", owner_id=cfg.assign_to)


class UpdateStatusHandler:
    step_type = StepType.UPDATE_STATUS

    def __init__(self, entities: IEntityService) -> None:
        self._entities = entities

    async def execute(self, context: StepContext, config: dict[str, Any]) -> ActionResult:
        cfg = parse_step_config(UpdateStatusConfig, self.step_type, config)
        resource_type, record = resolve_target(context.data, self.step_type, cfg.resource_type)
        await self._entities.set_status(
            context.org_id,
            resource_type=resource_type,
            resource_id=str(record["id"]),
            status=cfg.target_status,
        )
        # later conditions see the new status
        record["status"] = cfg.target_status
        return ActionResult.ok(resource_type=resource_type, status=cfg.target_status)


class AddTagHandler:
    step_type = StepType.ADD_TAG

    def __init__(self, entities: IEntityService) -> None:
        self._entities = entities

    async def execute(self, context: StepContext, config: dict[str, Any]) -> ActionResult:
        cfg = parse_step_config(AddTagConfig, self.step_type, config)
        resource_type, record = resolve_target(context.data, self.step_type, cfg.resource_type)
        tags = record.get("tags")
        tags = list(tags) if isinstance(tags, list) else []
        if cfg.tag_name in tags:
            return ActionResult.ok(resource_type=resource_type, tag=cfg.tag_name, added=False)
        await self._entities.add_tag(
            context.org_id,
            resource_type=resource_type,
            resource_id=str(record["id"]),
            tag=cfg.tag_name,
        )
        record["tags"] = [*tags, cfg.tag_name]
        return ActionResult.ok(resource_type=resource_type, tag=cfg.tag_name, added=True)


class AiReplyHandler:
    """Generate text and deliver it as a conversation message."""

    step_type = StepType.AI_REPLY

    def __init__(
        self,
        generator: IGenerationService,
        notifier: INotificationService,
        renderer: StepTemplateRenderer,
    ) -> None:
        self._generator = generator
        self._notifier = notifier
        self._renderer = renderer

    async def execute(self, context: StepContext, config: dict[str, Any]) -> ActionResult:
        cfg = parse_step_config(AiReplyConfig, self.step_type, config)
        prompt = self._renderer.render(cfg.prompt, context.data, step_type=self.step_type.value)
        reply = await self._generator.generate(
            prompt, max_tokens=cfg.max_tokens, temperature=cfg.temperature
        )
        if not reply or not reply.strip():
            raise ActionExecutionError(self.step_type.value, "generation returned no text")
        await self._notifier.send(
            context.org_id,
            recipient_id=cfg.recipient_id,
            title="",
            content=reply,
            kind=self.step_type.value,
        )
        ai = context.data.get("ai")
        context.data["ai"] = {**(ai if isinstance(ai, dict) else {}), "reply": reply}
        return ActionResult.ok(characters=len(reply))


class ActionHandlerRegistry:
    """Maps action step types to handlers. condition and wait are executor built-ins."""

    def __init__(self) -> None:
        self._handlers: dict[StepType, IActionHandler] = {}

    def register(self, step_type: StepType, handler: IActionHandler) -> None:
        if step_type in (StepType.CONDITION, StepType.WAIT):
            raise ValueError(f"{step_type.value} is handled by the executor itself")
        self._handlers[step_type] = handler

    def get(self, step_type: StepType) -> IActionHandler | None:
        return self._handlers.get(step_type)


def build_action_registry(
    *,
    notifier: INotificationService,
    mailer: IEmailService,
    assigner: IAssignmentService,
    entities: IEntityService,
    generator: IGenerationService,
    renderer: StepTemplateRenderer | None = None,
) -> ActionHandlerRegistry:
    """Registry with a handler for every action step type."""
    renderer = renderer or StepTemplateRenderer()
    registry = ActionHandlerRegistry()
    registry.register(
        StepType.SEND_MESSAGE, NotificationHandler(StepType.SEND_MESSAGE, notifier, renderer)
    )
    registry.register(
        StepType.SEND_NOTIFICATION,
        NotificationHandler(StepType.SEND_NOTIFICATION, notifier, renderer),
    )
    registry.register(StepType.SEND_EMAIL, EmailHandler(mailer, renderer))
    registry.register(StepType.ASSIGN_AGENT, AssignAgentHandler(assigner))
    registry.register(StepType.ASSIGN_LEAD, AssignLeadHandler(assigner))
    registry.register(StepType.UPDATE_STATUS, UpdateStatusHandler(entities))
    registry.register(StepType.ADD_TAG, AddTagHandler(entities))
    registry.register(StepType.AI_REPLY, AiReplyHandler(generator, notifier, renderer))
    return registry
