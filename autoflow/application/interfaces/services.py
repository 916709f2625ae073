"""Service interfaces (ports) for the application layer.

Protocols define the contracts of the collaborators that action handlers
call (notification, email, assignment, entity updates, text generation)
and of the handlers themselves. Delivery mechanics are out of scope here.
"""

from __future__ import annotations

from typing import Any, Protocol

from autoflow.application.dtos.execution import ActionResult, StepContext


# Notification / in-conversation message delivery (send_message, send_notification, ai_reply)
class INotificationService(Protocol):
    """Protocol for delivering a notification or conversation message."""

    async def send(
        self,
        org_id: str,
        *,
        recipient_id: str | None,
        title: str,
        content: str,
        kind: str,
    ) -> None:
        """Deliver content to the recipient. Raise on delivery failure."""


# Email delivery (send_email)
class IEmailService(Protocol):
    """Protocol for sending a single email."""

    async def send_email(self, org_id: str, *, to: str, subject: str, body: str) -> None:
        """Send the email. Raise on delivery failure."""


# Owner assignment (assign_agent, assign_lead)
class IAssignmentService(Protocol):
    """Protocol for setting the owner of a CRM resource."""

    async def assign_owner(
        self,
        org_id: str,
        *,
        resource_type: str,
        resource_id: str,
        owner_id: str,
    ) -> None:
        """Assign the resource to the owner."""


# Status and tag updates on the owning resource (update_status, add_tag)
class IEntityService(Protocol):
    """Protocol for status/tag mutations; enum validity is enforced by the resource owner."""

    async def set_status(
        self, org_id: str, *, resource_type: str, resource_id: str, status: str
    ) -> None:
        """Set the resource's status field."""

    async def add_tag(
        self, org_id: str, *, resource_type: str, resource_id: str, tag: str
    ) -> None:
        """Attach a tag; attaching an existing tag is a no-op."""


# Text generation (ai_reply)
class IGenerationService(Protocol):
    """Protocol for AI text generation."""

    async def generate(
        self, prompt: str, *, max_tokens: int, temperature: float
    ) -> str:
        """Return generated text for the prompt."""


class IActionHandler(Protocol):
    """Protocol for one step action type: execute(context, config) -> ActionResult.

    Raise ActionExecutionError (or return ActionResult.failed) on failure;
    the executor isolates the failure to the step.
    """

    async def execute(self, context: StepContext, config: dict[str, Any]) -> ActionResult:
        """Perform the action for this step."""
