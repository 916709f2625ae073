"""Log-only collaborators used when no delivery backend is wired in.

Each class satisfies one port from application.interfaces.services. They log
what would have happened so runs complete in development and tests; a
deployment swaps in real implementations through build_engine().
"""

from __future__ import annotations

import logging

from autoflow.domain.exceptions import ActionExecutionError
from autoflow.shared.telemetry.logging import get_logger
from autoflow.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class LogOnlyNotificationService:
    """INotificationService that logs instead of delivering."""

    async def send(
        self,
        org_id: str,
        *,
        recipient_id: str | None,
        title: str,
        content: str,
        kind: str,
    ) -> None:
        logger.info(
            "Automation %s: would deliver to %s in org %s (title=%r)",
            kind,
            recipient_id or "<conversation>",
            org_id,
            (title or "")[:80],
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Automation %s content (first 500 chars, at %s): %s",
                kind,
                utc_now().isoformat(),
                (content or "")[:500],
            )


class LogOnlyEmailService:
    """IEmailService that logs instead of sending."""

    async def send_email(self, org_id: str, *, to: str, subject: str, body: str) -> None:
        logger.info(
            "Automation email: would send to %s in org %s (subject=%r)",
            to,
            org_id,
            (subject or "")[:80],
        )
        logger.debug("Automation email body (first 500 chars): %s", (body or "")[:500])


class LogOnlyAssignmentService:
    async def assign_owner(
        self,
        org_id: str,
        *,
        resource_type: str,
        resource_id: str,
        owner_id: str,
    ) -> None:
        logger.info(
            "Automation assign: %s %s -> %s (org %s)",
            resource_type,
            resource_id,
            owner_id,
            org_id,
        )


class LogOnlyEntityService:
    async def set_status(
        self, org_id: str, *, resource_type: str, resource_id: str, status: str
    ) -> None:
        logger.info(
            "Automation status: %s %s -> %s (org %s)",
            resource_type,
            resource_id,
            status,
            org_id,
        )

    async def add_tag(
        self, org_id: str, *, resource_type: str, resource_id: str, tag: str
    ) -> None:
        logger.info(
            "Automation tag: %s %s += %r (org %s)",
            resource_type,
            resource_id,
            tag,
            org_id,
        )


class UnconfiguredGenerationService:
    """IGenerationService placeholder; ai_reply steps fail until a provider is wired."""

    async def generate(
        self, prompt: str, *, max_tokens: int, temperature: float
    ) -> str:
        raise ActionExecutionError("ai_reply", "no text generation provider configured")
