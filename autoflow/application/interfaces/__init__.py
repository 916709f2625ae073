"""Ports (Protocols) implemented by infrastructure."""

from autoflow.application.interfaces.repositories import (
    IExecutionRunRepository,
    IRunContinuationRepository,
    IWorkflowRepository,
)
from autoflow.application.interfaces.services import (
    IActionHandler,
    IAssignmentService,
    IEmailService,
    IEntityService,
    IGenerationService,
    INotificationService,
)

__all__ = [
    "IWorkflowRepository",
    "IExecutionRunRepository",
    "IRunContinuationRepository",
    "IActionHandler",
    "IAssignmentService",
    "IEmailService",
    "IEntityService",
    "IGenerationService",
    "INotificationService",
]
