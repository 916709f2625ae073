"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for the org id, the definition-store use case on
read or transactional sessions, and the execution engine built at startup.
Routes depend only on these, not on infrastructure directly.
"""

from __future__ import annotations

import re
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from autoflow.application.use_cases.workflows import WorkflowDefinitionService
from autoflow.core.config import get_settings
from autoflow.infrastructure.persistence.database import get_db, get_db_transactional
from autoflow.infrastructure.persistence.repositories import (
    ExecutionRunRepository,
    WorkflowRepository,
)
from autoflow.infrastructure.services import WorkflowEngine

_ORG_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def get_org_id(request: Request) -> str:
    """Resolve the organization id from the org header."""
    name = get_settings().org_header_name
    value = request.headers.get(name)
    if not value:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required header: {name}",
        )
    if not _ORG_ID_PATTERN.match(value):
        raise HTTPException(
            status_code=400,
            detail="Invalid organization ID format (use alphanumeric, hyphen, underscore; max 64 characters)",
        )
    return value


async def get_definition_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowDefinitionService:
    """Definition store for read operations (list, get, run history)."""
    return WorkflowDefinitionService(WorkflowRepository(db), ExecutionRunRepository(db))


async def get_definition_service_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> WorkflowDefinitionService:
    """Definition store for create/save/toggle/move/delete (transactional)."""
    return WorkflowDefinitionService(WorkflowRepository(db), ExecutionRunRepository(db))


def get_workflow_engine(request: Request) -> WorkflowEngine:
    """Execution engine built by the lifespan."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Workflow engine not started")
    return engine


OrgId = Annotated[str, Depends(get_org_id)]
ReadService = Annotated[WorkflowDefinitionService, Depends(get_definition_service)]
WriteService = Annotated[
    WorkflowDefinitionService, Depends(get_definition_service_for_write)
]
Engine = Annotated[WorkflowEngine, Depends(get_workflow_engine)]
