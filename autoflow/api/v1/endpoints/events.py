"""Domain event ingestion: the HTTP counterpart of the Redis event listener."""

from fastapi import APIRouter

from autoflow.api.v1.dependencies import Engine, OrgId
from autoflow.domain.entities import DomainEvent
from autoflow.schemas.event import DomainEventRequest, EventAcceptedResponse

router = APIRouter()


@router.post("", response_model=EventAcceptedResponse, status_code=202)
async def publish_event(body: DomainEventRequest, org_id: OrgId, engine: Engine):
    """Match the event against active workflows and start one run per match."""
    run_ids = await engine.matcher.handle_event(
        DomainEvent(type=body.type, org_id=org_id, payload=body.payload)
    )
    return EventAcceptedResponse(run_ids=run_ids)
