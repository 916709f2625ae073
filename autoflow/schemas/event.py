"""Domain event ingestion schemas."""

from typing import Any

from pydantic import BaseModel, Field


class DomainEventRequest(BaseModel):
    """Request body for POST /events; the org comes from the org header."""

    type: str = Field(..., min_length=1, max_length=128, description="Event type, e.g. lead_created")
    payload: dict[str, Any] = Field(default_factory=dict, description="Becomes the run context")


class EventAcceptedResponse(BaseModel):
    """Runs started for the event (empty when nothing matched)."""

    run_ids: list[str]
