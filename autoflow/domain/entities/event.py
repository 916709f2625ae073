"""Domain event entity: what the trigger matcher consumes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DomainEvent:
    """An event emitted by the surrounding CRM (e.g. lead_created) for one organization.

    payload becomes the run context (e.g. {"lead": {...}}).
    """

    type: str
    org_id: str
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DomainEvent:
        """Build from a decoded message; KeyError/TypeError on malformed input."""
        payload = data.get("payload") or {}
        if not isinstance(payload, dict):
            raise TypeError("event payload must be an object")
        return cls(type=str(data["type"]), org_id=str(data["org_id"]), payload=payload)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "org_id": self.org_id, "payload": self.payload}
