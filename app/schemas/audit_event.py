"""Audit event schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from app.models.audit_event import ActorType


class AuditEventRead(BaseModel):
    """Schema for reading audit event data."""

    id: str
    actor_type: ActorType
    actor_id: str | None
    action: str
    entity_type: str
    entity_id: str | None
    event_metadata: dict[str, Any] | None
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
