"""Audit event service for append-only audit logging."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import audit_logger
from app.models.audit_event import ActorType, AuditEvent


async def write_audit_event(
    session: AsyncSession,
    actor_type: ActorType,
    actor_id: str | None,
    action: str,
    entity_type: str,
    entity_id: str | None,
    metadata: dict[str, Any] | None = None,
    description: str | None = None,
    commit: bool = True,
) -> AuditEvent:
    """Write an audit event to the database.

    Events are append-only and cannot be modified or deleted.

    Args:
        session: Database session
        actor_type: Type of actor (system, assessor)
        actor_id: ID of the actor
        action: Action performed (e.g., "create_draft", "complete_assessment")
        entity_type: Type of entity affected (e.g., "assessment")
        entity_id: ID of the affected entity
        metadata: Additional context as JSON
        description: Human-readable description
        commit: Commit immediately. Pass False to add the event to the
            caller's transaction, which then commits it with its own write.

    Returns:
        Created AuditEvent instance
    """
    event = AuditEvent(
        actor_type=actor_type,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata,
        description=description,
    )

    session.add(event)
    if commit:
        await session.commit()

    audit_logger.log(
        action=action,
        actor_id=actor_id or "system",
        entity_type=entity_type,
        entity_id=entity_id or "none",
        metadata=metadata,
    )

    return event


async def get_entity_history(
    session: AsyncSession,
    entity_type: str,
    entity_id: str,
    limit: int = 100,
) -> list[AuditEvent]:
    """Get audit history for a specific entity, newest first."""
    result = await session.execute(
        select(AuditEvent)
        .where(AuditEvent.entity_type == entity_type)
        .where(AuditEvent.entity_id == entity_id)
        .order_by(AuditEvent.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
