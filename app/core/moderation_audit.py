from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from uuid import uuid4
from app.models.moderation_event import (
    ModerationContentType,
    ModerationEvent,
    ModerationEventAction,
)


def log_moderation_event(
    db: Session,
    content_type: ModerationContentType,
    content_id: str,
    action: ModerationEventAction,
    device_id_hash: Optional[str] = None,
    scores: Optional[Dict[str, float]] = None,
    reason: Optional[str] = None,
    admin_id: Optional[str] = None,
) -> ModerationEvent:
    event = ModerationEvent(
        id=str(uuid4()),
        content_type=ModerationContentType(content_type).value,
        content_id=content_id,
        device_id_hash=device_id_hash,
        action=ModerationEventAction(action).value,
        scores=scores or None,
        reason=reason,
        admin_id=admin_id,
    )
    db.add(event)
    db.commit()
    return event


def list_moderation_events(
    db: Session,
    content_type: Optional[str] = None,
    content_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[ModerationEvent]:
    query = db.query(ModerationEvent)
    if content_type:
        query = query.filter(ModerationEvent.content_type == content_type)
    if content_id:
        query = query.filter(ModerationEvent.content_id == content_id)
    if action:
        query = query.filter(ModerationEvent.action == action)
    return query.order_by(ModerationEvent.created_at.desc()).limit(limit).all()
