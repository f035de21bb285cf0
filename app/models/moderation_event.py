"""Immutable audit log of moderation decisions."""

from __future__ import annotations

import enum
import uuid
from sqlalchemy import JSON, Column, DateTime, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from app.core.database import Base


class ModerationContentType(str, enum.Enum):
    REVIEW = "review"
    DEVICE = "device"


class ModerationEventAction(str, enum.Enum):
    APPROVE = "approve"  # admin approved
    REJECT = "reject"  # admin rejected
    AUTO_APPROVE = "auto_approve"
    AUTO_SHADOW = "auto_shadow"  # held for manual review
    AUTO_REJECT = "auto_reject"
    BAN = "ban"
    UNBAN = "unban"


class ModerationEvent(Base):
    """
    One row per automated or manual moderation decision.

    Append-only: rows are never updated or deleted. The history of a piece of
    content can be rebuilt by ordering on created_at.
    """
    __tablename__ = "moderation_events"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # What the decision applies to
    content_type = Column(String, nullable=False)  # review | device
    content_id = Column(String, nullable=False)
    device_id_hash = Column(String, nullable=True, index=True)

    # What happened
    action = Column(String, nullable=False, index=True)
    scores = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    reason = Column(Text, nullable=True)

    # Who did it (NULL for automated decisions)
    admin_id = Column(String, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_moderation_events_content_lookup", "content_type", "content_id"),
    )
