from __future__ import annotations

import enum
import uuid
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from app.core.database import Base


class ModerationStatus(str, enum.Enum):
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


class Review(Base):
    """Student review of a menu item.

    Exactly one of ``user_id`` / ``device_id_hash`` identifies the author.
    Rejected reviews are kept for audit and never shown publicly.
    """

    __tablename__ = "reviews"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    menu_item_id = Column(
        String,
        ForeignKey("menu_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String, nullable=True, index=True)
    device_id_hash = Column(String, nullable=True, index=True)
    rating = Column(Integer, nullable=False)  # 1-5
    text = Column(Text, nullable=True)
    emoji = Column(String, nullable=True)
    photo_url = Column(Text, nullable=True)
    is_hidden = Column(Boolean, nullable=False, default=False)
    is_flagged = Column(Boolean, nullable=False, default=False)
    moderation_status = Column(String, nullable=False, default=ModerationStatus.APPROVED.value)
    moderation_scores = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    flagged_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    menu_item = relationship("MenuItem")

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (device_id_hash IS NULL)",
            name="ck_reviews_single_author",
        ),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        Index("ix_reviews_moderation_status", "moderation_status"),
    )

    @property
    def is_publicly_visible(self) -> bool:
        return (
            self.moderation_status == ModerationStatus.APPROVED.value
            and not self.is_hidden
            and not self.is_flagged
        )
