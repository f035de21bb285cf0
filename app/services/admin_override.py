import logging
from datetime import datetime, timedelta, timezone
from typing import List

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload

from app.core.metrics import ADMIN_OVERRIDES, DEVICE_BANS, DEVICE_UNBANS
from app.core.moderation_audit import log_moderation_event
from app.models.moderation_event import ModerationContentType, ModerationEventAction
from app.models.review import ModerationStatus, Review
from app.schemas.moderation import AdminActionResponse
from app.services.ban_registry import BanRegistry

logger = logging.getLogger(__name__)


class AdminOverrideService:
    """Manual corrections of automated moderation decisions.

    No transition guard: any status can be overwritten, last write wins.
    """

    def __init__(self, db: Session, admin_id: str, admin_ban_days: float = 7):
        self.db = db
        self.admin_id = admin_id
        self.admin_ban_days = admin_ban_days
        self.bans = BanRegistry(db)

    def _get_review_or_404(self, review_id: str) -> Review:
        review = self.db.query(Review).filter(Review.id == review_id).first()
        if not review:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Review not found"
            )
        return review

    def list_pending(self, limit: int = 100) -> List[Review]:
        return (
            self.db.query(Review)
            .options(joinedload(Review.menu_item))
            .filter(Review.moderation_status == ModerationStatus.PENDING.value)
            .order_by(Review.created_at.desc())
            .limit(limit)
            .all()
        )

    def approve(self, review_id: str) -> AdminActionResponse:
        review = self._get_review_or_404(review_id)
        review.moderation_status = ModerationStatus.APPROVED.value
        review.flagged_reason = None
        self.db.commit()

        log_moderation_event(
            self.db,
            ModerationContentType.REVIEW,
            review.id,
            ModerationEventAction.APPROVE,
            device_id_hash=review.device_id_hash,
            reason="Manually approved by admin",
            admin_id=self.admin_id,
        )
        ADMIN_OVERRIDES.labels(action="approve").inc()
        logger.info("Admin %s approved review %s", self.admin_id, review.id)
        return AdminActionResponse(
            message="Review approved",
            review_id=review.id,
            moderation_status=review.moderation_status,
        )

    def reject(self, review_id: str, reason: str, ban_device: bool = False) -> AdminActionResponse:
        review = self._get_review_or_404(review_id)
        review.moderation_status = ModerationStatus.REJECTED.value
        review.flagged_reason = reason
        self.db.commit()

        device_banned = False
        if ban_device and review.device_id_hash:
            expires_at = datetime.now(timezone.utc) + timedelta(days=self.admin_ban_days)
            banned = self.bans.ban(review.device_id_hash, reason, expires_at)
            DEVICE_BANS.labels(source="admin").inc()
            log_moderation_event(
                self.db,
                ModerationContentType.DEVICE,
                review.device_id_hash,
                ModerationEventAction.BAN,
                device_id_hash=review.device_id_hash,
                reason=f"{reason} (strike {banned.strikes})",
                admin_id=self.admin_id,
            )
            device_banned = True
        elif ban_device:
            logger.warning("Review %s has no device hash; ban skipped", review.id)

        log_moderation_event(
            self.db,
            ModerationContentType.REVIEW,
            review.id,
            ModerationEventAction.REJECT,
            device_id_hash=review.device_id_hash,
            reason=reason,
            admin_id=self.admin_id,
        )
        ADMIN_OVERRIDES.labels(action="reject").inc()
        logger.info(
            "Admin %s rejected review %s (device banned: %s)",
            self.admin_id, review.id, device_banned,
        )
        return AdminActionResponse(
            message="Review rejected",
            review_id=review.id,
            moderation_status=review.moderation_status,
            device_banned=device_banned,
        )

    def unban(self, device_id_hash: str) -> AdminActionResponse:
        removed = self.bans.unban(device_id_hash)
        log_moderation_event(
            self.db,
            ModerationContentType.DEVICE,
            device_id_hash,
            ModerationEventAction.UNBAN,
            device_id_hash=device_id_hash,
            reason="Manually unbanned by admin" if removed else "Unban requested; no ban on record",
            admin_id=self.admin_id,
        )
        DEVICE_UNBANS.inc()
        ADMIN_OVERRIDES.labels(action="unban").inc()
        return AdminActionResponse(message="Device unbanned")
