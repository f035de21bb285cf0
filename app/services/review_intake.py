"""Review intake: identity, ban check, toxicity verdict, persistence, audit.

A submission moves through
``Received -> IdentityResolved -> BanChecked -> (ShortCircuitRejected | Scored)
-> Decided -> Persisted -> Logged``. Rejections and bans surface to the caller
as HTTP errors; approved and pending reviews are returned.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.device_identity import DeviceHasher
from app.core.metrics import DEVICE_BANS, REVIEW_SUBMISSIONS
from app.core.moderation_audit import log_moderation_event
from app.models.menu_item import MenuItem
from app.models.moderation_event import ModerationContentType, ModerationEventAction
from app.models.review import ModerationStatus, Review
from app.schemas.moderation import CallerIdentity, ModerationAction, ModerationVerdict
from app.schemas.review import ReviewCreate, ReviewResponse, ReviewSubmissionResponse
from app.services.ban_registry import BanRegistry

logger = logging.getLogger(__name__)

BANNED_DEVICE_MESSAGE = "This device has been restricted from posting reviews"
REJECTED_CONTENT_MESSAGE = (
    "Your review was rejected by content moderation and your account "
    "has been temporarily restricted"
)
PENDING_REVIEW_MESSAGE = "Your review has been submitted and is pending moderation"

_AUDIT_ACTIONS = {
    ModerationAction.APPROVED: ModerationEventAction.AUTO_APPROVE,
    ModerationAction.SHADOWED: ModerationEventAction.AUTO_SHADOW,
    ModerationAction.REJECTED: ModerationEventAction.AUTO_REJECT,
}


class ReviewIntakeService:

    def __init__(
        self,
        db: Session,
        scorer,
        hasher: DeviceHasher,
        auto_ban_hours: float = 24,
    ):
        self.db = db
        self.scorer = scorer
        self.hasher = hasher
        self.auto_ban_hours = auto_ban_hours
        self.bans = BanRegistry(db)

    def _resolve_identity(self, identity: CallerIdentity) -> tuple[Optional[str], Optional[str]]:
        user_id = identity.user_id or None
        device_id_hash = None
        if identity.device_fingerprint:
            device_id_hash = self.hasher.hash(identity.device_fingerprint)

        if not user_id and not device_id_hash:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unable to identify the submitting user or device",
            )
        return user_id, device_id_hash

    async def _verdict_for(self, text: Optional[str]) -> ModerationVerdict:
        if not text:
            return ModerationVerdict(action=ModerationAction.APPROVED, scores={}, reason="No text")
        return await self.scorer.score(text)

    def _persist_review(
        self,
        payload: ReviewCreate,
        verdict: ModerationVerdict,
        user_id: Optional[str],
        device_id_hash: Optional[str],
    ) -> Review:
        moderation_status = verdict.status
        review = Review(
            id=str(uuid4()),
            menu_item_id=payload.menu_item_id,
            # accountability: authenticated reviews carry only the user id
            user_id=user_id,
            device_id_hash=None if user_id else device_id_hash,
            rating=payload.rating,
            text=payload.text,
            emoji=payload.emoji,
            photo_url=payload.photo_url,
            is_hidden=False,
            is_flagged=False,
            moderation_status=moderation_status.value,
            moderation_scores=dict(verdict.scores) or None,
            flagged_reason=None if moderation_status == ModerationStatus.APPROVED else verdict.reason,
        )
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return review

    def _auto_ban(self, device_id_hash: str, verdict: ModerationVerdict) -> None:
        if self.bans.is_banned(device_id_hash):
            return
        reason = f"Auto-ban: {verdict.reason}"
        expires_at = datetime.now(timezone.utc) + timedelta(hours=self.auto_ban_hours)
        banned = self.bans.ban(device_id_hash, reason, expires_at)
        DEVICE_BANS.labels(source="auto").inc()
        log_moderation_event(
            self.db,
            ModerationContentType.DEVICE,
            device_id_hash,
            ModerationEventAction.BAN,
            device_id_hash=device_id_hash,
            reason=f"{reason} (strike {banned.strikes})",
        )

    async def submit(self, payload: ReviewCreate, identity: CallerIdentity) -> ReviewSubmissionResponse:
        user_id, device_id_hash = self._resolve_identity(identity)

        if not user_id and self.bans.is_banned(device_id_hash):
            REVIEW_SUBMISSIONS.labels(outcome="banned").inc()
            logger.info("Rejected submission from banned device hash=%s", device_id_hash[:16])
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=BANNED_DEVICE_MESSAGE,
            )

        menu_item = self.db.query(MenuItem).filter(MenuItem.id == payload.menu_item_id).first()
        if not menu_item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Menu item not found",
            )

        verdict = await self._verdict_for(payload.text)
        review = self._persist_review(payload, verdict, user_id, device_id_hash)

        log_moderation_event(
            self.db,
            ModerationContentType.REVIEW,
            review.id,
            _AUDIT_ACTIONS[verdict.action],
            device_id_hash=device_id_hash,
            scores=dict(verdict.scores),
            reason=verdict.reason,
        )
        REVIEW_SUBMISSIONS.labels(outcome=review.moderation_status).inc()
        logger.info(
            "Review %s for menu item %s decided %s: %s",
            review.id, payload.menu_item_id, review.moderation_status, verdict.reason,
        )

        if verdict.action == ModerationAction.REJECTED:
            if device_id_hash:
                self._auto_ban(device_id_hash, verdict)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=REJECTED_CONTENT_MESSAGE,
            )

        message = PENDING_REVIEW_MESSAGE if verdict.action == ModerationAction.SHADOWED else None
        return ReviewSubmissionResponse(
            review=ReviewResponse.model_validate(review),
            message=message,
        )
