import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Query as SAQuery, Session

from app.core.database import get_db
from app.core.device_identity import DeviceHasher, device_fingerprint
from app.core.moderation_config import get_review_rate_limit
from app.core.rate_limit import limiter
from app.dependencies import (
    get_auto_ban_hours,
    get_device_hasher,
    get_optional_user,
    get_toxicity_scorer,
)
from app.models.menu_item import MenuItem
from app.models.review import ModerationStatus, Review
from app.schemas.moderation import CallerIdentity
from app.schemas.review import (
    ReviewCreate,
    ReviewResponse,
    ReviewSubmissionResponse,
    ReviewsResponse,
)
from app.services.moderation_cache import CachedToxicityScorer
from app.services.review_intake import ReviewIntakeService

logger = logging.getLogger(__name__)

router = APIRouter()


def visible_reviews(db: Session) -> SAQuery:
    """Reviews that may be shown publicly."""
    return db.query(Review).filter(
        Review.moderation_status == ModerationStatus.APPROVED.value,
        Review.is_hidden.is_(False),
        Review.is_flagged.is_(False),
    )


@router.post("/reviews", response_model=ReviewSubmissionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_review_rate_limit())
async def create_review(
    request: Request,
    review_data: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: Optional[Dict] = Depends(get_optional_user),
    scorer: CachedToxicityScorer = Depends(get_toxicity_scorer),
    hasher: DeviceHasher = Depends(get_device_hasher),
):
    identity = CallerIdentity(
        user_id=current_user["id"] if current_user else None,
        device_fingerprint=device_fingerprint(request),
    )
    service = ReviewIntakeService(db, scorer, hasher, auto_ban_hours=get_auto_ban_hours())
    return await service.submit(review_data, identity)


@router.get("/reviews/recent", response_model=ReviewsResponse)
async def get_recent_reviews(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    reviews = visible_reviews(db).order_by(Review.created_at.desc()).limit(limit).all()
    return ReviewsResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        total=len(reviews),
    )


@router.get("/reviews/{menu_item_id}", response_model=ReviewsResponse)
async def get_reviews_for_menu_item(
    menu_item_id: str,
    db: Session = Depends(get_db),
):
    if not db.query(MenuItem.id).filter(MenuItem.id == menu_item_id).first():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu item not found"
        )
    reviews = (
        visible_reviews(db)
        .filter(Review.menu_item_id == menu_item_id)
        .order_by(Review.created_at.desc())
        .all()
    )
    return ReviewsResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        total=len(reviews),
    )
