from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.moderation_audit import list_moderation_events
from app.dependencies import get_admin_ban_days, get_current_admin
from app.schemas.moderation import (
    AdminActionResponse,
    BannedDeviceResponse,
    ModerationEventResponse,
    RejectReviewRequest,
)
from app.schemas.review import PendingReviewResponse
from app.services.admin_override import AdminOverrideService
from app.services.ban_registry import BanRegistry

router = APIRouter()


def _override_service(db: Session, admin: Dict) -> AdminOverrideService:
    return AdminOverrideService(db, admin_id=admin["id"], admin_ban_days=get_admin_ban_days())


@router.get("/pending", response_model=List[PendingReviewResponse])
async def get_pending_reviews(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    admin: Dict = Depends(get_current_admin),
):
    return _override_service(db, admin).list_pending(limit)


@router.get("/banned", response_model=List[BannedDeviceResponse])
async def get_banned_devices(
    device_id_hash: Optional[str] = Query(None, alias="deviceIdHash"),
    db: Session = Depends(get_db),
    admin: Dict = Depends(get_current_admin),
):
    return BanRegistry(db).list_bans(device_id_hash)


@router.get("/events", response_model=List[ModerationEventResponse])
async def get_moderation_events(
    content_type: Optional[str] = Query(None, alias="contentType"),
    content_id: Optional[str] = Query(None, alias="contentId"),
    action: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    admin: Dict = Depends(get_current_admin),
):
    return list_moderation_events(db, content_type, content_id, action, limit)


@router.post("/approve/{review_id}", response_model=AdminActionResponse)
async def approve_review(
    review_id: str,
    db: Session = Depends(get_db),
    admin: Dict = Depends(get_current_admin),
):
    return _override_service(db, admin).approve(review_id)


@router.post("/reject/{review_id}", response_model=AdminActionResponse)
async def reject_review(
    review_id: str,
    body: RejectReviewRequest,
    db: Session = Depends(get_db),
    admin: Dict = Depends(get_current_admin),
):
    return _override_service(db, admin).reject(review_id, body.reason, body.ban_device)


@router.post("/unban/{device_id_hash}", response_model=AdminActionResponse)
async def unban_device(
    device_id_hash: str,
    db: Session = Depends(get_db),
    admin: Dict = Depends(get_current_admin),
):
    return _override_service(db, admin).unban(device_id_hash)
