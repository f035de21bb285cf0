import enum
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from app.models.review import ModerationStatus


class ModerationAction(str, enum.Enum):
    APPROVED = "approved"
    SHADOWED = "shadow"
    REJECTED = "rejected"


_ACTION_TO_STATUS = {
    ModerationAction.APPROVED: ModerationStatus.APPROVED,
    ModerationAction.SHADOWED: ModerationStatus.PENDING,
    ModerationAction.REJECTED: ModerationStatus.REJECTED,
}


class ModerationVerdict(BaseModel):
    """Toxicity scorer output. Immutable once produced."""

    action: ModerationAction
    scores: Dict[str, float] = Field(default_factory=dict)
    reason: str = ""

    model_config = {"frozen": True}

    @property
    def status(self) -> ModerationStatus:
        return _ACTION_TO_STATUS[self.action]


class CallerIdentity(BaseModel):
    """Who is submitting: an authenticated user, a device fingerprint, or both."""

    user_id: Optional[str] = None
    device_fingerprint: Optional[str] = None


class RejectReviewRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    ban_device: bool = Field(False, alias="banDevice")

    model_config = {"populate_by_name": True}


class BannedDeviceResponse(BaseModel):
    id: str
    device_id_hash: str = Field(alias="deviceIdHash")
    reason: str
    strikes: int
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    created_at: datetime = Field(alias="createdAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


class ModerationEventResponse(BaseModel):
    id: str
    content_type: str = Field(alias="contentType")
    content_id: str = Field(alias="contentId")
    device_id_hash: Optional[str] = Field(None, alias="deviceIdHash")
    action: str
    scores: Optional[Dict[str, float]] = None
    reason: Optional[str] = None
    admin_id: Optional[str] = Field(None, alias="adminId")
    created_at: datetime = Field(alias="createdAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


class AdminActionResponse(BaseModel):
    message: str
    review_id: Optional[str] = Field(None, alias="reviewId")
    moderation_status: Optional[str] = Field(None, alias="moderationStatus")
    device_banned: bool = Field(False, alias="deviceBanned")

    model_config = {"populate_by_name": True}
