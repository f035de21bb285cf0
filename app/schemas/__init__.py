from app.schemas.review import (
    ReviewCreate,
    ReviewResponse,
    ReviewSubmissionResponse,
    ReviewsResponse,
    MenuItemSummary,
    PendingReviewResponse,
)
from app.schemas.moderation import (
    ModerationAction,
    ModerationVerdict,
    CallerIdentity,
    RejectReviewRequest,
    BannedDeviceResponse,
    ModerationEventResponse,
    AdminActionResponse,
)

__all__ = [
    "ReviewCreate",
    "ReviewResponse",
    "ReviewSubmissionResponse",
    "ReviewsResponse",
    "MenuItemSummary",
    "PendingReviewResponse",
    "ModerationAction",
    "ModerationVerdict",
    "CallerIdentity",
    "RejectReviewRequest",
    "BannedDeviceResponse",
    "ModerationEventResponse",
    "AdminActionResponse",
]
