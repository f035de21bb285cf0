from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ReviewCreate(BaseModel):
    menu_item_id: str = Field(..., alias="menuItemId", min_length=1)
    rating: int = Field(..., ge=1, le=5)
    text: Optional[str] = Field(None, max_length=500)
    emoji: Optional[str] = Field(None, max_length=16)
    photo_url: Optional[str] = Field(None, alias="photoUrl", max_length=2048)

    model_config = {"populate_by_name": True}

    @field_validator("text")
    @classmethod
    def blank_text_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class ReviewResponse(BaseModel):
    id: str
    menu_item_id: str = Field(alias="menuItemId")
    user_id: Optional[str] = Field(None, alias="userId")
    rating: int
    text: Optional[str] = None
    emoji: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    is_hidden: bool = Field(False, alias="isHidden")
    is_flagged: bool = Field(False, alias="isFlagged")
    moderation_status: str = Field(alias="moderationStatus")
    created_at: datetime = Field(alias="createdAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


class ReviewSubmissionResponse(BaseModel):
    """Result of POST /api/reviews for approved and pending reviews.

    Rejected and banned submissions are answered with an error status instead.
    """

    review: ReviewResponse
    message: Optional[str] = None

    model_config = {"populate_by_name": True}


class MenuItemSummary(BaseModel):
    id: str
    date: str
    meal_period: str = Field(alias="mealPeriod")
    station: str
    item_name: str = Field(alias="itemName")

    model_config = {"from_attributes": True, "populate_by_name": True}


class PendingReviewResponse(BaseModel):
    """Admin view of a review awaiting moderation, joined with its menu item."""

    id: str
    menu_item_id: str = Field(alias="menuItemId")
    user_id: Optional[str] = Field(None, alias="userId")
    device_id_hash: Optional[str] = Field(None, alias="deviceIdHash")
    rating: int
    text: Optional[str] = None
    emoji: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    moderation_status: str = Field(alias="moderationStatus")
    moderation_scores: Optional[Dict[str, float]] = Field(None, alias="moderationScores")
    flagged_reason: Optional[str] = Field(None, alias="flaggedReason")
    created_at: datetime = Field(alias="createdAt")
    menu_item: Optional[MenuItemSummary] = Field(None, alias="menuItem")

    model_config = {"from_attributes": True, "populate_by_name": True}


class ReviewsResponse(BaseModel):
    reviews: List[ReviewResponse]
    total: int
